from abc import ABC, abstractmethod
from typing import Any, Dict, Iterator

from null_cleaner.dto.decision_dto import NormalizationDecision
from null_cleaner.dto.run_report_dto import BackendKind


class Record:
    """One raw record as read from a backend: an opaque key plus its fields."""

    def __init__(self, key: Any, fields: Dict[str, Any], identity: str = None):
        self.key = key
        self.fields = fields if fields is not None else {}
        self.identity = identity if identity is not None else str(key)

    def __repr__(self):
        return f'Record({self.identity!r})'


class BaseAdapter(ABC):
    """Record source + write sink for one backend.

    open() must raise BackendConnectivityError when the backend cannot be
    reached; write() reports a rejected write by raising WriteFailure or
    returning False.
    """

    label = 'Backend'
    kind = BackendKind.DOCUMENT

    @abstractmethod
    def open(self):
        """Connect and prepare the record stream."""
        pass

    @abstractmethod
    def records(self) -> Iterator[Record]:
        """Forward-only iteration over every record of the collection."""
        pass

    @abstractmethod
    def load_payload(self, record: Record):
        """Return the logical payload dict for a record, or a ParseFailure."""
        pass

    @abstractmethod
    def write(self, record: Record, decision: NormalizationDecision) -> bool:
        """Apply a decision to the record (unset fields / replace payload)."""
        pass

    def close(self):
        pass

    def __enter__(self):
        self.open()
        return self

    def __exit__(self, exc_type, exc, tb):
        self.close()
        return False
