import logging
from enum import Enum
from typing import Any, Dict, List, Optional, Sequence

from null_cleaner.utils.nullness import is_null_like

logger = logging.getLogger(__name__)

OID_FIELD = 'oid'
OID_TYPE_KEY = 'type'
OID_ID_KEY = 'id'


class OidRemoval(str, Enum):
    KEPT = "kept"
    REMOVED_HE = "removed_he"
    REMOVED_HM = "removed_hm"


class OidFilterResult:
    """Outcome of filtering one `oid` list.

    `outcomes` has one entry per input entry (same order); `kept` holds the
    retained entries unmodified, in their original relative order.
    """

    def __init__(self, kept: List[Any], outcomes: List[OidRemoval], malformed: int = 0):
        self.kept = kept
        self.outcomes = outcomes
        self.malformed = malformed

    @property
    def removals(self) -> List[OidRemoval]:
        return [o for o in self.outcomes if o is not OidRemoval.KEPT]

    @property
    def he_removed(self) -> int:
        return sum(1 for o in self.outcomes if o is OidRemoval.REMOVED_HE)

    @property
    def hm_removed(self) -> int:
        return sum(1 for o in self.outcomes if o is OidRemoval.REMOVED_HM)

    @property
    def changed(self) -> bool:
        return any(o is not OidRemoval.KEPT for o in self.outcomes)


def _type_matches(entry: Dict[str, Any], wanted: str) -> bool:
    t = entry.get(OID_TYPE_KEY)
    return isinstance(t, str) and t.lower() == wanted


def classify_oid_entry(entry: Dict[str, Any]) -> OidRemoval:
    # an absent id key is not null-like; only an explicit null / "null" removes
    if OID_ID_KEY not in entry or not is_null_like(entry.get(OID_ID_KEY)):
        return OidRemoval.KEPT
    if _type_matches(entry, 'hm'):
        return OidRemoval.REMOVED_HM
    if _type_matches(entry, 'he'):
        return OidRemoval.REMOVED_HE
    return OidRemoval.KEPT


def filter_oid_entries(entries: Sequence[Any], identity: Optional[str] = None) -> OidFilterResult:
    """Drop he/hm entries whose id is null-like; keep everything else verbatim."""
    kept: List[Any] = []
    outcomes: List[OidRemoval] = []
    malformed = 0
    for idx, entry in enumerate(entries):
        if not isinstance(entry, dict):
            malformed += 1
            logger.warning('Malformed oid entry #%d for %s kept as-is: %r', idx, identity or '<unknown>', entry)
            kept.append(entry)
            outcomes.append(OidRemoval.KEPT)
            continue
        outcome = classify_oid_entry(entry)
        outcomes.append(outcome)
        if outcome is OidRemoval.KEPT:
            kept.append(entry)
    return OidFilterResult(kept, outcomes, malformed)
