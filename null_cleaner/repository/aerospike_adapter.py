"""Key/record store backend.

Records normally carry the whole logical payload as JSON text in a single
bin (`pf` by default). That text is run through the payload repair ladder
and written back re-serialized. Legacy records without the payload bin
keep he/hm/oid as native bins; those are cleaned bin by bin.
"""
import logging
from typing import Any, Dict, Iterator, Optional

import aerospike
from aerospike import exception as aerospike_ex

from null_cleaner.dto.decision_dto import NormalizationDecision
from null_cleaner.dto.run_report_dto import BackendKind
from null_cleaner.exception.BackendConnectivityError import BackendConnectivityError
from null_cleaner.exception.WriteFailure import WriteFailure
from null_cleaner.repository.aerospike_helper import BACKEND, AerospikeConnection
from null_cleaner.repository.base_adapter import BaseAdapter, Record
from null_cleaner.utils.payload_repair import parse_object_payload, serialize_payload

logger = logging.getLogger(__name__)

DEFAULT_PAYLOAD_BIN = 'pf'


def key_identity(key) -> str:
    """Readable identity of an aerospike key tuple (namespace, set, user key, digest)."""
    if not isinstance(key, (tuple, list)) or len(key) < 3:
        return str(key)
    user_key = key[2]
    if user_key is not None:
        return str(user_key)
    digest = key[3] if len(key) > 3 else None
    if isinstance(digest, (bytes, bytearray)):
        return bytes(digest).hex()
    return str(digest)


class AerospikeRecordAdapter(BaseAdapter):
    label = BACKEND
    kind = BackendKind.KEY_RECORD

    def __init__(self, namespace: str, set_name: str, client=None, connection: Optional[AerospikeConnection] = None,
                 payload_bin: str = DEFAULT_PAYLOAD_BIN, chunk_size: int = 500):
        if client is None and connection is None:
            raise ValueError('AerospikeRecordAdapter needs a client or an AerospikeConnection')
        self.namespace = namespace
        self.set_name = set_name
        self.client = client
        self.connection = connection
        self.payload_bin = payload_bin
        self.chunk_size = chunk_size

    def open(self):
        if self.client is None:
            self.client = self.connection.connect()
        return self

    def close(self):
        if self.connection is not None:
            self.connection.close()
            self.client = None

    def records(self) -> Iterator[Record]:
        if self.client is None:
            raise BackendConnectivityError(BACKEND, 'adapter is not open')
        try:
            query = self.client.query(self.namespace, self.set_name)
            query.max_records = self.chunk_size
            query.paginate()
        except aerospike_ex.AerospikeError as e:
            raise BackendConnectivityError(BACKEND, f'cannot open query on {self.namespace}.{self.set_name}: {e}') from e

        while True:
            try:
                page = query.results()
            except aerospike_ex.AerospikeError as e:
                raise BackendConnectivityError(BACKEND, f'query failed mid-scan: {e}') from e
            for key, _meta, bins in page:
                yield Record(key, bins or {}, identity=key_identity(key))
            if not page or query.is_done():
                return

    def uses_payload_bin(self, record: Record) -> bool:
        return self.payload_bin in record.fields

    def load_payload(self, record: Record):
        if not self.uses_payload_bin(record):
            return dict(record.fields)
        raw = record.fields[self.payload_bin]
        # map-typed bins are already structured
        if isinstance(raw, dict):
            return dict(raw)
        result = parse_object_payload(raw, record.identity)
        return result.value if result.ok else result

    def build_bins(self, record: Record, decision: NormalizationDecision) -> Dict[str, Any]:
        if self.uses_payload_bin(record):
            if isinstance(record.fields[self.payload_bin], dict):
                return {self.payload_bin: decision.updated_payload}
            return {self.payload_bin: serialize_payload(decision.updated_payload)}
        bins = {f: aerospike.null() for f in decision.unset_fields}
        bins.update(decision.set_fields)
        return bins

    def write(self, record: Record, decision: NormalizationDecision) -> bool:
        bins = self.build_bins(record, decision)
        meta = {'ttl': aerospike.TTL_DONT_UPDATE}
        policy = {'exists': aerospike.POLICY_EXISTS_UPDATE}
        try:
            self.client.put(record.key, bins, meta=meta, policy=policy)
        except aerospike_ex.RecordNotFound:
            logger.warning('Record %s vanished before it could be updated', record.identity)
            return False
        except aerospike_ex.AerospikeError as e:
            raise WriteFailure(record.identity, str(e)) from e
        return True
