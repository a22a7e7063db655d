# tests/conftest.py
import copy

import pytest

from null_cleaner.dto.run_report_dto import BackendKind
from null_cleaner.exception.BackendConnectivityError import BackendConnectivityError
from null_cleaner.exception.WriteFailure import WriteFailure
from null_cleaner.repository.base_adapter import BaseAdapter, Record


class InMemoryAdapter(BaseAdapter):
    """Document-style adapter over a dict of key -> fields; writes apply $unset/$set semantics."""

    label = 'Memory'
    kind = BackendKind.DOCUMENT

    def __init__(self, docs, fail_keys=(), reject_keys=(), fail_open=False, label=None, kind=None):
        self.store = {k: copy.deepcopy(v) for k, v in docs.items()}
        self.fail_keys = set(fail_keys)
        self.reject_keys = set(reject_keys)
        self.fail_open = fail_open
        self.writes = []
        self.opened = False
        self.closed = False
        if label:
            self.label = label
        if kind:
            self.kind = kind

    def open(self):
        if self.fail_open:
            raise BackendConnectivityError(self.label, 'connection refused')
        self.opened = True
        return self

    def close(self):
        self.closed = True

    def records(self):
        for key in list(self.store):
            yield Record(key, copy.deepcopy(self.store[key]), identity=str(key))

    def load_payload(self, record):
        return dict(record.fields)

    def write(self, record, decision):
        self.writes.append((record.key, decision))
        if record.key in self.fail_keys:
            raise WriteFailure(record.identity, 'simulated backend rejection')
        if record.key in self.reject_keys:
            return False
        doc = self.store[record.key]
        for field in decision.unset_fields:
            doc.pop(field, None)
        doc.update(copy.deepcopy(decision.set_fields))
        return True


class FakeUpdateResult:
    def __init__(self, matched_count):
        self.matched_count = matched_count
        self.modified_count = matched_count


class FakeCursor:
    def __init__(self, docs, error_after=None, error=None):
        self.docs = docs
        self.batch = None
        self.closed = False
        self.error_after = error_after
        self.error = error

    def batch_size(self, n):
        self.batch = n
        return self

    def __iter__(self):
        for i, doc in enumerate(self.docs):
            if self.error_after is not None and i >= self.error_after:
                raise self.error
            yield copy.deepcopy(doc)

    def close(self):
        self.closed = True


class FakeCollection:
    """Just enough of pymongo.collection.Collection for the document adapter."""

    def __init__(self, docs):
        self.docs = {d['_id']: copy.deepcopy(d) for d in docs}
        self.find_calls = []
        self.updates = []
        self.cursor = None
        self.update_error = None

    def find(self, query=None, projection=None):
        self.find_calls.append((query, projection))
        projected = []
        for doc in self.docs.values():
            if projection:
                projected.append({k: v for k, v in doc.items() if k == '_id' or k in projection})
            else:
                projected.append(doc)
        self.cursor = FakeCursor(projected)
        return self.cursor

    def update_one(self, flt, update):
        if self.update_error is not None:
            raise self.update_error
        self.updates.append((flt, update))
        doc = self.docs.get(flt['_id'])
        if doc is None:
            return FakeUpdateResult(0)
        for field in update.get('$unset', {}):
            doc.pop(field, None)
        doc.update(update.get('$set', {}))
        return FakeUpdateResult(1)


class FakeQuery:
    def __init__(self, client, namespace, set_name):
        self.client = client
        self.namespace = namespace
        self.set_name = set_name
        self.max_records = None
        self.paginated = False
        self._offset = 0

    def paginate(self):
        self.paginated = True

    def results(self, policy=None):
        self.client.result_calls += 1
        keys = sorted(self.client.records)
        page_keys = keys[self._offset:self._offset + self.max_records]
        self._offset += len(page_keys)
        return [(self.client.key_of(k), {'gen': 1}, copy.deepcopy(self.client.records[k])) for k in page_keys]

    def is_done(self):
        return self._offset >= len(self.client.records)


class FakeAerospikeClient:
    """Stores bins per user key; put() merges bins and drops bins set to the null marker."""

    def __init__(self, namespace, set_name, records, null_marker=None):
        self.namespace = namespace
        self.set_name = set_name
        self.records = {k: copy.deepcopy(v) for k, v in records.items()}
        self.puts = []
        self.result_calls = 0
        self.null_marker_type = type(null_marker) if null_marker is not None else None
        self.put_error = None

    def key_of(self, user_key):
        return (self.namespace, self.set_name, user_key, bytearray(b'\x01\x02'))

    def query(self, namespace, set_name):
        return FakeQuery(self, namespace, set_name)

    def put(self, key, bins, meta=None, policy=None):
        if self.put_error is not None:
            raise self.put_error
        self.puts.append((key, copy.deepcopy(bins) if self.null_marker_type is None else dict(bins), meta, policy))
        rec = self.records[key[2]]
        for name, value in bins.items():
            if self.null_marker_type is not None and isinstance(value, self.null_marker_type):
                rec.pop(name, None)
            else:
                rec[name] = copy.deepcopy(value)


@pytest.fixture
def memory_adapter_factory():
    return InMemoryAdapter
