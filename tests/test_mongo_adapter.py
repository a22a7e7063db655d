import pytest
from pymongo.errors import AutoReconnect, OperationFailure, ServerSelectionTimeoutError

from null_cleaner.dto.decision_dto import NormalizationDecision, NullClassification
from null_cleaner.exception.BackendConnectivityError import BackendConnectivityError
from null_cleaner.exception.WriteFailure import WriteFailure
from null_cleaner.repository.base_adapter import Record
from null_cleaner.repository.mongo_adapter import MongoDocumentAdapter, candidate_filter
from null_cleaner.repository.mongo_helper import MongoConnection
from null_cleaner.services.batch_runner import BatchRunner

from tests.conftest import FakeCollection, FakeCursor


def test_cleans_null_fields_with_unset():
    coll = FakeCollection([
        {'_id': 1, 'he': None, 'hm': 'v', 'name': 'a'},
        {'_id': 2, 'he': 'null', 'hm': 'NULL'},
        {'_id': 3, 'he': 'x', 'hm': 'y'},
    ])
    adapter = MongoDocumentAdapter(collection=coll, chunk_size=2)
    with adapter:
        counters = BatchRunner(chunk_size=2).run(adapter).counters
    assert counters.total_processed == 3
    assert counters.updated == 2
    assert counters.only_he_null == 1 and counters.both_null == 1
    assert coll.updates[0] == ({'_id': 1}, {'$unset': {'he': ''}})
    assert coll.updates[1] == ({'_id': 2}, {'$unset': {'he': '', 'hm': ''}})
    assert coll.docs[1] == {'_id': 1, 'hm': 'v', 'name': 'a'}
    assert coll.cursor.batch == 2
    assert coll.cursor.closed


def test_prefilter_and_projection():
    coll = FakeCollection([])
    list(MongoDocumentAdapter(collection=coll).records())
    query, projection = coll.find_calls[0]
    assert query == candidate_filter()
    assert projection == {'he': 1, 'hm': 1}

    list(MongoDocumentAdapter(collection=coll, prefilter=False).records())
    assert coll.find_calls[1][0] == {}


def test_payload_excludes_id():
    adapter = MongoDocumentAdapter(collection=FakeCollection([]))
    assert adapter.load_payload(Record(7, {'_id': 7, 'he': None})) == {'he': None}


def test_write_error_becomes_write_failure():
    coll = FakeCollection([{'_id': 1, 'he': None}])
    coll.update_error = OperationFailure('document validation failed')
    adapter = MongoDocumentAdapter(collection=coll)
    counters = BatchRunner().run(adapter).counters
    assert counters.write_failures == 1
    assert counters.updated == 0

    with pytest.raises(WriteFailure):
        adapter.write(Record(1, {}), NormalizationDecision(NullClassification.HE_ONLY, unset_fields=['he']))


def test_vanished_document_is_not_counted_as_updated():
    coll = FakeCollection([{'_id': 1, 'he': None}])
    adapter = MongoDocumentAdapter(collection=coll)
    original_find = coll.find

    def find_then_delete(*args, **kwargs):
        cursor = original_find(*args, **kwargs)
        coll.docs.clear()
        return cursor

    coll.find = find_then_delete
    counters = BatchRunner().run(adapter).counters
    assert counters.updated == 0
    assert counters.write_failures == 1


def test_cursor_failure_is_a_connectivity_error():
    coll = FakeCollection([{'_id': 1, 'he': None}, {'_id': 2, 'he': None}])

    def broken_find(query=None, projection=None):
        return FakeCursor([{'_id': 1, 'he': None}, {'_id': 2}], error_after=1, error=AutoReconnect('lost'))

    coll.find = broken_find
    with pytest.raises(BackendConnectivityError):
        BatchRunner().run(MongoDocumentAdapter(collection=coll))


def test_unreachable_server_fails_on_open(monkeypatch):
    class DownClient:
        def __init__(self, *args, **kwargs):
            self.admin = self

        def command(self, name):
            raise ServerSelectionTimeoutError('no servers')

        def close(self):
            pass

    monkeypatch.setattr('null_cleaner.repository.mongo_helper.MongoClient', DownClient)
    adapter = MongoDocumentAdapter(connection=MongoConnection('mongodb://nowhere', 'db', 'coll'))
    with pytest.raises(BackendConnectivityError):
        adapter.open()


def test_needs_collection_or_connection():
    with pytest.raises(ValueError):
        MongoDocumentAdapter()
