import threading

from null_cleaner.dto.run_report_dto import BackendKind
from null_cleaner.services import cleaner_service
from null_cleaner.services.cleaner_service import run_backend, run_backends

from tests.conftest import InMemoryAdapter


def test_run_backend_opens_closes_and_reports():
    adapter = InMemoryAdapter({'a': {'he': None}, 'b': {'hm': 'null', 'he': 'null'}}, label='MongoDB')
    report = run_backend(adapter, chunk_size=10)
    assert adapter.opened and adapter.closed
    assert report.label == 'MongoDB'
    assert report.total_processed == 2
    assert report.updated == 2
    assert report.either_null == 2


def test_backends_run_independently():
    mongo = InMemoryAdapter({'a': {'he': None}}, label='MongoDB')
    aero = InMemoryAdapter({'k': {'oid': [{'type': 'he', 'id': None}]}}, label='Aerospike',
                           kind=BackendKind.KEY_RECORD)
    result = run_backends([aero, mongo], chunk_size=5)
    assert result.ok
    assert result.reports['MongoDB'].updated == 1
    assert result.reports['Aerospike'].null_he_oid_removed == 1
    text = result.render()
    assert text.index('Aerospike Cleaner') < text.index('MongoDB Cleaner')
    assert "type='he'" in text


def test_connectivity_failure_does_not_stop_other_backend():
    down = InMemoryAdapter({'a': {'he': None}}, label='Aerospike', fail_open=True)
    up = InMemoryAdapter({'a': {'he': None}}, label='MongoDB')
    result = run_backends([down, up], chunk_size=5)
    assert not result.ok
    assert 'Aerospike' in result.failures
    assert 'Aerospike' not in result.reports
    assert result.reports['MongoDB'].updated == 1


def test_deadline_abandons_slow_run():
    release = threading.Event()
    finished = threading.Event()

    class Slow(InMemoryAdapter):
        def records(self):
            release.wait(5)
            yield from super().records()

        def close(self):
            super().close()
            finished.set()

    slow = Slow({'a': {'he': None}}, label='Aerospike')
    fast = InMemoryAdapter({'a': {'he': None}}, label='MongoDB')
    try:
        result = run_backends([slow, fast], chunk_size=5, deadline_seconds=0.5)
    finally:
        release.set()
    assert result.timed_out == ['Aerospike']
    assert 'Aerospike' not in result.reports
    assert 'MongoDB' in result.reports
    assert not result.ok
    # the abandoned run resumes after the deadline but stops before writing
    assert finished.wait(5)
    assert slow.writes == []
    assert slow.store == {'a': {'he': None}}


def test_adapters_built_from_config():
    class Cfg:
        MONGO_URI = 'mongodb://db:27017'
        MONGO_DB = 'profiles'
        MONGO_COLLECTION = 'users'
        MONGO_TIMEOUT_MS = 100
        CHUNK_SIZE = 500
        AEROSPIKE_HOST = 'as'
        AEROSPIKE_PORT = 3000
        AEROSPIKE_TIMEOUT_MS = 100
        AEROSPIKE_NAMESPACE = 'ns'
        AEROSPIKE_SET = 'set'
        AEROSPIKE_PAYLOAD_BIN = 'payload'

    mongo = cleaner_service.build_mongo_adapter(Cfg, chunk_size=50, prefilter=False)
    assert mongo.chunk_size == 50 and not mongo.prefilter
    assert mongo.connection.collection_name == 'users'

    aero = cleaner_service.build_aerospike_adapter(Cfg)
    assert aero.chunk_size == 500
    assert aero.payload_bin == 'payload'
    assert aero.connection.client_config()['hosts'] == [('as', 3000)]
