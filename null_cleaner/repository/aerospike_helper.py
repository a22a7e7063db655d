import logging

import aerospike
from aerospike import exception as aerospike_ex

from null_cleaner.exception.BackendConnectivityError import BackendConnectivityError

logger = logging.getLogger(__name__)

BACKEND = 'Aerospike'


class AerospikeConnection:
    """Owns one aerospike client for the namespace/set being cleaned."""

    def __init__(self, host: str, port: int, timeout_ms: int = 5000):
        self.host = host
        self.port = port
        self.timeout_ms = timeout_ms
        self.client = None

    def client_config(self):
        return {
            'hosts': [(self.host, self.port)],
            'policies': {
                'read': {'total_timeout': self.timeout_ms},
                'write': {'total_timeout': self.timeout_ms},
            },
        }

    def connect(self):
        if self.client is not None:
            return self.client
        logger.info(f"[AerospikeConnection] Connecting to Aerospike at {self.host}:{self.port}")
        try:
            client = aerospike.client(self.client_config())
            if not client.is_connected():
                client.connect()
        except aerospike_ex.AerospikeError as e:
            raise BackendConnectivityError(BACKEND, f'cannot reach {self.host}:{self.port}: {e}') from e
        self.client = client
        return client

    def close(self):
        if self.client is not None:
            try:
                self.client.close()
            except aerospike_ex.AerospikeError:
                logger.exception('Error while closing Aerospike client')
        self.client = None
