from pymongo import MongoClient
from pymongo.errors import PyMongoError
import logging

from null_cleaner.exception.BackendConnectivityError import BackendConnectivityError

logger = logging.getLogger(__name__)

BACKEND = 'MongoDB'


class MongoConnection:
    """Owns one MongoClient and hands out the collection being cleaned.

    connect() pings the server so an unreachable cluster fails before the
    scan starts instead of on the first cursor batch.
    """

    def __init__(self, uri: str, db_name: str, collection_name: str, server_selection_timeout_ms: int = 5000):
        self.uri = uri
        self.db_name = db_name
        self.collection_name = collection_name
        self.server_selection_timeout_ms = server_selection_timeout_ms
        self.client = None
        self.db = None
        self.collection = None

    def connect(self):
        if self.collection is not None:
            return self.collection
        logger.info(f"[MongoConnection] Connecting to MongoDB DB: {self.db_name}, collection: {self.collection_name}")
        try:
            self.client = MongoClient(self.uri, serverSelectionTimeoutMS=self.server_selection_timeout_ms)
            self.client.admin.command('ping')
        except PyMongoError as e:
            self.close()
            raise BackendConnectivityError(BACKEND, f'cannot reach {self.db_name}.{self.collection_name}: {e}') from e
        self.db = self.client[self.db_name]
        self.collection = self.db[self.collection_name]
        return self.collection

    def close(self):
        if self.client is not None:
            try:
                self.client.close()
            except Exception:
                logger.exception('Error while closing MongoDB client')
        self.client = None
        self.db = None
        self.collection = None
