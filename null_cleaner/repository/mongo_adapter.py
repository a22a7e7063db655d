import logging
from typing import Any, Dict, Iterator, Optional

from pymongo.errors import PyMongoError

from null_cleaner.dto.decision_dto import NormalizationDecision
from null_cleaner.dto.run_report_dto import BackendKind
from null_cleaner.exception.BackendConnectivityError import BackendConnectivityError
from null_cleaner.exception.WriteFailure import WriteFailure
from null_cleaner.repository.base_adapter import BaseAdapter, Record
from null_cleaner.repository.mongo_helper import BACKEND, MongoConnection
from null_cleaner.services.record_normalizer import HE_FIELD, HM_FIELD

logger = logging.getLogger(__name__)

NULL_TEXT_PATTERN = {'$regex': r'^\s*null\s*$', '$options': 'i'}


def candidate_filter() -> Dict[str, Any]:
    """Documents whose he/hm is null (or missing) or holds the text 'null'."""
    return {'$or': [
        {HE_FIELD: None},
        {HM_FIELD: None},
        {HE_FIELD: NULL_TEXT_PATTERN},
        {HM_FIELD: NULL_TEXT_PATTERN},
    ]}


class MongoDocumentAdapter(BaseAdapter):
    """Document store backend: he/hm are native document fields, unset with $unset."""

    label = BACKEND
    kind = BackendKind.DOCUMENT

    def __init__(self, collection=None, connection: Optional[MongoConnection] = None, chunk_size: int = 500,
                 prefilter: bool = True):
        if collection is None and connection is None:
            raise ValueError('MongoDocumentAdapter needs a collection or a MongoConnection')
        self.collection = collection
        self.connection = connection
        self.chunk_size = chunk_size
        self.prefilter = prefilter

    def open(self):
        if self.collection is None:
            self.collection = self.connection.connect()
        return self

    def close(self):
        if self.connection is not None:
            self.connection.close()
            self.collection = None

    def records(self) -> Iterator[Record]:
        if self.collection is None:
            raise BackendConnectivityError(BACKEND, 'adapter is not open')
        query = candidate_filter() if self.prefilter else {}
        projection = {HE_FIELD: 1, HM_FIELD: 1}
        try:
            cursor = self.collection.find(query, projection).batch_size(self.chunk_size)
        except PyMongoError as e:
            raise BackendConnectivityError(BACKEND, f'cannot open cursor: {e}') from e
        try:
            for doc in cursor:
                doc_id = doc.get('_id')
                yield Record(doc_id, doc, identity=str(doc_id))
        except PyMongoError as e:
            raise BackendConnectivityError(BACKEND, f'cursor failed mid-scan: {e}') from e
        finally:
            cursor.close()

    def load_payload(self, record: Record) -> Dict[str, Any]:
        return {k: v for k, v in record.fields.items() if k != '_id'}

    def write(self, record: Record, decision: NormalizationDecision) -> bool:
        update = {}
        if decision.unset_fields:
            update['$unset'] = {f: '' for f in decision.unset_fields}
        if decision.set_fields:
            update['$set'] = dict(decision.set_fields)
        if not update:
            return True
        try:
            result = self.collection.update_one({'_id': record.key}, update)
        except PyMongoError as e:
            raise WriteFailure(record.identity, str(e)) from e
        return result.matched_count > 0
