import copy
import logging
import time
from abc import ABC, abstractmethod

from ledgerdesk.errors import NotFound, PersistenceError, ConcurrentModificationError

logger = logging.getLogger(__name__)


class StoredDocument:
    """A document as read from the store, with the version it was read at."""

    def __init__(self, doc_id, data, version):
        self.id = doc_id
        self.data = data
        self.version = version

    def to_dict(self):
        return {'id': self.id, **self.data}

    def __repr__(self):
        return f"<StoredDocument {self.id} v{self.version}>"


def _sort_key(field):
    def key(doc):
        value = doc.data.get(field)
        return (value is None, value if value is not None else '')
    return key


class RecordStore(ABC):
    """
    Document persistence: collections of JSON documents addressed by id.

    Subclasses list the exceptions that are worth retrying in
    `transient_errors`; only idempotent operations go through `_with_retry`.
    """

    transient_errors = ()

    def __init__(self, max_retries=3, retry_backoff=0.2):
        self.max_retries = max_retries
        self.retry_backoff = retry_backoff

    @abstractmethod
    def get(self, collection, doc_id):
        """Return the StoredDocument or raise NotFound."""

    @abstractmethod
    def create(self, collection, doc_id, data):
        """Insert a new document and return it."""

    @abstractmethod
    def put(self, collection, doc_id, data, expected_version=None):
        """
        Replace the whole document. When `expected_version` is given and the
        stored version differs, raise ConcurrentModificationError.
        """

    @abstractmethod
    def delete(self, collection, doc_id):
        """Remove the document or raise NotFound."""

    @abstractmethod
    def _all(self, collection):
        """Every StoredDocument of a collection, in no particular order."""

    @abstractmethod
    def _append(self, collection, doc_id, field, value):
        """Append one element to an array field as a single atomic write."""

    def exists(self, collection, doc_id):
        try:
            self.get(collection, doc_id)
            return True
        except NotFound:
            return False

    def query(self, collection, predicate=None, order_by=None, descending=False):
        docs = self._with_retry(lambda: self._all(collection), f"query {collection}")
        if predicate is not None:
            docs = [d for d in docs if predicate(d.data)]
        if order_by is not None:
            key = order_by if callable(order_by) else _sort_key(order_by)
            docs.sort(key=key, reverse=descending)
        return docs

    def update_fields(self, collection, doc_id, fields, expected_version=None):
        """Shallow-merge `fields` into the document and write it back."""
        current = self.get(collection, doc_id)
        if expected_version is None:
            expected_version = current.version
        data = copy.deepcopy(current.data)
        data.update(fields)
        return self.put(collection, doc_id, data, expected_version=expected_version)

    def append_to_array_field(self, collection, doc_id, field, value):
        """
        Atomically append `value` to the array `field`.

        An element identical to one already in the array is not appended
        again, which makes the call safe to retry. A different element under
        an id that is already taken raises ConcurrentModificationError.
        """
        return self._with_retry(
            lambda: self._append(collection, doc_id, field, copy.deepcopy(value)),
            f"append to {collection}/{doc_id}.{field}"
        )

    def _with_retry(self, operation, description):
        attempt = 0
        while True:
            try:
                return operation()
            except self.transient_errors as e:
                self._on_transient_error()
                if attempt >= self.max_retries:
                    logger.error(f"Giving up on {description} after {attempt + 1} attempts: {e}")
                    raise PersistenceError(f"Store unavailable: {description}")
                delay = self.retry_backoff * (2 ** attempt)
                logger.warning(f"Transient store error on {description}, retrying in {delay:.2f}s: {e}")
                time.sleep(delay)
                attempt += 1

    def _on_transient_error(self):
        pass

    @staticmethod
    def _is_replay(items, value):
        """
        True when `value` is already in `items`. An element with the same id
        but different content is another writer's record, and raises.
        """
        element_id = value.get('id') if isinstance(value, dict) else None
        if element_id is None:
            return False
        for item in items:
            if isinstance(item, dict) and item.get('id') == element_id:
                if item == value:
                    return True
                raise ConcurrentModificationError(
                    f"Another entry with id {element_id} was added concurrently", id=element_id
                )
        return False
