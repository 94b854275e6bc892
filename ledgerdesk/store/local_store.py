import copy
import json
import logging
import os
import threading

from ledgerdesk.errors import NotFound, PersistenceError, ConcurrentModificationError, ValidationError
from ledgerdesk.store.base import RecordStore, StoredDocument

logger = logging.getLogger(__name__)


class LocalRecordStore(RecordStore):
    """
    Key-value blob store: one JSON blob per collection, kept in memory and
    flushed to `path` after every write when a path is configured.
    """

    def __init__(self, path=None, **kwargs):
        super().__init__(**kwargs)
        self.path = path
        self._lock = threading.RLock()
        self._blobs = {}
        if path and os.path.exists(path):
            self._load()

    def _load(self):
        try:
            with open(self.path, encoding='utf-8') as fh:
                self._blobs = json.load(fh)
        except (OSError, ValueError) as e:
            logger.error(f"Could not read local store {self.path}: {e}")
            raise PersistenceError("Local store is unreadable")

    def _flush(self):
        if not self.path:
            return
        tmp_path = f"{self.path}.tmp"
        try:
            with open(tmp_path, 'w', encoding='utf-8') as fh:
                json.dump(self._blobs, fh)
            os.replace(tmp_path, self.path)
        except OSError as e:
            logger.error(f"Could not write local store {self.path}: {e}")
            raise PersistenceError("Failed to save local store")

    def _entry(self, collection, doc_id):
        entry = self._blobs.get(collection, {}).get(str(doc_id))
        if entry is None:
            raise NotFound(f"{collection} record {doc_id} not found", collection=collection, id=str(doc_id))
        return entry

    def _commit(self, collection, doc_id, entry):
        blob = self._blobs.setdefault(collection, {})
        previous = blob.get(str(doc_id))
        blob[str(doc_id)] = entry
        try:
            self._flush()
        except PersistenceError:
            if previous is None:
                del blob[str(doc_id)]
            else:
                blob[str(doc_id)] = previous
            raise
        return StoredDocument(str(doc_id), copy.deepcopy(entry['data']), entry['version'])

    def get(self, collection, doc_id):
        with self._lock:
            entry = self._entry(collection, doc_id)
            return StoredDocument(str(doc_id), copy.deepcopy(entry['data']), entry['version'])

    def _all(self, collection):
        with self._lock:
            return [
                StoredDocument(doc_id, copy.deepcopy(entry['data']), entry['version'])
                for doc_id, entry in self._blobs.get(collection, {}).items()
            ]

    def create(self, collection, doc_id, data):
        with self._lock:
            if str(doc_id) in self._blobs.get(collection, {}):
                raise ValidationError(f"{collection} record {doc_id} already exists", id=str(doc_id))
            return self._commit(collection, doc_id, {'data': copy.deepcopy(data), 'version': 1})

    def put(self, collection, doc_id, data, expected_version=None):
        with self._lock:
            entry = self._entry(collection, doc_id)
            if expected_version is not None and entry['version'] != expected_version:
                raise ConcurrentModificationError(
                    f"{collection} record {doc_id} was modified by someone else",
                    expected=expected_version, actual=entry['version']
                )
            return self._commit(collection, doc_id, {'data': copy.deepcopy(data), 'version': entry['version'] + 1})

    def delete(self, collection, doc_id):
        with self._lock:
            self._entry(collection, doc_id)
            blob = self._blobs[collection]
            previous = blob.pop(str(doc_id))
            try:
                self._flush()
            except PersistenceError:
                blob[str(doc_id)] = previous
                raise

    def _append(self, collection, doc_id, field, value):
        with self._lock:
            entry = self._entry(collection, doc_id)
            items = list(entry['data'].get(field) or [])
            if self._is_replay(items, value):
                return StoredDocument(str(doc_id), copy.deepcopy(entry['data']), entry['version'])
            data = dict(entry['data'])
            data[field] = items + [value]
            return self._commit(collection, doc_id, {'data': data, 'version': entry['version'] + 1})
