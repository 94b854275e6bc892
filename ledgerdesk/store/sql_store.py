import copy
import logging

from sqlalchemy.exc import SQLAlchemyError, OperationalError, IntegrityError
from sqlalchemy.orm.exc import StaleDataError

from ledgerdesk import db
from ledgerdesk.models import Document
from ledgerdesk.errors import NotFound, PersistenceError, ConcurrentModificationError, ValidationError
from ledgerdesk.store.base import RecordStore, StoredDocument

logger = logging.getLogger(__name__)


class SQLRecordStore(RecordStore):
    """Record store on the application database, one `documents` row per document."""

    # A stale version on append only means another writer got in first; the
    # append re-reads the row, so it can simply run again.
    transient_errors = (OperationalError, StaleDataError)

    def _row(self, collection, doc_id, for_update=False):
        row = db.session.get(
            Document, (collection, str(doc_id)),
            populate_existing=True,
            with_for_update=for_update
        )
        if row is None:
            raise NotFound(f"{collection} record {doc_id} not found", collection=collection, id=str(doc_id))
        return row

    @staticmethod
    def _stored(row):
        return StoredDocument(row.doc_id, copy.deepcopy(row.body), row.version)

    def _on_transient_error(self):
        db.session.rollback()

    def get(self, collection, doc_id):
        return self._with_retry(lambda: self._stored(self._row(collection, doc_id)), f"get {collection}/{doc_id}")

    def _all(self, collection):
        rows = Document.query.filter_by(collection=collection).populate_existing().all()
        return [self._stored(row) for row in rows]

    def create(self, collection, doc_id, data):
        try:
            row = Document(collection=collection, doc_id=str(doc_id), body=copy.deepcopy(data))
            db.session.add(row)
            db.session.commit()
            return self._stored(row)
        except IntegrityError:
            db.session.rollback()
            raise ValidationError(f"{collection} record {doc_id} already exists", id=str(doc_id))
        except SQLAlchemyError as e:
            logger.error(f"Database error creating {collection}/{doc_id}: {e}")
            db.session.rollback()
            raise PersistenceError(f"Failed to save {collection} record")

    def put(self, collection, doc_id, data, expected_version=None):
        try:
            row = self._row(collection, doc_id)
            if expected_version is not None and row.version != expected_version:
                raise ConcurrentModificationError(
                    f"{collection} record {doc_id} was modified by someone else",
                    expected=expected_version, actual=row.version
                )
            row.body = copy.deepcopy(data)
            db.session.commit()
            return self._stored(row)
        except StaleDataError:
            db.session.rollback()
            raise ConcurrentModificationError(f"{collection} record {doc_id} was modified by someone else")
        except SQLAlchemyError as e:
            logger.error(f"Database error writing {collection}/{doc_id}: {e}")
            db.session.rollback()
            raise PersistenceError(f"Failed to save {collection} record")

    def delete(self, collection, doc_id):
        try:
            row = self._row(collection, doc_id)
            db.session.delete(row)
            db.session.commit()
        except SQLAlchemyError as e:
            logger.error(f"Database error deleting {collection}/{doc_id}: {e}")
            db.session.rollback()
            raise PersistenceError(f"Failed to delete {collection} record")

    def _append(self, collection, doc_id, field, value):
        try:
            row = self._row(collection, doc_id, for_update=True)
            items = list(row.body.get(field) or [])
            if self._is_replay(items, value):
                logger.info(f"Skipping duplicate append of {value.get('id')} to {collection}/{doc_id}.{field}")
                return self._stored(row)
            body = dict(row.body)
            body[field] = items + [value]
            row.body = body
            db.session.commit()
            return self._stored(row)
        except ConcurrentModificationError:
            db.session.rollback()
            raise
        except self.transient_errors:
            raise
        except SQLAlchemyError as e:
            logger.error(f"Database error appending to {collection}/{doc_id}.{field}: {e}")
            db.session.rollback()
            raise PersistenceError(f"Failed to save {collection} record")
