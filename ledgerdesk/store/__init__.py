from flask import current_app

from ledgerdesk.store.base import RecordStore, StoredDocument
from ledgerdesk.store.local_store import LocalRecordStore
from ledgerdesk.store.sql_store import SQLRecordStore


def build_record_store(config):
    options = {
        'max_retries': config.get('RECORD_STORE_MAX_RETRIES', 3),
        'retry_backoff': config.get('RECORD_STORE_RETRY_BACKOFF', 0.2),
    }
    kind = config.get('RECORD_STORE', 'sql')
    if kind == 'sql':
        return SQLRecordStore(**options)
    if kind == 'local':
        return LocalRecordStore(path=config.get('LOCAL_STORE_PATH'), **options)
    raise ValueError(f"Unknown RECORD_STORE: {kind}")


def init_record_store(app):
    app.extensions['record_store'] = build_record_store(app.config)


def get_record_store():
    return current_app.extensions['record_store']
