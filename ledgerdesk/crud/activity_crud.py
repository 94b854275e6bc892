from ledgerdesk.access import require_edit, require_view
from ledgerdesk.errors import ValidationError, PersistenceError
from ledgerdesk.store import get_record_store
from ledgerdesk.utils.logging_utils import log_action
import logging

logger = logging.getLogger(__name__)

# collections that carry an activity log, and the menu guarding each
ACTIVITY_MENUS = {
    'customers': 'Customers',
    'leads': 'Leads',
}


def _menu(collection):
    try:
        return ACTIVITY_MENUS[collection]
    except KeyError:
        raise ValidationError(f"{collection} records have no activity log", collection=collection)


def get_activities(collection, doc_id, access, page=1, page_size=20, store=None):
    """Newest first by timestamp; insertion order is not trusted."""
    require_view(access, _menu(collection))
    store = store or get_record_store()
    doc = store.get(collection, doc_id)
    activities = sorted(doc.data.get('activities') or [], key=lambda a: a.get('timestamp') or '', reverse=True)
    total = len(activities)
    start = (page - 1) * page_size
    return activities[start:start + page_size], total


def add_custom_activity(collection, doc_id, text, access, store=None):
    require_edit(access, _menu(collection))
    if not text or not str(text).strip():
        raise ValidationError("Please enter activity description", field='details')
    store = store or get_record_store()
    store.get(collection, doc_id)
    activity = log_action(store, collection, doc_id, access, 'Custom Activity', str(text).strip())
    if activity is None:
        raise PersistenceError("Failed to add activity")
    return activity.to_doc()
