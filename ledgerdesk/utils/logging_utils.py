import logging

from ledgerdesk.errors import LedgerError
from ledgerdesk.ledger.models import Activity
from ledgerdesk.utils.date_utils import get_local_now, display_date, display_time
from ledgerdesk.utils.ids import new_id

logger = logging.getLogger(__name__)


def build_activity(access, action, details='', field=None, before=None, after=None, existing_ids=()):
    now = get_local_now()
    return Activity(
        id=new_id(existing_ids),
        action=action,
        details=details or '',
        user_name=access.user_name if access else 'Unknown User',
        timestamp=now.isoformat(),
        date=display_date(now),
        time=display_time(now),
        field=field,
        before=before,
        after=after,
    )


def with_activity(data, activity):
    """Copy of a document body with `activity` appended to its log."""
    body = dict(data)
    body['activities'] = list(data.get('activities') or []) + [activity.to_doc()]
    return body


def log_action(store, collection, doc_id, access, action, details='', field=None, before=None, after=None):
    """
    Append an activity entry to a customer or lead document. The change it
    describes is already stored, so a failure here is logged and reported
    back as None instead of failing the caller's operation.
    """
    try:
        existing = [a.get('id') for a in store.get(collection, doc_id).data.get('activities') or []]
        activity = build_activity(access, action, details, field, before, after, existing_ids=existing)
        store.append_to_array_field(collection, doc_id, 'activities', activity.to_doc())
        return activity
    except LedgerError as e:
        logger.error(f"Could not record activity '{action}' on {collection}/{doc_id}: {e.message}")
        return None
