from flask import Blueprint, jsonify
from flask_jwt_extended import get_jwt
from ledgerdesk.access import AccessContext
from ledgerdesk.errors import LedgerError
import logging

main = Blueprint('main', __name__)

logger = logging.getLogger(__name__)


def current_access():
    return AccessContext.from_claims(get_jwt())


def error_response(error, e):
    """JSON body and status for a LedgerError raised by a crud call."""
    if e.status_code >= 500:
        logger.error(f"{error}: {e.message}")
    body = {'error': error, 'message': e.message}
    if e.details:
        body['details'] = e.details
    return jsonify(body), e.status_code


@main.app_errorhandler(LedgerError)
def handle_ledger_error(e):
    return error_response(type(e).__name__, e)


from . import customer_ledger_routes
from . import employee_routes
from . import entity_routes
from . import activity_routes
from . import dashboard_routes
