from flask import jsonify
from flask_jwt_extended import jwt_required
from . import main, current_access, error_response
from ..crud import dashboard_crud
from ..errors import LedgerError


@main.route('/dashboard/summary', methods=['GET'])
@jwt_required()
def get_dashboard_summary():
    try:
        data = dashboard_crud.get_dashboard_summary(current_access())
        return jsonify(data), 200
    except LedgerError as e:
        return error_response('Failed to build dashboard', e)
