from flask import jsonify, request
from flask_jwt_extended import jwt_required
from . import main, current_access, error_response
from ..crud import activity_crud
from ..errors import LedgerError


@main.route('/activities/<string:collection>/<string:doc_id>', methods=['GET'])
@jwt_required()
def get_activities(collection, doc_id):
    page = request.args.get('page', 1, type=int)
    page_size = request.args.get('page_size', 20, type=int)
    try:
        items, total = activity_crud.get_activities(collection, doc_id, current_access(), page=page, page_size=page_size)
        return jsonify({'items': items, 'total': total}), 200
    except LedgerError as e:
        return error_response('Failed to fetch activities', e)


@main.route('/activities/<string:collection>/<string:doc_id>/add', methods=['POST'])
@jwt_required()
def add_custom_activity(collection, doc_id):
    try:
        activity = activity_crud.add_custom_activity(collection, doc_id, (request.json or {}).get('details'), current_access())
        return jsonify({'message': 'Activity added successfully', 'activity': activity}), 201
    except LedgerError as e:
        return error_response('Failed to add activity', e)
