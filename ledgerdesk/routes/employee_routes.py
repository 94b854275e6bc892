from flask import jsonify, request
from flask_jwt_extended import jwt_required
from . import main, current_access, error_response
from ..crud import employee_advance_crud
from ..errors import LedgerError


@main.route('/employees/<string:employee_id>/advances/list', methods=['GET'])
@jwt_required()
def list_advances(employee_id):
    try:
        advances = employee_advance_crud.list_advances(employee_id, current_access())
        return jsonify(advances), 200
    except LedgerError as e:
        return error_response('Failed to fetch advances', e)


@main.route('/employees/<string:employee_id>/advances/add', methods=['POST'])
@jwt_required()
def add_advance(employee_id):
    try:
        advance = employee_advance_crud.add_advance(employee_id, request.json or {}, current_access())
        return jsonify({'message': 'Advance added successfully', 'advance': advance}), 201
    except LedgerError as e:
        return error_response('Failed to add advance', e)


@main.route('/employees/<string:employee_id>/advances/<string:advance_id>/installments/add', methods=['POST'])
@jwt_required()
def add_advance_installment(employee_id, advance_id):
    try:
        advance = employee_advance_crud.add_advance_installment(
            employee_id, advance_id, request.json or {}, current_access())
        return jsonify({'message': 'Installment recorded successfully', 'advance': advance}), 201
    except LedgerError as e:
        return error_response('Failed to record installment', e)


@main.route('/employees/<string:employee_id>/advances/delete/<string:advance_id>', methods=['DELETE'])
@jwt_required()
def delete_advance(employee_id, advance_id):
    confirm = request.args.get('confirm', '').lower() in ('1', 'true', 'yes')
    try:
        advance = employee_advance_crud.delete_advance(employee_id, advance_id, current_access(), confirm=confirm)
        return jsonify({'message': 'Advance deleted successfully', 'advance': advance}), 200
    except LedgerError as e:
        return error_response('Failed to delete advance', e)
