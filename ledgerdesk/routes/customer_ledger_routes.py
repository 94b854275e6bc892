from flask import jsonify, request
from flask_jwt_extended import jwt_required
from . import main, current_access, error_response
from ..crud import customer_ledger_crud
from ..errors import LedgerError


def _flag(name):
    return request.args.get(name, '').lower() in ('1', 'true', 'yes')


@main.route('/customers/<string:customer_id>/ledger', methods=['GET'])
@jwt_required()
def get_customer_ledger(customer_id):
    try:
        ledger = customer_ledger_crud.get_customer_ledger(customer_id, current_access())
        return jsonify(ledger), 200
    except LedgerError as e:
        return error_response('Failed to fetch ledger', e)


@main.route('/customers/<string:customer_id>/profile', methods=['PUT'])
@jwt_required()
def update_customer_profile(customer_id):
    try:
        customer = customer_ledger_crud.update_profile(customer_id, request.json or {}, current_access())
        return jsonify({'message': 'Profile updated successfully', 'customer': customer}), 200
    except LedgerError as e:
        return error_response('Failed to update profile', e)


# works

@main.route('/customers/<string:customer_id>/works/add', methods=['POST'])
@jwt_required()
def add_work(customer_id):
    try:
        work = customer_ledger_crud.add_work(customer_id, request.json or {}, current_access())
        return jsonify({'message': 'Work added successfully', 'work': work}), 201
    except LedgerError as e:
        return error_response('Failed to add work', e)


@main.route('/customers/<string:customer_id>/works/update/<string:work_id>', methods=['PUT'])
@jwt_required()
def update_work(customer_id, work_id):
    try:
        work = customer_ledger_crud.update_work(customer_id, work_id, request.json or {}, current_access())
        return jsonify({'message': 'Work updated successfully', 'work': work}), 200
    except LedgerError as e:
        return error_response('Failed to update work', e)


@main.route('/customers/<string:customer_id>/works/delete/<string:work_id>', methods=['DELETE'])
@jwt_required()
def delete_work(customer_id, work_id):
    try:
        result = customer_ledger_crud.delete_work(customer_id, work_id, current_access(), cascade=_flag('cascade'))
        return jsonify({'message': 'Work deleted successfully', **result}), 200
    except LedgerError as e:
        return error_response('Failed to delete work', e)


# materials

@main.route('/customers/<string:customer_id>/materials/add', methods=['POST'])
@jwt_required()
def add_material_consumption(customer_id):
    try:
        material = customer_ledger_crud.add_material_consumption(customer_id, request.json or {}, current_access())
        return jsonify({'message': 'Material added successfully', 'material': material}), 201
    except LedgerError as e:
        return error_response('Failed to add material', e)


@main.route('/customers/<string:customer_id>/materials/update/<string:material_id>', methods=['PUT'])
@jwt_required()
def update_material_consumption(customer_id, material_id):
    try:
        material = customer_ledger_crud.update_material_consumption(
            customer_id, material_id, request.json or {}, current_access())
        return jsonify({'message': 'Material updated successfully', 'material': material}), 200
    except LedgerError as e:
        return error_response('Failed to update material', e)


@main.route('/customers/<string:customer_id>/materials/delete/<string:material_id>', methods=['DELETE'])
@jwt_required()
def delete_material_consumption(customer_id, material_id):
    try:
        material = customer_ledger_crud.delete_material_consumption(customer_id, material_id, current_access())
        return jsonify({'message': 'Material deleted successfully', 'material': material}), 200
    except LedgerError as e:
        return error_response('Failed to delete material', e)


# payment records and installments

@main.route('/customers/<string:customer_id>/payment-records/add', methods=['POST'])
@jwt_required()
def create_payment_record(customer_id):
    try:
        record = customer_ledger_crud.create_payment_record(customer_id, request.json or {}, current_access())
        return jsonify({'message': 'Payment record created successfully', 'paymentRecord': record}), 201
    except LedgerError as e:
        return error_response('Failed to create payment record', e)


@main.route('/customers/<string:customer_id>/payment-records/update/<string:record_id>', methods=['PUT'])
@jwt_required()
def update_payment_record(customer_id, record_id):
    try:
        record = customer_ledger_crud.update_payment_record(customer_id, record_id, request.json or {}, current_access())
        return jsonify({'message': 'Payment record updated successfully', 'paymentRecord': record}), 200
    except LedgerError as e:
        return error_response('Failed to update payment record', e)


@main.route('/customers/<string:customer_id>/payment-records/delete/<string:record_id>', methods=['DELETE'])
@jwt_required()
def delete_payment_record(customer_id, record_id):
    try:
        record = customer_ledger_crud.delete_payment_record(customer_id, record_id, current_access())
        return jsonify({'message': 'Payment record deleted successfully', 'paymentRecord': record}), 200
    except LedgerError as e:
        return error_response('Failed to delete payment record', e)


@main.route('/customers/<string:customer_id>/payment-records/<string:record_id>/installments/add', methods=['POST'])
@jwt_required()
def add_installment(customer_id, record_id):
    try:
        installment = customer_ledger_crud.add_installment(customer_id, record_id, request.json or {}, current_access())
        return jsonify({'message': 'Installment added successfully', 'installment': installment}), 201
    except LedgerError as e:
        return error_response('Failed to add installment', e)


@main.route('/customers/<string:customer_id>/payment-records/<string:record_id>/installments/update/<string:installment_id>',
            methods=['PUT'])
@jwt_required()
def update_installment(customer_id, record_id, installment_id):
    try:
        installment = customer_ledger_crud.update_installment(
            customer_id, record_id, installment_id, request.json or {}, current_access())
        return jsonify({'message': 'Installment updated successfully', 'installment': installment}), 200
    except LedgerError as e:
        return error_response('Failed to update installment', e)


@main.route('/customers/<string:customer_id>/payment-records/<string:record_id>/installments/delete/<string:installment_id>',
            methods=['DELETE'])
@jwt_required()
def delete_installment(customer_id, record_id, installment_id):
    try:
        installment = customer_ledger_crud.delete_installment(customer_id, record_id, installment_id, current_access())
        return jsonify({'message': 'Installment deleted successfully', 'installment': installment}), 200
    except LedgerError as e:
        return error_response('Failed to delete installment', e)


# expenses

@main.route('/customers/<string:customer_id>/expenses/add', methods=['POST'])
@jwt_required()
def add_ledger_expense(customer_id):
    try:
        expense = customer_ledger_crud.add_ledger_expense(customer_id, request.json or {}, current_access())
        return jsonify({'message': 'Expense added successfully', 'expense': expense}), 201
    except LedgerError as e:
        return error_response('Failed to add expense', e)


@main.route('/customers/<string:customer_id>/expenses/update/<string:expense_id>', methods=['PUT'])
@jwt_required()
def update_ledger_expense(customer_id, expense_id):
    try:
        expense = customer_ledger_crud.update_ledger_expense(customer_id, expense_id, request.json or {}, current_access())
        return jsonify({'message': 'Expense updated successfully', 'expense': expense}), 200
    except LedgerError as e:
        return error_response('Failed to update expense', e)


@main.route('/customers/<string:customer_id>/expenses/delete/<string:expense_id>', methods=['DELETE'])
@jwt_required()
def delete_ledger_expense(customer_id, expense_id):
    try:
        expense = customer_ledger_crud.delete_ledger_expense(customer_id, expense_id, current_access())
        return jsonify({'message': 'Expense deleted successfully', 'expense': expense}), 200
    except LedgerError as e:
        return error_response('Failed to delete expense', e)


# analytics

@main.route('/customers/<string:customer_id>/works/<string:work_id>/analytics', methods=['GET'])
@jwt_required()
def get_work_analytics(customer_id, work_id):
    try:
        analytics = customer_ledger_crud.compute_work_analytics(customer_id, work_id, current_access())
        return jsonify(analytics), 200
    except LedgerError as e:
        return error_response('Failed to compute analytics', e)


@main.route('/customers/<string:customer_id>/analytics', methods=['GET'])
@jwt_required()
def get_customer_analytics(customer_id):
    try:
        analytics = customer_ledger_crud.compute_customer_analytics(customer_id, current_access())
        return jsonify(analytics), 200
    except LedgerError as e:
        return error_response('Failed to compute analytics', e)
