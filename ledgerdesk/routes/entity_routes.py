from flask import jsonify, request, current_app
from flask_jwt_extended import jwt_required
from . import main, current_access, error_response
from ..crud import entity_crud
from ..errors import LedgerError

# URL segment -> record collection
RESOURCES = {
    'leads': 'leads',
    'customers': 'customers',
    'employees': 'employees',
    'materials': 'materials',
    'invoices': 'invoices',
    'payroll': 'payroll',
    'expenses': 'expenses',
    'qr-codes': 'qr_codes',
    'asset-investments': 'asset_investments',
    'daily-expenses': 'daily_expenses',
    'monthly-expenses': 'monthly_expenses',
    'material-investments': 'material_investments',
    'todos': 'todos',
}


def _collection(resource):
    return RESOURCES.get(resource)


def _unknown(resource):
    return jsonify({'error': 'Not found', 'message': f"Unknown resource: {resource}"}), 404


@main.route('/<string:resource>/list', methods=['GET'])
@jwt_required()
def list_records(resource):
    collection = _collection(resource)
    if collection is None:
        return _unknown(resource)

    page = request.args.get('page', 1, type=int)
    page_size = request.args.get('page_size', current_app.config['DEFAULT_PAGE_SIZE'], type=int)
    sort_by = request.args.get('sort_by')
    sort_dir = request.args.get('sort_dir', 'desc')
    q = request.args.get('q', '')

    # Column filters
    filters = {k.replace('filter_', ''): v for k, v in request.args.items()
               if k.startswith('filter_') and v}

    try:
        items, total = entity_crud.list_records(
            collection, current_access(),
            page=page,
            page_size=page_size,
            sort_by=sort_by,
            sort_dir=sort_dir,
            q=q,
            filters=filters,
            date_from=request.args.get('date_from'),
            date_to=request.args.get('date_to'),
        )
        return jsonify({'items': items, 'total': total, 'page': page, 'page_size': page_size}), 200
    except LedgerError as e:
        return error_response(f'Failed to fetch {resource}', e)


@main.route('/<string:resource>/add', methods=['POST'])
@jwt_required()
def add_record(resource):
    collection = _collection(resource)
    if collection is None:
        return _unknown(resource)
    try:
        record = entity_crud.create_record(collection, request.json or {}, current_access())
        return jsonify({'message': 'Record added successfully', 'id': record['id'], 'record': record}), 201
    except LedgerError as e:
        return error_response(f'Failed to add {resource}', e)


@main.route('/<string:resource>/get/<string:record_id>', methods=['GET'])
@jwt_required()
def get_record(resource, record_id):
    collection = _collection(resource)
    if collection is None:
        return _unknown(resource)
    try:
        return jsonify(entity_crud.get_record(collection, record_id, current_access())), 200
    except LedgerError as e:
        return error_response(f'Failed to fetch {resource}', e)


@main.route('/<string:resource>/update/<string:record_id>', methods=['PUT'])
@jwt_required()
def update_record(resource, record_id):
    collection = _collection(resource)
    if collection is None:
        return _unknown(resource)
    try:
        record = entity_crud.update_record(collection, record_id, request.json or {}, current_access())
        return jsonify({'message': 'Record updated successfully', 'record': record}), 200
    except LedgerError as e:
        return error_response(f'Failed to update {resource}', e)


@main.route('/<string:resource>/delete/<string:record_id>', methods=['DELETE'])
@jwt_required()
def delete_record(resource, record_id):
    collection = _collection(resource)
    if collection is None:
        return _unknown(resource)
    try:
        entity_crud.delete_record(collection, record_id, current_access())
        return jsonify({'message': 'Record deleted successfully'}), 200
    except LedgerError as e:
        return error_response(f'Failed to delete {resource}', e)


# leads

@main.route('/leads/<string:lead_id>/status', methods=['PUT'])
@jwt_required()
def change_lead_status(lead_id):
    try:
        lead = entity_crud.change_lead_status(lead_id, (request.json or {}).get('status'), current_access())
        return jsonify({'message': 'Status updated successfully', 'record': lead}), 200
    except LedgerError as e:
        return error_response('Failed to update status', e)


@main.route('/leads/<string:lead_id>/comments/add', methods=['POST'])
@jwt_required()
def add_lead_comment(lead_id):
    try:
        comment = entity_crud.add_lead_comment(lead_id, (request.json or {}).get('comment'), current_access())
        return jsonify({'message': 'Comment added successfully', 'comment': comment}), 201
    except LedgerError as e:
        return error_response('Failed to add comment', e)
