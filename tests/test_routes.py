from ledgerdesk import db
from ledgerdesk.models import User


def _create_customer(client, headers):
    response = client.post('/customers/add', headers=headers, json={
        'customerName': 'Anil Kumar',
        'mobileNumber': '9876543210',
        'address': '12 MG Road',
        'services': ['Invisible Grills'],
    })
    assert response.status_code == 201
    return response.get_json()['id']


def test_requires_token(client):
    assert client.get('/customers/list').status_code == 401


def test_ledger_flow_over_http(client, auth_headers):
    headers = auth_headers()
    customer_id = _create_customer(client, headers)

    response = client.post(f'/customers/{customer_id}/works/add', headers=headers,
                           json={'workName': 'Grill Installation', 'category': ['Invisible Grills']})
    assert response.status_code == 201
    work_id = response.get_json()['work']['id']

    response = client.post(f'/customers/{customer_id}/payment-records/add', headers=headers,
                           json={'workId': work_id, 'totalAmount': 10000})
    record_id = response.get_json()['paymentRecord']['id']

    url = f'/customers/{customer_id}/payment-records/{record_id}/installments/add'
    assert client.post(url, headers=headers, json={'installmentName': 'First', 'amount': 6000}).status_code == 201
    response = client.post(url, headers=headers, json={'installmentName': 'Second', 'amount': 5000})
    assert response.status_code == 422
    assert response.get_json()['error'] == 'Failed to add installment'

    response = client.get(f'/customers/{customer_id}/works/{work_id}/analytics', headers=headers)
    assert response.status_code == 200
    assert response.get_json()['totalPending'] == 4000.0


def test_viewer_gets_403(client, auth_headers):
    customer_id = _create_customer(client, auth_headers())
    viewer = auth_headers('Can View', ['Customers'])
    response = client.post(f'/customers/{customer_id}/works/add', headers=viewer,
                           json={'workName': 'Grill', 'category': ['Invisible Grills']})
    assert response.status_code == 403
    assert client.get(f'/customers/{customer_id}/ledger', headers=viewer).status_code == 200


def test_unknown_customer_is_404(client, auth_headers):
    response = client.get('/customers/nope/ledger', headers=auth_headers())
    assert response.status_code == 404


def test_delete_advance_needs_confirm(client, auth_headers):
    headers = auth_headers()
    response = client.post('/employees/add', headers=headers, json={
        'employeeName': 'Suresh', 'mobileNumber': '9123456780',
    })
    employee_id = response.get_json()['id']
    response = client.post(f'/employees/{employee_id}/advances/add', headers=headers,
                           json={'amount': 5000, 'reason': 'Medical'})
    advance_id = response.get_json()['advance']['id']

    url = f'/employees/{employee_id}/advances/delete/{advance_id}'
    assert client.delete(url, headers=headers).status_code == 409
    assert client.delete(f'{url}?confirm=true', headers=headers).status_code == 200


def test_list_pagination_params(client, auth_headers):
    headers = auth_headers()
    for name in ('Mesh', 'Rope', 'Clamp'):
        client.post('/materials/add', headers=headers, json={'materialName': name, 'pricePerUnit': 10, 'unit': 'pc'})
    response = client.get('/materials/list?page_size=2&sort_by=materialName&sort_dir=asc', headers=headers)
    body = response.get_json()
    assert body['total'] == 3
    assert [m['materialName'] for m in body['items']] == ['Clamp', 'Mesh']


def test_unknown_resource(client, auth_headers):
    assert client.get('/widgets/list', headers=auth_headers()).status_code == 404


def test_dashboard_route(client, auth_headers):
    response = client.get('/dashboard/summary', headers=auth_headers())
    assert response.status_code == 200
    assert response.get_json()['totalInvestment'] == 0.0


def test_login_issues_access_claims(client, app):
    user = User(username='ravi', user_access='Can Edit', access_menus=['Leads'])
    user.set_password('s3cret')
    db.session.add(user)
    db.session.commit()

    assert client.post('/auth/login', json={'username': 'ravi', 'password': 'wrong'}).status_code == 401
    response = client.post('/auth/login', json={'username': 'ravi', 'password': 's3cret'})
    assert response.status_code == 200
    token = response.get_json()['token']
    headers = {'Authorization': f'Bearer {token}'}

    assert client.get('/leads/list', headers=headers).status_code == 200
    assert client.get('/customers/list', headers=headers).status_code == 403


def test_first_registered_user_is_admin(client):
    response = client.post('/auth/register', json={'username': 'owner', 'password': 'pw'})
    assert response.status_code == 201
    assert User.query.filter_by(username='owner').first().user_access == 'Admin'
    response = client.post('/auth/register', json={'username': 'second', 'password': 'pw'})
    assert response.status_code == 403
