"""
HTTP tests: authentication, status codes and the end-to-end board flow.
"""
import logging

import pytest


def _create_board(client):
    project = client.post('/api/projects', json={'title': 'Roadmap'}).get_json()
    column = client.post('/api/columns', json={'title': 'Todo', 'project_id': project['id']}).get_json()
    task = client.post('/api/tasks', json={'title': 'Write docs', 'column_id': column['id']}).get_json()
    return project, column, task


# ━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━
# Auth
# ━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━


def test_health(app):
    client = app.test_client()
    assert client.get('/health').status_code == 200
    assert client.get('/health/db').get_json()['database'] is True


def test_requires_authentication(app):
    client = app.test_client()
    response = client.get('/api/projects')
    assert response.status_code == 401
    assert response.get_json() == {'error': 'Authentication required'}


def test_register_sets_session_and_first_admin(make_client):
    admin = make_client('alice')
    member = make_client('bob')
    assert admin.user['isAdmin'] is True
    assert member.user['isAdmin'] is False

    me = member.get('/api/auth/me')
    assert me.status_code == 200
    assert me.get_json()['user']['username'] == 'bob'


def test_register_validation_and_duplicates(app, make_client):
    make_client('alice')
    client = app.test_client()
    assert client.post('/api/auth/register', json={'username': 'carol'}).status_code == 400
    duplicate = client.post('/api/auth/register', json={'username': 'alice', 'password': 'x'})
    assert duplicate.status_code == 400
    assert duplicate.get_json()['error'] == 'Username already exists'


def test_login_and_logout(app, make_client):
    make_client('alice', password='s3cret')
    client = app.test_client()

    assert client.post('/api/auth/login', json={'username': 'alice', 'password': 'nope'}).status_code == 401
    response = client.post('/api/auth/login', json={'username': 'alice', 'password': 's3cret'})
    assert response.status_code == 200
    assert client.get('/api/projects').status_code == 200

    client.post('/api/auth/logout')
    assert client.get('/api/projects').status_code == 401


def test_tampered_session_cookie_rejected(app, make_client):
    alice = make_client('alice')
    client = app.test_client()
    forged = f"{alice.user['id']}:9999999999:{'0' * 64}"
    client.set_cookie('token', forged, path='/api')
    assert client.get('/api/projects').status_code == 401


def test_signup_settings_admin_only(app, make_client):
    admin = make_client('alice')
    member = make_client('bob')

    assert member.put('/api/auth/settings', json={'allowSignup': False}).status_code == 403
    response = admin.put('/api/auth/settings', json={'allowSignup': False})
    assert response.get_json() == {'allowSignup': False}

    assert app.test_client().get('/api/auth/settings').get_json() == {'allowSignup': False}
    blocked = app.test_client().post('/api/auth/register', json={'username': 'carol', 'password': 'pw'})
    assert blocked.status_code == 403
    assert app.test_client().get('/api/users/count').get_json() == {'count': 2}


def test_bearer_token_auth_and_revocation(app, make_client):
    alice = make_client('alice')
    created = alice.post('/api/tokens', json={'name': 'cli'})
    assert created.status_code == 201
    secret = created.get_json()['token']

    anonymous = app.test_client()
    headers = {'Authorization': f'Bearer {secret}'}
    response = anonymous.post('/api/projects', json={'title': 'Via token'}, headers=headers)
    assert response.status_code == 201

    listed = alice.get('/api/tokens').get_json()
    assert listed[0]['last_used_at'] is not None
    assert 'token' not in listed[0]

    assert alice.post('/api/tokens', json={'name': 'cli'}).status_code == 400
    assert alice.delete(f"/api/tokens/{created.get_json()['id']}").status_code == 200
    assert anonymous.get('/api/projects', headers=headers).status_code == 401


# ━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━
# Board
# ━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━


def test_board_flow(make_client):
    client = make_client('alice')
    project, column, task = _create_board(client)

    assert project['order'] == 0
    assert task['priority'] == 'none'
    assert task['description'] == ''

    updated = client.put(f"/api/tasks/{task['id']}", json={
        'title': 'Write docs', 'priority': 'high', 'due_date': '2025-01-01',
    })
    assert updated.status_code == 200
    assert updated.get_json()['due_date'] == '2025-01-01'

    renamed = client.put(f"/api/columns/{column['id']}", json={'title': 'Doing'})
    assert renamed.get_json()['title'] == 'Doing'

    assert client.put(f"/api/projects/{project['id']}", json={'title': ''}).status_code == 400
    assert client.put(f"/api/projects/{project['id']}", json={'title': 'Q3'}).get_json()['title'] == 'Q3'

    assert client.delete(f"/api/projects/{project['id']}").status_code == 200
    assert client.get('/api/columns').get_json() == []
    assert client.get('/api/tasks').get_json() == []


def test_cross_user_access_is_404(make_client):
    alice = make_client('alice')
    bob = make_client('bob')
    project, column, task = _create_board(alice)

    assert bob.get(f"/api/projects/{project['id']}").status_code == 404
    assert bob.put(f"/api/projects/{project['id']}", json={'title': 'x'}).status_code == 404
    assert bob.delete(f"/api/columns/{column['id']}").status_code == 404
    assert bob.put(f"/api/tasks/{task['id']}", json={'title': 'x'}).status_code == 404
    assert bob.delete(f"/api/tasks/{task['id']}").status_code == 404
    assert bob.get(f"/api/columns/{column['id']}/tasks").status_code == 404

    bob_project = bob.post('/api/projects', json={'title': 'Mine'}).get_json()
    bob_column = bob.post('/api/columns', json={'title': 'Mine', 'project_id': bob_project['id']}).get_json()
    moved = bob.put(f"/api/tasks/{task['id']}/move", json={'column_id': bob_column['id']})
    assert moved.status_code == 404

    assert alice.get(f"/api/tasks/{task['id']}").get_json()['column_id'] == column['id']


def test_create_under_foreign_parent_is_403(make_client):
    alice = make_client('alice')
    bob = make_client('bob')
    project, column, _ = _create_board(alice)

    response = bob.post('/api/columns', json={'title': 'Sneaky', 'project_id': project['id']})
    assert response.status_code == 403
    assert bob.post('/api/tasks', json={'title': 'Sneaky', 'column_id': column['id']}).status_code == 403
    assert [c['title'] for c in alice.get('/api/columns').get_json()] == ['Todo']


def test_move_task_between_projects(make_client):
    client = make_client('alice')
    _, column, task = _create_board(client)
    other = client.post('/api/projects', json={'title': 'Other'}).get_json()
    target = client.post('/api/columns', json={'title': 'Inbox', 'project_id': other['id']}).get_json()

    response = client.put(f"/api/tasks/{task['id']}/move", json={'column_id': target['id']})
    assert response.status_code == 200
    assert response.get_json()['column_id'] == target['id']

    assert client.get(f"/api/columns/{column['id']}/tasks").get_json() == []
    assert [t['id'] for t in client.get(f"/api/columns/{target['id']}/tasks").get_json()] == [task['id']]


def test_bulk_reorder_endpoint(make_client):
    client = make_client('alice')
    _, column, first = _create_board(client)
    second = client.post('/api/tasks', json={'title': 'Ship it', 'column_id': column['id']}).get_json()

    response = client.put('/api/tasks/order', json=[
        {'id': first['id'], 'order': 5},
        {'id': 'missing', 'order': 3},
    ])
    assert response.status_code == 404
    assert client.get(f"/api/tasks/{first['id']}").get_json()['order'] == 0

    response = client.put('/api/tasks/order', json={'updates': [
        {'id': first['id'], 'order': 1},
        {'id': second['id'], 'order': 0},
    ]})
    assert response.get_json() == {'updated': 2}
    titles = [t['title'] for t in client.get(f"/api/columns/{column['id']}/tasks").get_json()]
    assert titles == ['Ship it', 'Write docs']


def test_single_order_endpoint(make_client):
    client = make_client('alice')
    project, _, _ = _create_board(client)
    assert client.put(f"/api/projects/{project['id']}/order", json={'order': 3}).status_code == 200
    assert client.get(f"/api/projects/{project['id']}").get_json()['order'] == 3
    assert client.put(f"/api/projects/{project['id']}/order", json={'order': 'x'}).status_code == 400


def test_flat_task_listing(make_client):
    client = make_client('alice')
    _, column, _ = _create_board(client)
    client.delete('/api/tasks/' + client.get('/api/tasks').get_json()[0]['id'])
    for body in (
        {'title': 'low', 'priority': 'low'},
        {'title': 'high dated', 'priority': 'high', 'due_date': '2025-01-01'},
        {'title': 'high', 'priority': 'high'},
    ):
        client.post('/api/tasks', json=dict(body, column_id=column['id']))

    titles = [t['title'] for t in client.get('/api/tasks').get_json()]
    assert titles == ['high dated', 'high', 'low']


@pytest.mark.parametrize('method,path', [
    ('post', '/api/projects'),
    ('post', '/api/tasks'),
    ('put', '/api/tasks/any/move'),
])
def test_missing_fields_are_400(make_client, method, path):
    client = make_client('alice')
    response = getattr(client, method)(path, json={})
    assert response.status_code == 400
    assert 'error' in response.get_json()


def test_unknown_route_is_json_404(app):
    response = app.test_client().get('/api/nothing-here')
    assert response.status_code == 404
    assert 'error' in response.get_json()


# ━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━
# Bulk transfer
# ━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━


def test_export_and_import(make_client):
    admin = make_client('alice')
    member = make_client('bob')
    _create_board(admin)
    _create_board(member)

    own = member.get('/api/admin/export').get_json()
    assert 'users' not in own
    assert len(own['projects']) == 1

    everything = admin.get('/api/admin/export').get_json()
    assert len(everything['users']) == 2
    assert len(everything['projects']) == 2

    response = member.post('/api/admin/import', json={
        'projects': [{'id': 'old-p-id', 'title': 'P'}],
        'columns': [{'id': 'old-c-id', 'title': 'C', 'project_id': 'old-p-id'}],
        'tasks': [{'title': 'T', 'column_id': 'old-c-id'}],
    })
    assert response.status_code == 200
    assert response.get_json()['imported'] == {'projects': 1, 'columns': 1, 'tasks': 1}
    assert [p['title'] for p in member.get('/api/projects').get_json()] == ['P']
    assert [t['title'] for t in member.get('/api/tasks').get_json()] == ['T']

    # admin's tree untouched
    assert [p['title'] for p in admin.get('/api/projects').get_json()] == ['Roadmap']


def test_import_requires_projects(make_client):
    client = make_client('alice')
    _create_board(client)
    response = client.post('/api/admin/import', json={'columns': []})
    assert response.status_code == 400
    assert len(client.get('/api/projects').get_json()) == 1


def test_out_of_range_order_is_400(make_client):
    client = make_client('alice')
    project, column, task = _create_board(client)

    response = client.put(f"/api/projects/{project['id']}/order", json={'order': 10 ** 20})
    assert response.status_code == 400
    assert response.get_json() == {'error': 'Order is out of range'}

    bulk = client.put('/api/tasks/order', json=[{'id': task['id'], 'order': 2 ** 63}])
    assert bulk.status_code == 400

    moved = client.put(f"/api/tasks/{task['id']}/move", json={'column_id': column['id'], 'order': 2 ** 31})
    assert moved.status_code == 400

    assert client.get(f"/api/projects/{project['id']}").get_json()['order'] == 0
    assert client.get(f"/api/tasks/{task['id']}").get_json()['order'] == 0


def test_long_display_name_is_400(app):
    response = app.test_client().post('/api/auth/register', json={
        'username': 'alice', 'password': 'pw', 'displayName': 'x' * 500,
    })
    assert response.status_code == 400
    assert app.test_client().get('/api/users/count').get_json() == {'count': 0}


def test_log_level_from_config(app):
    assert app.config['LOG_LEVEL'] == 'DEBUG'
    assert logging.getLogger('kanban').level == logging.DEBUG


def test_unexpected_error_is_500_without_detail(services, make_client, monkeypatch):
    client = make_client('alice')

    def broken(user_id):
        raise RuntimeError('disk on fire')

    monkeypatch.setattr(services.board, 'list_projects', broken)
    response = client.get('/api/projects')
    assert response.status_code == 500
    assert response.get_json() == {'error': 'Server error'}
