"""Shared test fixtures: an isolated app per test on in-memory SQLite."""
import pytest

from kanban import create_app
from kanban.config import TestConfig
from kanban.utils.validators import ColumnInput, ProjectInput, TaskInput


@pytest.fixture
def app():
    app = create_app(TestConfig)
    yield app
    db = app.extensions['kanban'].db
    db.drop_all()
    db.dispose()


@pytest.fixture
def services(app):
    return app.extensions['kanban']


@pytest.fixture
def board(services):
    return services.board


@pytest.fixture
def alice(services):
    return services.users.register('alice', 'alice-password')


@pytest.fixture
def bob(services):
    return services.users.register('bob', 'bob-password')


@pytest.fixture
def make_client(app):
    """Return a test client logged in (via cookie) as a freshly registered user."""
    def _make(username, password='secret-password'):
        client = app.test_client()
        response = client.post('/api/auth/register', json={'username': username, 'password': password})
        assert response.status_code == 201, response.get_json()
        client.user = response.get_json()['user']
        return client
    return _make


def new_project(board, user, title='Project'):
    return board.create_project(user.id, ProjectInput(title=title))


def new_column(board, user, project, title='Column'):
    return board.create_column(user.id, ColumnInput(title=title, project_id=project.id))


def new_task(board, user, column, title='Task', **fields):
    return board.create_task(user.id, TaskInput(title=title, column_id=column.id, **fields))


@pytest.fixture
def tree(board, alice):
    """alice: one project with two columns, the first holding two tasks."""
    project = new_project(board, alice, 'Roadmap')
    todo = new_column(board, alice, project, 'Todo')
    done = new_column(board, alice, project, 'Done')
    first = new_task(board, alice, todo, 'Write docs')
    second = new_task(board, alice, todo, 'Ship it')
    return {'project': project, 'todo': todo, 'done': done, 'tasks': [first, second]}
