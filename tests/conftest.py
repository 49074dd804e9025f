import pytest
from app import create_app
from config import db

@pytest.fixture
def app():
	app = create_app({
		'TESTING': True,
		'SECRET_KEY': 'test-secret',
		'SQLALCHEMY_DATABASE_URI': 'sqlite://',
		'LOG_LEVEL': 'WARNING',
	})

	with app.app_context():
		yield app
		db.session.remove()
		db.drop_all()

@pytest.fixture
def client(app):
	return app.test_client()

@pytest.fixture
def register(client):
	def _register(username, email=None, password='secret1', **extra):
		body = {'username': username, 'email': email or '{}@x.com'.format(username),
			'password': password}
		body.update(extra)
		response = client.post('/auth/register', json=body)
		assert response.status_code == 201, response.get_json()
		return response.get_json()

	return _register

@pytest.fixture
def headers():
	def _headers(token):
		return {'Authorization': 'Bearer {}'.format(token)}

	return _headers

@pytest.fixture
def alice(register):
	return register('alice', 'alice@x.com')

@pytest.fixture
def bob(register):
	return register('bob', 'bob@x.com')
