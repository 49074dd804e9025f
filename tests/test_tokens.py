from datetime import datetime, timedelta, timezone
import jwt
import pytest
from errors import InvalidToken, TokenExpired
from tokens import TokenService, parse_duration

@pytest.fixture
def service():
	return TokenService('secret', expires_in='7d')

def test_parse_duration():
	assert parse_duration('7d') == timedelta(days=7)
	assert parse_duration('12h') == timedelta(hours=12)
	assert parse_duration('30m') == timedelta(minutes=30)
	assert parse_duration('45') == timedelta(seconds=45)
	assert parse_duration(60) == timedelta(minutes=1)

def test_parse_duration_rejects_garbage():
	with pytest.raises(ValueError):
		parse_duration('soon')

def test_issue_then_verify_returns_user_id(service):
	token = service.issue(42)
	assert service.verify(token) == 42

def test_token_carries_issuer_audience_and_lifetime(service):
	now = datetime(2030, 1, 1, tzinfo=timezone.utc)
	token = service.issue(7, now=now)
	claims = jwt.decode(token, options={'verify_signature': False})

	assert claims['userId'] == 7
	assert claims['iss'] == 'chitchat-api'
	assert claims['aud'] == 'chitchat-users'
	assert claims['exp'] - claims['iat'] == 7 * 24 * 3600

def test_expired_token(service):
	token = service.issue(1, now=datetime.now(timezone.utc) - timedelta(days=8))
	with pytest.raises(TokenExpired):
		service.verify(token)

def test_wrong_signature(service):
	token = TokenService('other-secret').issue(1)
	with pytest.raises(InvalidToken):
		service.verify(token)

def test_wrong_audience(service):
	token = TokenService('secret', audience='someone-else').issue(1)
	with pytest.raises(InvalidToken):
		service.verify(token)

def test_garbage_token(service):
	with pytest.raises(InvalidToken):
		service.verify('not-a-token')

def test_from_config():
	service = TokenService.from_config({'SECRET_KEY': 's', 'JWT_EXPIRES_IN': '1h'})
	assert service.lifetime == timedelta(hours=1)
	assert service.verify(service.issue(3)) == 3
