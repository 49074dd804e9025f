import re
from datetime import datetime, timedelta, timezone
import jwt
from errors import InvalidToken, TokenExpired

DURATION_RE = re.compile(r'^\s*(\d+)\s*([smhd]?)\s*$')
DURATION_UNITS = {'': 1, 's': 1, 'm': 60, 'h': 3600, 'd': 86400}

def parse_duration(value):
	"""Turn '7d', '12h', '30m', '45s' or a plain number of seconds into a timedelta."""
	if isinstance(value, timedelta):
		return value
	if isinstance(value, int):
		return timedelta(seconds=value)

	match = DURATION_RE.match(str(value))
	if not match:
		raise ValueError('invalid token lifetime: {!r}'.format(value))
	amount, unit = match.groups()
	return timedelta(seconds=int(amount) * DURATION_UNITS[unit])

class TokenService:
	def __init__(self, secret, expires_in='7d', issuer='chitchat-api',
		audience='chitchat-users', algorithm='HS256'):
		self.secret = secret
		self.lifetime = parse_duration(expires_in)
		self.issuer = issuer
		self.audience = audience
		self.algorithm = algorithm

	@classmethod
	def from_config(cls, config):
		return cls(
			config['SECRET_KEY'],
			expires_in=config.get('JWT_EXPIRES_IN', '7d'),
			issuer=config.get('JWT_ISSUER', 'chitchat-api'),
			audience=config.get('JWT_AUDIENCE', 'chitchat-users'),
			algorithm=config.get('JWT_ALGORITHM', 'HS256'),
		)

	def issue(self, user_id, now=None):
		now = now or datetime.now(timezone.utc)
		payload = {
			'userId': user_id,
			'iat': now,
			'exp': now + self.lifetime,
			'iss': self.issuer,
			'aud': self.audience,
		}
		return jwt.encode(payload, self.secret, algorithm=self.algorithm)

	def verify(self, token):
		try:
			data = jwt.decode(token, self.secret, algorithms=[self.algorithm],
				audience=self.audience, issuer=self.issuer,
				options={'require': ['exp', 'iss', 'aud']})
		except jwt.ExpiredSignatureError:
			raise TokenExpired()
		except jwt.InvalidTokenError:
			raise InvalidToken()

		user_id = data.get('userId')
		if user_id is None:
			raise InvalidToken()
		return user_id
