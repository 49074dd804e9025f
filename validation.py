"""Request payload validation.

Every validator takes the decoded JSON body and returns a ValidationResult
collecting all field errors, so a client sees every problem at once.
"""
import re
from urllib.parse import urlparse
from models import VISIBILITIES

USERNAME_RE = re.compile(r'^[A-Za-z0-9_]{3,30}$')
EMAIL_RE = re.compile(r'^[^@\s]+@[^@\s]+\.[A-Za-z0-9-]{2,}$')
PASSWORD_LETTER_RE = re.compile(r'[A-Za-z]')
PASSWORD_DIGIT_RE = re.compile(r'\d')

MAX_CONTENT_LENGTH = 280
MAX_ID = 2 ** 63 - 1
MAX_IMAGES = 4

PROFILE_LIMITS = {
	'displayName': 50,
	'bio': 160,
	'location': 50,
}

class FieldError:
	def __init__(self, field, message):
		self.field = field
		self.message = message

	def to_dict(self):
		return {'field': self.field, 'message': self.message}

	def __repr__(self):
		return 'FieldError({!r}, {!r})'.format(self.field, self.message)

class ValidationResult:
	def __init__(self, errors=None):
		self.errors = list(errors or [])

	@property
	def ok(self):
		return not self.errors

	@property
	def fields(self):
		return [error.field for error in self.errors]

	def add(self, field, message):
		self.errors.append(FieldError(field, message))

def is_valid_id(value):
	if isinstance(value, bool):
		return False
	if isinstance(value, str) and value.isdigit():
		value = int(value)
	return isinstance(value, int) and 0 < value <= MAX_ID

def normalize_email(email):
	return email.strip().lower()

def is_url(value):
	parsed = urlparse(value)
	return parsed.scheme in ('http', 'https') and bool(parsed.netloc)

def _text(data, key):
	value = data.get(key)
	if value is None:
		return None
	if not isinstance(value, str):
		return ''
	return value.strip()

def validate_registration(data):
	result = ValidationResult()

	username = _text(data, 'username')
	if not username or not USERNAME_RE.match(username):
		if username and not re.match(r'^[A-Za-z0-9_]*$', username):
			result.add('username', 'Username can only contain letters, numbers, and underscores')
		else:
			result.add('username', 'Username must be 3-30 characters long')

	email = _text(data, 'email')
	if not email or not EMAIL_RE.match(email):
		result.add('email', 'Please provide a valid email address')

	password = data.get('password')
	if not isinstance(password, str) or len(password) < 6:
		result.add('password', 'Password must be at least 6 characters long')
	elif not (PASSWORD_LETTER_RE.search(password) and PASSWORD_DIGIT_RE.search(password)):
		result.add('password', 'Password must contain at least one letter and one number')

	display_name = data.get('displayName')
	if display_name is not None and not isinstance(display_name, str):
		result.add('displayName', 'Display name must be a string')
	elif display_name is not None and len(display_name) > PROFILE_LIMITS['displayName']:
		result.add('displayName', 'Display name cannot exceed 50 characters')

	return result

def login_identifier(data):
	return _text(data, 'identifier') or _text(data, 'username') or _text(data, 'email')

def validate_login(data):
	result = ValidationResult()

	if not login_identifier(data):
		result.add('identifier', 'Username or email is required')

	password = data.get('password')
	if not isinstance(password, str) or not password:
		result.add('password', 'Password is required')

	return result

def validate_profile_update(data):
	result = ValidationResult()

	profile = data.get('profile')
	if profile is not None:
		if not isinstance(profile, dict):
			result.add('profile', 'Profile must be an object')
			profile = {}

		for key, limit in PROFILE_LIMITS.items():
			value = profile.get(key)
			if value is None:
				continue
			if not isinstance(value, str):
				result.add('profile.' + key, 'Must be a string')
			elif len(value.strip()) > limit:
				result.add('profile.' + key, 'Cannot exceed {} characters'.format(limit))

		for key in ('website', 'avatar'):
			value = profile.get(key)
			# an empty string clears the field
			if value is None or value == '':
				continue
			if not isinstance(value, str) or not is_url(value.strip()):
				result.add('profile.' + key, 'Please provide a valid URL')

	is_private = data.get('isPrivate')
	if is_private is not None and not isinstance(is_private, bool):
		result.add('isPrivate', 'isPrivate must be a boolean')

	return result

def validate_post(data, partial=False):
	result = ValidationResult()

	content = data.get('content')
	if not isinstance(content, str) or not content.strip():
		result.add('content', 'Post content is required')
	elif len(content.strip()) > MAX_CONTENT_LENGTH:
		result.add('content', 'Post cannot exceed 280 characters')

	if partial:
		return result

	visibility = data.get('visibility')
	if visibility is not None and visibility not in VISIBILITIES:
		result.add('visibility', 'Visibility must be one of: ' + ', '.join(VISIBILITIES))

	parent = data.get('parentPost')
	if parent is not None and not is_valid_id(parent):
		result.add('parentPost', 'Parent post must be a post id')

	images = data.get('images')
	if images is not None:
		if not isinstance(images, list):
			result.add('images', 'Images must be a list')
		elif len(images) > MAX_IMAGES:
			result.add('images', 'A post can have at most {} images'.format(MAX_IMAGES))
		else:
			for index, image in enumerate(images):
				url = image.get('url') if isinstance(image, dict) else None
				if not isinstance(url, str) or not is_url(url):
					result.add('images[{}].url'.format(index), 'Please provide a valid URL')
				alt = image.get('alt') if isinstance(image, dict) else None
				if alt is not None and not isinstance(alt, str):
					result.add('images[{}].alt'.format(index), 'Alt text must be a string')

	return result
