import logging
from functools import wraps
from flask import current_app, g, request
from config import db
from errors import NoToken, UserNotFound, Unauthorized, ValidationError
from models import User
from validation import is_valid_id

logger = logging.getLogger(__name__)

def bearer_token():
	header = request.headers.get('Authorization', '')
	scheme, _, token = header.partition(' ')
	if scheme.lower() != 'bearer' or not token.strip():
		return None
	return token.strip()

def resolve_user(token):
	user_id = current_app.extensions['tokens'].verify(token)
	if not is_valid_id(user_id):
		raise UserNotFound()
	user = db.session.get(User, int(user_id))
	if not user:
		raise UserNotFound()
	return user

def auth_required(f):
	@wraps(f)
	def decorated(*args, **kwargs):
		token = bearer_token()
		if not token:
			raise NoToken()

		try:
			current_user = resolve_user(token)
		except Unauthorized as e:
			logger.warning('rejected token on %s: %s', request.path, e.code)
			raise

		g.current_user = current_user
		return f(current_user, *args, **kwargs)

	return decorated

def auth_optional(f):
	@wraps(f)
	def decorated(*args, **kwargs):
		current_user = None
		token = bearer_token()

		if token:
			try:
				current_user = resolve_user(token)
			except Unauthorized:
				current_user = None

		g.current_user = current_user
		return f(current_user, *args, **kwargs)

	return decorated

def request_json():
	body = request.get_json(silent=True)
	if body is None:
		return {}
	if not isinstance(body, dict):
		raise ValidationError(message='Request body must be a JSON object')
	return body

def pagination():
	config = current_app.config
	page = request.args.get('page', 1, type=int)
	limit = request.args.get('limit', config['DEFAULT_PAGE_LIMIT'], type=int)
	page = max(page, 1)
	limit = min(max(limit, 1), config['MAX_PAGE_LIMIT'])
	return page, limit

def isoformat(value):
	return value.isoformat() if value else None

def serialize_author(user):
	return {
		'id': user.id,
		'username': user.username,
		'profile': {
			'displayName': user.display_name,
			'avatar': user.avatar,
		},
		'isVerified': user.is_verified,
	}

def serialize_user(user, owner=False):
	data = {
		'id': user.id,
		'username': user.username,
		'profile': {
			'displayName': user.display_name,
			'bio': user.bio,
			'location': user.location,
			'website': user.website,
			'avatar': user.avatar,
		},
		'isPrivate': user.is_private,
		'isVerified': user.is_verified,
		'stats': {
			'postsCount': user.posts_count,
			'followersCount': user.followers_count,
			'followingCount': user.following_count,
		},
		'createdAt': isoformat(user.created_at),
	}
	if owner:
		data['email'] = user.email
	return data

def serialize_private_user(user):
	return {
		'username': user.username,
		'profile': {
			'displayName': user.display_name,
			'avatar': user.avatar,
		},
		'isVerified': user.is_verified,
		'isPrivate': user.is_private,
		'stats': {
			'postsCount': 0,
			'followersCount': user.followers_count,
			'followingCount': user.following_count,
		},
		'createdAt': isoformat(user.created_at),
	}

def serialize_post(post, viewer=None, store=None):
	data = {
		'id': post.id,
		'content': post.content,
		'author': serialize_author(post.author),
		'images': [{'url': image.url, 'alt': image.alt} for image in post.images],
		'hashtags': post.hashtags,
		'mentions': [user.username for user in post.mentions],
		'parentPost': post.parent_id,
		'isReply': post.is_reply,
		'visibility': post.visibility,
		'stats': {
			'likesCount': post.likes_count,
			'repliesCount': post.replies_count,
			'repostsCount': post.reposts_count,
		},
		'isEdited': post.is_edited,
		'editHistory': [
			{'content': edit.content, 'editedAt': isoformat(edit.edited_at)}
			for edit in post.edit_history
		],
		'createdAt': isoformat(post.created_at),
		'updatedAt': isoformat(post.updated_at),
	}

	if viewer is not None and store is not None:
		data['isLiked'] = store.is_liked_by(post, viewer.id)
		data['isReposted'] = store.is_reposted_by(post, viewer.id)

	return data

def serialize(posts, viewer=None, store=None):
	return [serialize_post(post, viewer, store) for post in posts]
