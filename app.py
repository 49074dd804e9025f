import logging
from flask import Blueprint, Flask, current_app, jsonify, request
from flask_cors import CORS
from werkzeug.exceptions import HTTPException
from config import Config, db
from errors import ApiError, Forbidden, NotFound, ValidationError
from posts import PostStore
from tokens import TokenService
from users import UserStore
from util import (auth_optional, auth_required, pagination, request_json, serialize,
	serialize_author, serialize_post, serialize_private_user, serialize_user)
from validation import (login_identifier, validate_login, validate_post, validate_profile_update,
	validate_registration)

logger = logging.getLogger(__name__)

auth = Blueprint('auth', __name__, url_prefix='/auth')
posts = Blueprint('posts', __name__, url_prefix='/posts')
users = Blueprint('users', __name__, url_prefix='/users')

def _check(result):
	if not result.ok:
		raise ValidationError(result.errors)

def _tokens():
	return current_app.extensions['tokens']

def _user_with_relations(store, user, viewer):
	data = serialize_user(user, owner=viewer is not None and viewer.id == user.id)
	followers, _ = store.followers(user, 1, 1000)
	following, _ = store.following(user, 1, 1000)
	data['followers'] = [serialize_author(follower) for follower in followers]
	data['following'] = [serialize_author(followed) for followed in following]
	return data

def _with_follow_status(store, people, viewer):
	result = []
	following_ids = set(store.following_ids(viewer.id)) if viewer else set()
	for person in people:
		data = serialize_author(person)
		if viewer is not None and person.id != viewer.id:
			data['isFollowedByMe'] = person.id in following_ids
		result.append(data)
	return result

# auth

@auth.route('/register', methods=['POST'])
def register():
	request_body = request_json()
	_check(validate_registration(request_body))

	user = UserStore(db.session).register(request_body['username'], request_body['email'],
		request_body['password'], request_body.get('displayName'))
	token = _tokens().issue(user.id)

	return jsonify({'message': 'User registered successfully', 'token': token,
		'user': serialize_user(user, owner=True)}), 201

@auth.route('/login', methods=['POST'])
def login():
	request_body = request_json()
	_check(validate_login(request_body))

	user = UserStore(db.session).authenticate(login_identifier(request_body), request_body['password'])
	token = _tokens().issue(user.id)
	logger.info('user %s logged in', user.username)

	return jsonify({'message': 'Login successful', 'token': token,
		'user': serialize_user(user, owner=True)}), 200

@auth.route('/me', methods=['GET'])
@auth_required
def me(current_user):
	store = UserStore(db.session)
	user = store.get(current_user.id)
	if not user:
		raise NotFound('User not found')
	return jsonify({'user': _user_with_relations(store, user, current_user)}), 200

@auth.route('/me', methods=['PATCH'])
@auth_required
def update_me(current_user):
	request_body = request_json()
	_check(validate_profile_update(request_body))

	user = UserStore(db.session).update_profile(current_user.id,
		request_body.get('profile'), request_body.get('isPrivate'))

	return jsonify({'message': 'Profile updated successfully',
		'user': serialize_user(user, owner=True)}), 200

@auth.route('/logout', methods=['POST'])
@auth_required
def logout(current_user):
	return jsonify({'message': 'Logout successful. Please remove the token from client storage.'}), 200

@auth.route('/refresh', methods=['POST'])
@auth_required
def refresh(current_user):
	return jsonify({'message': 'Token refreshed successfully',
		'token': _tokens().issue(current_user.id)}), 200

# posts

@posts.route('/create', methods=['POST'])
@auth_required
def create_post(current_user):
	request_body = request_json()
	_check(validate_post(request_body))

	parent = request_body.get('parentPost')
	store = PostStore(db.session)
	post = store.create(current_user.id, request_body['content'],
		visibility=request_body.get('visibility', 'public'),
		parent_post_id=int(parent) if parent is not None else None,
		images=request_body.get('images'))

	return jsonify({'message': 'Post created successfully',
		'post': serialize_post(post)}), 201

@posts.route('/timeline', methods=['GET'])
@auth_required
def timeline(current_user):
	page, limit = pagination()
	store = PostStore(db.session)
	following_ids = store.users.following_ids(current_user.id)
	timeline_posts, total = store.timeline(current_user.id, following_ids, page, limit)

	return jsonify({'posts': serialize(timeline_posts, current_user, store),
		'page': page, 'limit': limit, 'total': total}), 200

@posts.route('/public', methods=['GET'])
@auth_optional
def public_posts(current_user):
	page, limit = pagination()
	store = PostStore(db.session)

	return jsonify({'posts': serialize(store.public(page, limit), current_user, store),
		'page': page, 'limit': limit}), 200

@posts.route('/<int:post_id>', methods=['GET'])
@auth_optional
def get_post(current_user, post_id):
	store = PostStore(db.session)
	post = store.get(post_id)

	if not store.can_view(post, current_user):
		raise Forbidden('You do not have permission to view this post')

	response = serialize_post(post, current_user, store)
	response['replies'] = [
		serialize_post(reply, current_user, store)
		for reply in store.replies(post)
		if store.can_view(reply, current_user)
	]

	return jsonify({'post': response}), 200

@posts.route('/<int:post_id>', methods=['PATCH'])
@auth_required
def edit_post(current_user, post_id):
	request_body = request_json()
	_check(validate_post(request_body, partial=True))

	store = PostStore(db.session)
	post = store.edit(post_id, current_user.id, request_body['content'])

	return jsonify({'message': 'Post updated successfully',
		'post': serialize_post(post, current_user, store)}), 200

@posts.route('/<int:post_id>/like', methods=['POST'])
@auth_required
def like(current_user, post_id):
	liked, likes_count = PostStore(db.session).toggle_like(post_id, current_user.id)

	return jsonify({'message': 'Post liked' if liked else 'Post unliked',
		'isLiked': liked, 'likesCount': likes_count}), 200

@posts.route('/<int:post_id>/repost', methods=['POST'])
@auth_required
def repost(current_user, post_id):
	reposted, reposts_count = PostStore(db.session).toggle_repost(post_id, current_user.id)

	return jsonify({'message': 'Post reposted' if reposted else 'Post unreposted',
		'isReposted': reposted, 'repostsCount': reposts_count}), 200

@posts.route('/<int:post_id>', methods=['DELETE'])
@auth_required
def delete_post(current_user, post_id):
	PostStore(db.session).delete(post_id, current_user.id)
	return jsonify({'message': 'Post deleted successfully'}), 200

@posts.route('/search/<query>', methods=['GET'])
@auth_optional
def search_posts(current_user, query):
	if not query.strip():
		raise ValidationError(message='Search query is required')

	limit = pagination()[1]
	store = PostStore(db.session)
	found = serialize(store.search(query, limit), current_user, store)

	return jsonify({'posts': found, 'query': query, 'total': len(found)}), 200

# users

@users.route('/<username>', methods=['GET'])
@auth_optional
def user_profile(current_user, username):
	store = UserStore(db.session)
	user = store.get_by_username(username)

	if not store.can_view(user, current_user):
		return jsonify({'user': serialize_private_user(user), 'isPrivate': True}), 200

	response = _user_with_relations(store, user, current_user)
	if current_user is not None and current_user.id != user.id:
		response['isFollowedByMe'] = store.is_following(current_user.id, user.id)

	return jsonify({'user': response}), 200

@users.route('/<username>/posts', methods=['GET'])
@auth_optional
def user_posts(current_user, username):
	page, limit = pagination()
	post_store = PostStore(db.session)
	user = post_store.users.get_by_username(username)

	if not post_store.users.can_view(user, current_user):
		raise Forbidden('This account is private')

	author_posts, total = post_store.by_author(user, current_user, page, limit)

	return jsonify({'posts': serialize(author_posts, current_user, post_store),
		'page': page, 'limit': limit, 'total': total}), 200

@users.route('/<username>/follow', methods=['POST'])
@auth_required
def follow(current_user, username):
	target, following = UserStore(db.session).follow(current_user.id, username)

	return jsonify({'message': 'User followed' if following else 'User unfollowed',
		'isFollowing': following, 'followersCount': target.followers_count}), 200

@users.route('/<username>/followers', methods=['GET'])
@auth_optional
def user_followers(current_user, username):
	page, limit = pagination()
	store = UserStore(db.session)
	user = store.get_by_username(username)

	if not store.can_view(user, current_user):
		raise Forbidden('This account is private')

	followers, total = store.followers(user, page, limit)

	return jsonify({'followers': _with_follow_status(store, followers, current_user),
		'page': page, 'limit': limit, 'total': total}), 200

@users.route('/<username>/following', methods=['GET'])
@auth_optional
def user_following(current_user, username):
	page, limit = pagination()
	store = UserStore(db.session)
	user = store.get_by_username(username)

	if not store.can_view(user, current_user):
		raise Forbidden('This account is private')

	following, total = store.following(user, page, limit)

	return jsonify({'following': _with_follow_status(store, following, current_user),
		'page': page, 'limit': limit, 'total': total}), 200

@users.route('/search/<query>', methods=['GET'])
@auth_optional
def search_users(current_user, query):
	if not query.strip():
		raise ValidationError(message='Search query is required')

	limit = pagination()[1]
	store = UserStore(db.session)
	following_ids = set(store.following_ids(current_user.id)) if current_user else set()

	found = []
	for user in store.search(query, limit):
		data = serialize_user(user)
		if current_user is not None and user.id != current_user.id:
			data['isFollowedByMe'] = user.id in following_ids
		found.append(data)

	return jsonify({'users': found, 'query': query, 'total': len(found)}), 200

def health():
	return jsonify({'status': 'ok'}), 200

def handle_api_error(e):
	return jsonify(e.to_dict()), e.status

def handle_http_error(e):
	return jsonify({'error': e.description, 'code': e.name.upper().replace(' ', '_')}), e.code

def handle_unexpected_error(e):
	logger.exception('unhandled error on %s %s', request.method, request.path)
	response = {'error': 'Internal server error', 'code': ApiError.code}
	if current_app.debug:
		response['details'] = str(e)
	return jsonify(response), 500

def create_app(overrides=None):
	app = Flask(__name__)
	app.config.from_object(Config)
	if overrides:
		app.config.update(overrides)

	logging.basicConfig(level=app.config['LOG_LEVEL'])

	db.init_app(app)
	app.extensions['tokens'] = TokenService.from_config(app.config)
	CORS(app, resources={r'/*': {'origins': app.config['CORS_ORIGINS']}})

	app.register_error_handler(ApiError, handle_api_error)
	app.register_error_handler(HTTPException, handle_http_error)
	app.register_error_handler(Exception, handle_unexpected_error)

	app.add_url_rule('/health', 'health', health)
	app.register_blueprint(auth)
	app.register_blueprint(posts)
	app.register_blueprint(users)

	with app.app_context():
		db.create_all()

	return app

if __name__ == '__main__':
	create_app().run()
