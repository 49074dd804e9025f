import logging
from sqlalchemy import delete, func, or_, select
from sqlalchemy.exc import IntegrityError
from werkzeug.security import generate_password_hash, check_password_hash
from errors import Conflict, InvalidCredentials, NotFound, SelfFollow, ValidationError
from models import Follower, Post, User
from validation import normalize_email, validate_registration

logger = logging.getLogger(__name__)

PROFILE_FIELDS = {
	'displayName': 'display_name',
	'bio': 'bio',
	'location': 'location',
	'website': 'website',
	'avatar': 'avatar',
}

class UserStore:
	def __init__(self, session):
		self.session = session

	def get(self, user_id):
		return self.session.get(User, user_id)

	def get_by_username(self, username):
		user = self.session.query(User).filter_by(username=username).first()
		if not user:
			raise NotFound('User not found')
		return user

	def register(self, username, email, password, display_name=None):
		result = validate_registration({'username': username, 'email': email,
			'password': password, 'displayName': display_name})
		if not result.ok:
			raise ValidationError(result.errors)

		username = username.strip()
		email = normalize_email(email)

		existing = self.session.query(User).filter(
			or_(User.username == username, User.email == email)).first()
		if existing:
			field = 'username' if existing.username == username else 'email'
			raise Conflict('User with this {} already exists'.format(field), field=field)

		user = User(username=username, email=email,
			hashed_password=generate_password_hash(password),
			display_name=(display_name or '').strip() or username)
		self.session.add(user)

		try:
			self.session.commit()
		except IntegrityError:
			# lost a race against a concurrent registration
			self.session.rollback()
			raise Conflict('User with this username or email already exists')

		logger.info('registered user %s (id=%s)', user.username, user.id)
		return user

	def authenticate(self, identifier, password):
		identifier = identifier.strip()
		user = self.session.query(User).filter(
			or_(User.username == identifier, User.email == normalize_email(identifier))).first()

		if not user or not check_password_hash(user.hashed_password, password):
			logger.warning('failed login for %r', identifier)
			raise InvalidCredentials()

		return user

	def update_profile(self, user_id, profile=None, is_private=None):
		user = self.get(user_id)
		if not user:
			raise NotFound('User not found')

		for key, column in PROFILE_FIELDS.items():
			if profile and profile.get(key) is not None:
				setattr(user, column, profile[key].strip())

		if is_private is not None:
			user.is_private = is_private

		self.session.commit()
		return user

	def is_following(self, actor_id, target_id):
		if actor_id is None:
			return False
		return self.session.query(Follower).filter_by(
			follower_id=actor_id, followed_id=target_id).first() is not None

	def following_ids(self, user_id):
		rows = self.session.execute(
			select(Follower.followed_id).where(Follower.follower_id == user_id))
		return [row[0] for row in rows]

	def can_view(self, user, viewer):
		if not user.is_private:
			return True
		if viewer is None:
			return False
		return viewer.id == user.id or self.is_following(viewer.id, user.id)

	def follow(self, actor_id, target_username):
		"""Toggle whether actor follows target.

		Both sides of the relation are one Follower row, and both users'
		counters are recomputed in the same transaction.
		"""
		target = self.get_by_username(target_username)
		if target.id == actor_id:
			raise SelfFollow()

		removed = self.session.execute(delete(Follower).where(
			Follower.follower_id == actor_id,
			Follower.followed_id == target.id)).rowcount

		if not removed:
			self.session.add(Follower(follower_id=actor_id, followed_id=target.id))

		try:
			self.session.flush()
		except IntegrityError:
			# a concurrent follow by the same actor got there first
			self.session.rollback()

		following = self.is_following(actor_id, target.id)
		self._refresh_follow_counts(actor_id)
		self._refresh_follow_counts(target.id)
		self.session.commit()

		logger.info('user %s %s %s', actor_id,
			'followed' if following else 'unfollowed', target.username)
		return target, following

	def _refresh_follow_counts(self, user_id):
		user = self.get(user_id)
		user.followers_count = self.session.scalar(
			select(func.count()).select_from(Follower).where(Follower.followed_id == user_id))
		user.following_count = self.session.scalar(
			select(func.count()).select_from(Follower).where(Follower.follower_id == user_id))

	def refresh_post_count(self, user_id):
		user = self.get(user_id)
		if user:
			user.posts_count = self.session.scalar(
				select(func.count()).select_from(Post).where(
					Post.author_id == user_id, Post.is_reply.is_(False)))
		return user

	def followers(self, user, page=1, limit=20):
		query = self.session.query(User).join(Follower, Follower.follower_id == User.id) \
			.filter(Follower.followed_id == user.id) \
			.order_by(Follower.id.desc())
		return query.offset((page - 1) * limit).limit(limit).all(), query.count()

	def following(self, user, page=1, limit=20):
		query = self.session.query(User).join(Follower, Follower.followed_id == User.id) \
			.filter(Follower.follower_id == user.id) \
			.order_by(Follower.id.desc())
		return query.offset((page - 1) * limit).limit(limit).all(), query.count()

	def search(self, query, limit=20):
		query = query.strip()
		return self.session.query(User).filter(or_(
				User.username.icontains(query, autoescape=True),
				User.display_name.icontains(query, autoescape=True))) \
			.order_by(User.followers_count.desc(), User.id) \
			.limit(limit).all()
