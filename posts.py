import logging
import re
from sqlalchemy import delete, func, or_, select, update
from sqlalchemy.exc import IntegrityError
from errors import Forbidden, NotFound, ValidationError
from models import Like, Post, PostEdit, PostImage, Repost, Tag, User, utcnow
from users import UserStore
from validation import is_valid_id, validate_post

logger = logging.getLogger(__name__)

HASHTAG_RE = re.compile(r'#(\w+)')
MENTION_RE = re.compile(r'@(\w+)')

def _unique(items):
	seen = set()
	unique = []
	for item in items:
		if item not in seen:
			seen.add(item)
			unique.append(item)
	return unique

def extract_hashtags(content):
	return _unique(match.lower() for match in HASHTAG_RE.findall(content))

def extract_mentions(content):
	return _unique(MENTION_RE.findall(content))

class PostStore:
	def __init__(self, session):
		self.session = session
		self.users = UserStore(session)

	def _find(self, post_id):
		if not is_valid_id(post_id):
			return None
		return self.session.get(Post, int(post_id))

	def get(self, post_id):
		post = self._find(post_id)
		if not post:
			raise NotFound('Post not found')
		return post

	def create(self, author_id, content, visibility='public', parent_post_id=None, images=None):
		result = validate_post({'content': content, 'visibility': visibility,
			'parentPost': parent_post_id, 'images': images})
		if not result.ok:
			raise ValidationError(result.errors)

		parent = None
		if parent_post_id is not None:
			parent = self._find(parent_post_id)
			if not parent:
				raise NotFound('Parent post not found')

		post = Post(content=content.strip(), author_id=author_id,
			visibility=visibility or 'public',
			parent_id=parent.id if parent else None,
			is_reply=parent is not None)

		for position, image in enumerate(images or []):
			post.images.append(PostImage(position=position, url=image['url'],
				alt=image.get('alt') or ''))

		self._index_content(post)
		self.session.add(post)
		self.session.commit()

		# post-commit bookkeeping
		if parent:
			self._refresh_reply_count(parent.id)
		self.users.refresh_post_count(author_id)
		self.session.commit()

		logger.info('user %s created post %s', author_id, post.id)
		return post

	def edit(self, post_id, requester_id, content):
		result = validate_post({'content': content}, partial=True)
		if not result.ok:
			raise ValidationError(result.errors)

		post = self.get(post_id)
		if post.author_id != requester_id:
			raise Forbidden('You can only edit your own posts')

		content = content.strip()
		if content != post.content:
			post.edit_history.append(PostEdit(content=post.content, edited_at=utcnow()))
			post.content = content
			post.is_edited = True
			self._index_content(post)
			self.session.commit()

		return post

	def delete(self, post_id, requester_id):
		post = self.get(post_id)
		if post.author_id != requester_id:
			raise Forbidden('You can only delete your own posts')

		parent_id = post.parent_id
		author_id = post.author_id

		self.session.execute(update(Post).where(Post.parent_id == post.id)
			.values(parent_id=None))
		self.session.delete(post)
		self.session.commit()

		if parent_id is not None:
			self._refresh_reply_count(parent_id)
		self.users.refresh_post_count(author_id)
		self.session.commit()

		logger.info('user %s deleted post %s', requester_id, post_id)

	def toggle_like(self, post_id, user_id):
		post = self._get_visible(post_id, user_id)
		liked = self._toggle(Like, post.id, user_id)
		post.likes_count = self._count(Like, post.id)
		self.session.commit()
		return liked, post.likes_count

	def toggle_repost(self, post_id, user_id):
		post = self._get_visible(post_id, user_id)
		reposted = self._toggle(Repost, post.id, user_id)
		post.reposts_count = self._count(Repost, post.id)
		self.session.commit()
		return reposted, post.reposts_count

	def _get_visible(self, post_id, user_id):
		post = self.get(post_id)
		if not self.can_view(post, self.users.get(user_id)):
			raise Forbidden('You do not have permission to view this post')
		return post

	def is_liked_by(self, post, user_id):
		return self._exists(Like, post.id, user_id)

	def is_reposted_by(self, post, user_id):
		return self._exists(Repost, post.id, user_id)

	def can_view(self, post, viewer):
		if post.visibility == 'public':
			return True
		if viewer is None:
			return False
		if viewer.id == post.author_id:
			return True
		if post.visibility == 'followers':
			return self.users.is_following(viewer.id, post.author_id)
		return False

	def replies(self, post, limit=10):
		return self.session.query(Post).filter_by(parent_id=post.id) \
			.order_by(Post.created_at.desc(), Post.id.desc()) \
			.limit(limit).all()

	def timeline(self, user_id, following_ids, page=1, limit=20):
		query = self.session.query(Post).filter(
			Post.author_id.in_([user_id] + list(following_ids)),
			Post.is_reply.is_(False),
			Post.visibility.in_(('public', 'followers')))
		return self._page(query, page, limit), query.count()

	def public(self, page=1, limit=20):
		query = self.session.query(Post).filter(
			Post.visibility == 'public',
			Post.is_reply.is_(False))
		return self._page(query, page, limit)

	def by_author(self, author, viewer=None, page=1, limit=20):
		query = self.session.query(Post).filter(
			Post.author_id == author.id,
			Post.is_reply.is_(False))

		if viewer is None or viewer.id != author.id:
			visible = ['public']
			if viewer is not None and self.users.is_following(viewer.id, author.id):
				visible.append('followers')
			query = query.filter(Post.visibility.in_(visible))

		return self._page(query, page, limit), query.count()

	def search(self, query, limit=20):
		query = query.strip()
		return self.session.query(Post).filter(
				or_(Post.content.icontains(query, autoescape=True),
					Post.tags.any(Tag.name == query.lower())),
				Post.visibility == 'public',
				Post.is_reply.is_(False)) \
			.order_by(Post.created_at.desc(), Post.id.desc()) \
			.limit(limit).all()

	def _page(self, query, page, limit):
		return query.order_by(Post.created_at.desc(), Post.id.desc()) \
			.offset((page - 1) * limit).limit(limit).all()

	def _index_content(self, post):
		"""Replace the stored hashtag and mention sets from the current content."""
		tags = []
		for name in extract_hashtags(post.content):
			tag = self.session.query(Tag).filter_by(name=name).first()
			if not tag:
				tag = Tag(name=name)
				self.session.add(tag)
			tags.append(tag)
		post.tags = tags

		usernames = extract_mentions(post.content)
		if usernames:
			post.mentions = self.session.query(User).filter(User.username.in_(usernames)).all()
		else:
			post.mentions = []

	def _refresh_reply_count(self, post_id):
		parent = self.session.get(Post, post_id)
		if parent:
			parent.replies_count = self.session.scalar(
				select(func.count()).select_from(Post).where(Post.parent_id == post_id))

	def _toggle(self, model, post_id, user_id):
		removed = self.session.execute(delete(model).where(
			model.post_id == post_id, model.user_id == user_id)).rowcount
		if removed:
			return False

		self.session.add(model(post_id=post_id, user_id=user_id))
		try:
			self.session.flush()
		except IntegrityError:
			# a concurrent toggle by the same user inserted the row first
			self.session.rollback()
		return True

	def _count(self, model, post_id):
		return self.session.scalar(
			select(func.count()).select_from(model).where(model.post_id == post_id))

	def _exists(self, model, post_id, user_id):
		if user_id is None:
			return False
		return self.session.query(model).filter_by(post_id=post_id, user_id=user_id).first() is not None
