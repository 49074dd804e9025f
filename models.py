from datetime import datetime, timezone
from config import db

VISIBILITIES = ('public', 'followers', 'private')

def utcnow():
	# columns are naive and always hold UTC
	return datetime.now(timezone.utc).replace(tzinfo=None)

post_tag = db.Table('post_tag',
	db.Column('post_id', db.Integer, db.ForeignKey('post.id', ondelete='CASCADE'), primary_key=True),
	db.Column('tag_id', db.Integer, db.ForeignKey('tag.id', ondelete='CASCADE'), primary_key=True)
)

post_mention = db.Table('post_mention',
	db.Column('post_id', db.Integer, db.ForeignKey('post.id', ondelete='CASCADE'), primary_key=True),
	db.Column('user_id', db.Integer, db.ForeignKey('user.id', ondelete='CASCADE'), primary_key=True)
)

class User(db.Model):
	id = db.Column(db.Integer, primary_key=True)
	username = db.Column(db.String(30), unique=True, nullable=False, index=True)
	email = db.Column(db.String(254), unique=True, nullable=False, index=True)
	hashed_password = db.Column(db.String, nullable=False)

	display_name = db.Column(db.String(50), nullable=False, default='')
	bio = db.Column(db.String(160), nullable=False, default='')
	location = db.Column(db.String(50), nullable=False, default='')
	website = db.Column(db.String, nullable=False, default='')
	avatar = db.Column(db.String, nullable=False, default='')

	is_private = db.Column(db.Boolean, nullable=False, default=False)
	is_verified = db.Column(db.Boolean, nullable=False, default=False)

	posts_count = db.Column(db.Integer, nullable=False, default=0)
	followers_count = db.Column(db.Integer, nullable=False, default=0)
	following_count = db.Column(db.Integer, nullable=False, default=0)

	created_at = db.Column(db.DateTime, nullable=False, default=utcnow)
	updated_at = db.Column(db.DateTime, nullable=False, default=utcnow, onupdate=utcnow)

class Follower(db.Model):
	id = db.Column(db.Integer, primary_key=True)
	follower_id = db.Column(db.Integer, db.ForeignKey('user.id'), nullable=False, index=True)
	followed_id = db.Column(db.Integer, db.ForeignKey('user.id'), nullable=False, index=True)
	created_at = db.Column(db.DateTime, nullable=False, default=utcnow)

	__table_args__ = (
		db.UniqueConstraint('follower_id', 'followed_id'),
		db.CheckConstraint('follower_id != followed_id', name='no_self_follow'),
	)

class Tag(db.Model):
	id = db.Column(db.Integer, primary_key=True)
	name = db.Column(db.String, unique=True, nullable=False)

class Post(db.Model):
	id = db.Column(db.Integer, primary_key=True)
	content = db.Column(db.String(280), nullable=False)
	author_id = db.Column(db.Integer, db.ForeignKey('user.id'), nullable=False, index=True)
	parent_id = db.Column(db.Integer, db.ForeignKey('post.id'), nullable=True, index=True)
	is_reply = db.Column(db.Boolean, nullable=False, default=False)
	visibility = db.Column(db.Enum(*VISIBILITIES, name='visibility'), nullable=False, default='public')

	likes_count = db.Column(db.Integer, nullable=False, default=0)
	replies_count = db.Column(db.Integer, nullable=False, default=0)
	reposts_count = db.Column(db.Integer, nullable=False, default=0)

	is_edited = db.Column(db.Boolean, nullable=False, default=False)
	created_at = db.Column(db.DateTime, nullable=False, default=utcnow, index=True)
	updated_at = db.Column(db.DateTime, nullable=False, default=utcnow, onupdate=utcnow)

	author = db.relationship('User', lazy='joined')
	images = db.relationship('PostImage', order_by='PostImage.position',
		cascade='all, delete-orphan')
	likes = db.relationship('Like', cascade='all, delete-orphan')
	reposts = db.relationship('Repost', cascade='all, delete-orphan')
	edit_history = db.relationship('PostEdit', order_by='PostEdit.id',
		cascade='all, delete-orphan')
	tags = db.relationship('Tag', secondary=post_tag, order_by='Tag.name')
	mentions = db.relationship('User', secondary=post_mention, order_by='User.username')

	@property
	def hashtags(self):
		return [tag.name for tag in self.tags]

class PostImage(db.Model):
	id = db.Column(db.Integer, primary_key=True)
	post_id = db.Column(db.Integer, db.ForeignKey('post.id'), nullable=False, index=True)
	position = db.Column(db.Integer, nullable=False)
	url = db.Column(db.String, nullable=False)
	alt = db.Column(db.String, nullable=False, default='')

class PostEdit(db.Model):
	id = db.Column(db.Integer, primary_key=True)
	post_id = db.Column(db.Integer, db.ForeignKey('post.id'), nullable=False, index=True)
	content = db.Column(db.String(280), nullable=False)
	edited_at = db.Column(db.DateTime, nullable=False, default=utcnow)

class Like(db.Model):
	id = db.Column(db.Integer, primary_key=True)
	post_id = db.Column(db.Integer, db.ForeignKey('post.id'), nullable=False, index=True)
	user_id = db.Column(db.Integer, db.ForeignKey('user.id'), nullable=False, index=True)
	created_at = db.Column(db.DateTime, nullable=False, default=utcnow)

	__table_args__ = (db.UniqueConstraint('post_id', 'user_id'),)

class Repost(db.Model):
	id = db.Column(db.Integer, primary_key=True)
	post_id = db.Column(db.Integer, db.ForeignKey('post.id'), nullable=False, index=True)
	user_id = db.Column(db.Integer, db.ForeignKey('user.id'), nullable=False, index=True)
	created_at = db.Column(db.DateTime, nullable=False, default=utcnow)

	__table_args__ = (db.UniqueConstraint('post_id', 'user_id'),)
