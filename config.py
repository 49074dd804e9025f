import os
from flask_sqlalchemy import SQLAlchemy

db = SQLAlchemy()

def _env_flag(name, default=False):
	value = os.environ.get(name)
	if value is None:
		return default
	return value.strip().lower() in ('1', 'true', 'yes', 'on')

class Config:
	DEBUG = _env_flag('CHITCHAT_DEBUG')
	TESTING = False
	# must be overridden outside development
	SECRET_KEY = os.environ.get('CHITCHAT_SECRET_KEY', 'please-set-CHITCHAT_SECRET_KEY')
	SQLALCHEMY_DATABASE_URI = os.environ.get('CHITCHAT_DATABASE_URI', 'sqlite:///chitchat.db')
	SQLALCHEMY_TRACK_MODIFICATIONS = False

	JWT_EXPIRES_IN = os.environ.get('CHITCHAT_JWT_EXPIRE', '7d')
	JWT_ISSUER = 'chitchat-api'
	JWT_AUDIENCE = 'chitchat-users'
	JWT_ALGORITHM = 'HS256'

	CORS_ORIGINS = os.environ.get('CHITCHAT_CORS_ORIGINS', '*')
	LOG_LEVEL = os.environ.get('CHITCHAT_LOG_LEVEL', 'INFO')

	DEFAULT_PAGE_LIMIT = 20
	MAX_PAGE_LIMIT = 100
