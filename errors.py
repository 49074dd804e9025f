class ApiError(Exception):
	status = 500
	code = 'UNEXPECTED'
	message = 'Internal server error'

	def __init__(self, message=None):
		super().__init__(message or self.message)
		self.message = message or self.message

	def to_dict(self):
		return {'error': self.message, 'code': self.code}

class ValidationError(ApiError):
	status = 400
	code = 'VALIDATION_ERROR'
	message = 'Validation failed'

	def __init__(self, details=None, message=None):
		super().__init__(message)
		self.details = details or []

	def to_dict(self):
		data = super().to_dict()
		data['details'] = [
			detail.to_dict() if hasattr(detail, 'to_dict') else detail
			for detail in self.details
		]
		return data

class SelfFollow(ApiError):
	status = 400
	code = 'SELF_FOLLOW'
	message = 'You cannot follow yourself'

class Unauthorized(ApiError):
	status = 401
	code = 'UNAUTHORIZED'
	message = 'Unauthorized'

class NoToken(Unauthorized):
	code = 'NO_TOKEN'
	message = 'Access token required'

class InvalidToken(Unauthorized):
	code = 'INVALID_TOKEN'
	message = 'Invalid token'

class TokenExpired(Unauthorized):
	code = 'TOKEN_EXPIRED'
	message = 'Token expired'

class UserNotFound(Unauthorized):
	code = 'USER_NOT_FOUND'
	message = 'User not found'

class InvalidCredentials(Unauthorized):
	code = 'INVALID_CREDENTIALS'
	message = 'Invalid credentials'

class Forbidden(ApiError):
	status = 403
	code = 'FORBIDDEN'
	message = 'You do not have permission to perform this action'

class NotFound(ApiError):
	status = 404
	code = 'NOT_FOUND'
	message = 'Not found'

class Conflict(ApiError):
	status = 409
	code = 'CONFLICT'
	message = 'Resource already exists'

	def __init__(self, message=None, field=None):
		super().__init__(message)
		self.field = field

	def to_dict(self):
		data = super().to_dict()
		if self.field:
			data['field'] = self.field
		return data
