"""Error taxonomy shared by the run and leaderboard services.

Each error knows the HTTP status it maps to; the app factory registers a
single handler that renders ``{'error': message}`` for all of them.
"""


class RunVaultError(Exception):
    status_code = 500
    default_message = 'Internal server error'

    def __init__(self, message=None):
        super().__init__(message or self.default_message)
        self.message = message or self.default_message

    def to_dict(self):
        return {'error': self.message}


class Unauthorized(RunVaultError):
    status_code = 401
    default_message = 'Unauthorized'


class ValidationError(RunVaultError):
    status_code = 400
    default_message = 'Invalid request'


class NotFound(RunVaultError):
    # Same message for "missing" and "owned by someone else"
    status_code = 404
    default_message = 'Save not found'


class StoreUnavailable(RunVaultError):
    status_code = 503
    default_message = 'Storage temporarily unavailable'
