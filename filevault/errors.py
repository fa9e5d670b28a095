from __future__ import annotations


class FileVaultError(Exception):
    """Base for every failure the request layer maps onto a status code."""

    kind = 'error'
    status_code = 500
    default_message = 'Request failed'

    def __init__(self, message: str | None = None):
        self.message = message or self.default_message
        super().__init__(self.message)


class InvalidPath(FileVaultError):
    kind = 'invalid_path'
    status_code = 400
    default_message = 'Invalid path'


class InvalidName(FileVaultError):
    kind = 'invalid_name'
    status_code = 400
    default_message = 'Invalid name'


class NotFound(FileVaultError):
    kind = 'not_found'
    status_code = 404
    default_message = 'Not found'


class AlreadyExists(FileVaultError):
    kind = 'already_exists'
    status_code = 409
    default_message = 'Already exists'


class Unauthenticated(FileVaultError):
    kind = 'unauthenticated'
    status_code = 401
    default_message = 'Authentication required'


class Unauthorized(FileVaultError):
    kind = 'unauthorized'
    status_code = 403
    default_message = 'Admin role required'


class IOFailure(FileVaultError):
    kind = 'io_failure'
    status_code = 500
    default_message = 'Filesystem operation failed'
