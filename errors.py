#! /usr/bin/env python

"""Error types raised by the request handlers and the storage layer.

Each error carries the HTTP status it maps to and a message that is safe to
hand back to the caller. app.py renders them as JSON.
"""


class PhotogError(Exception):
    """Base class for all errors reported back to a caller"""
    code = 500

    def __init__(self, message):
        super().__init__(message)
        self.message = message

    def to_dict(self):
        return {'error': self.message}


class ClientError(PhotogError):
    """Bad input: missing file, oversized file, wrong type, missing key"""
    code = 400


class AuthError(PhotogError):
    """Caller is not on the admin allowlist"""
    code = 403


class NotFoundError(PhotogError):
    code = 404


class ConfigError(PhotogError):
    """The deployment is missing a required setting (bucket binding)"""
    code = 500


class StoreError(PhotogError):
    """The object store raised while serving an otherwise valid request"""
    code = 500
