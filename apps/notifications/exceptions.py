"""
HTTP-level exceptions for the notifications app.
"""
from rest_framework.exceptions import APIException


class MissingAuthorizationError(APIException):
    """Push endpoint called without an Authorization header."""
    status_code = 401
    default_detail = 'Missing authorization'
    default_code = 'missing_authorization'
