from rest_framework import permissions

from .exceptions import MissingAuthorizationError


class HasAuthorizationHeader(permissions.BasePermission):
    """
    Permission: request must carry an Authorization header.

    The push endpoint is called server-to-server with a service credential,
    which is only checked for presence.
    """

    def has_permission(self, request, view):
        if not request.META.get('HTTP_AUTHORIZATION'):
            raise MissingAuthorizationError()
        return True
