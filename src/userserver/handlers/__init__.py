"""
Request handlers.

A handler takes an HTTPRequest and returns an HTTPResponse. Handlers that
need collaborators (a store, a remote client) are methods on a class
built once at startup and registered with the router.
"""

from .users import UserHandler, parse_user_id, ID_PATTERN

__all__ = [
    "UserHandler",
    "parse_user_id",
    "ID_PATTERN",
]
