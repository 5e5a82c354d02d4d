"""
=============================================================================
USER HANDLERS
=============================================================================

    lookup     ANY  /username/<id>     read one user from the store
    add_user   POST /adduser           insert into the remote table

=============================================================================
LOOKUP
=============================================================================

    path.split("/")          "/username/1"  →  ["", "username", "1"]
        │
        ├── fewer than 3 segments        → 400 Invalid request URL
        ├── segment 2 not an int64       → 400 Invalid ID
        ├── id not in the store          → 404 User not found
        └── found                        → 200 {"id":1,"username":"Alice","age":30}

Anything after the id is ignored: /username/1/extra returns user 1.

=============================================================================
INSERT
=============================================================================

    method != POST                       → 405 (Allow: POST)
    body not {"username": str, "age": int64}
                                         → 400 Invalid request body
    username == "" or age <= 0           → 400 Invalid username or age
    remote insert fails                  → 500 <remote error text>
    ok                                   → 201 User added successfully

The store is not updated after an insert; the new row shows up in
lookups only once the snapshot is rebuilt.

=============================================================================
"""

import logging
import re
from typing import TYPE_CHECKING, Any, Optional, Tuple

from ..http.request import HTTPRequest, HTTPParseError
from ..http.response import (
    HTTPResponse,
    ok,
    created,
    bad_request,
    not_found,
    method_not_allowed,
    internal_error,
)
from ..store import USERS_TABLE, QueryError, UserStore

if TYPE_CHECKING:
    from ..remote import RemoteClient


logger = logging.getLogger(__name__)

# Optional sign, then ASCII digits only (no spaces, no underscores)
ID_PATTERN = re.compile(r"[+-]?[0-9]+")

# Ids and ages are 64-bit signed integers
INT64_MIN = -(2 ** 63)
INT64_MAX = 2 ** 63 - 1

# Longest int64 in decimal is 19 digits; longer strings are rejected
# before int() sees them
_MAX_ID_DIGITS = 19


def parse_user_id(segment: str) -> Optional[int]:
    """Parse a path segment as a base-10 int64 id, or None."""
    if not ID_PATTERN.fullmatch(segment):
        return None
    if len(segment.lstrip("+-").lstrip("0")) > _MAX_ID_DIGITS:
        return None

    user_id = int(segment)
    if not INT64_MIN <= user_id <= INT64_MAX:
        return None
    return user_id


class UserHandler:
    """
    Request handlers bound to one store and, optionally, one remote client.

        handler = UserHandler(UserStore.from_static())
        router.add_route("/username/*rest", handler.lookup)

        handler = UserHandler(store, client=RemoteClient.from_env())
        router.add_route("/adduser", handler.add_user)
    """

    def __init__(
        self,
        store: UserStore,
        client: Optional["RemoteClient"] = None,
        table: str = USERS_TABLE,
    ):
        self.store = store
        self.client = client
        self.table = table

    # =========================================================================
    # LOOKUP
    # =========================================================================

    def lookup(self, request: HTTPRequest) -> HTTPResponse:
        parts = request.path.split("/")
        if len(parts) < 3:
            return bad_request("Invalid request URL")

        user_id = parse_user_id(parts[2])
        if user_id is None:
            return bad_request("Invalid ID")

        user = self.store.get(user_id)
        if user is None:
            return not_found("User not found")

        try:
            return ok(user.to_dict())
        except (TypeError, ValueError) as e:
            logger.error(f"Could not encode user {user_id}: {e}")
            return internal_error("Error encoding JSON")

    # =========================================================================
    # INSERT
    # =========================================================================

    def add_user(self, request: HTTPRequest) -> HTTPResponse:
        if request.method != "POST":
            return method_not_allowed(["POST"])

        fields = self._read_new_user(request)
        if fields is None:
            return bad_request("Invalid request body")

        username, age = fields
        if not username or age <= 0:
            return bad_request("Invalid username or age")

        if self.client is None:
            return internal_error("Remote store is not configured")

        try:
            self.client.insert(self.table, {"username": username, "age": age})
        except QueryError as e:
            return internal_error(str(e))

        logger.info(f"Added user {username!r} (age {age})")
        return created("User added successfully")

    @staticmethod
    def _read_new_user(request: HTTPRequest) -> Optional[Tuple[str, int]]:
        """(username, age) from the JSON body, or None if it has the wrong shape."""
        try:
            body: Any = request.json
        except HTTPParseError:
            return None

        if not isinstance(body, dict):
            return None

        username, age = body.get("username"), body.get("age")
        if not isinstance(username, str):
            return None
        if isinstance(age, bool) or not isinstance(age, int):
            return None
        if not INT64_MIN <= age <= INT64_MAX:
            return None

        return username, age
