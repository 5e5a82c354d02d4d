"""
=============================================================================
USER STORE
=============================================================================

Owns the id → User mapping that every lookup reads.

    ┌─────────────────────────────────────────────────────────────────────┐
    │                         UserStore                                   │
    ├─────────────────────────────────────────────────────────────────────┤
    │                                                                      │
    │   _snapshot ──► MappingProxyType({1: User(...), 2: User(...)})       │
    │       ▲                                                              │
    │       │ atomic reference swap, under _write_lock                     │
    │       │                                                              │
    │   replace(users)   ◄── static_users()          (static variant)      │
    │   refresh()        ◄── load_users(client)      (remote variant)      │
    │                                                                      │
    │   get(id) / all() / len()   read the current snapshot, no lock       │
    │                                                                      │
    └─────────────────────────────────────────────────────────────────────┘

A snapshot is never mutated after it is published. Readers grab the
current reference once and see a consistent mapping even while a writer
is building the next one; writers serialize on a lock.

=============================================================================
LIFECYCLE
=============================================================================

The snapshot is built once at startup. POST /adduser writes to the remote
table only: the store is NOT refreshed afterwards, so a freshly inserted
user is not visible to GET /username/<id> until the process restarts or
refresh() is called.

=============================================================================
"""

import logging
import threading
from types import MappingProxyType
from typing import TYPE_CHECKING, Dict, Iterable, List, Mapping, Optional

from .models import User

if TYPE_CHECKING:
    from .remote import RemoteClient


logger = logging.getLogger(__name__)


USERS_TABLE = "users"
USER_COLUMNS = ("id", "username", "age")


class StoreError(Exception):
    """Base class for store failures."""


class QueryError(StoreError):
    """
    The remote store rejected or failed a query.

    ``status_code`` is the remote HTTP status when there was one, None for
    transport failures (DNS, refused connection, timeout).
    """

    def __init__(self, message: str, status_code: Optional[int] = None):
        super().__init__(message)
        self.status_code = status_code


# =============================================================================
# LOADERS
# =============================================================================

def static_users() -> Dict[int, User]:
    """The fixed three-user mapping served by ``--store static``."""
    return {
        1: User(id=1, name="Alice", age=30),
        2: User(id=2, name="Bob", age=25),
        3: User(id=3, name="Charlie", age=35),
    }


def load_users(client: "RemoteClient", table: str = USERS_TABLE) -> Dict[int, User]:
    """
    Fetch every user from the remote table.

    Each fetched row is also written to the diagnostic log.

    Raises:
        QueryError: If the read fails or a row cannot be turned into a User.
    """
    rows = client.select(table, USER_COLUMNS)

    users: Dict[int, User] = {}
    for row in rows:
        try:
            user = User.from_row(row)
        except (KeyError, TypeError, ValueError) as e:
            raise QueryError(f"Malformed row in {table}: {row!r} ({e})")

        users[user.id] = user
        logger.info(f"Loaded {user}")

    logger.info(f"Fetched {len(users)} users from {table}")
    return users


# =============================================================================
# STORE
# =============================================================================

class UserStore:
    """
    Thread-safe holder for the current user snapshot.

        store = UserStore.from_static()
        store.get(1)        # User(id=1, name='Alice', age=30)
        store.get(9)        # None

        store = UserStore.from_remote(client)   # fetches once, right here
    """

    def __init__(
        self,
        users: Optional[Mapping[int, User]] = None,
        client: Optional["RemoteClient"] = None,
        table: str = USERS_TABLE,
    ):
        """
        Args:
            users: Initial records. Copied; later changes to the argument
                   do not leak into the store.
            client: Remote client used by refresh(). None for a static store.
            table: Remote table to read.
        """
        self._write_lock = threading.Lock()
        self._client = client
        self._table = table
        self._snapshot: Mapping[int, User] = MappingProxyType(dict(users or {}))

    @classmethod
    def from_static(cls) -> "UserStore":
        return cls(static_users())

    @classmethod
    def from_remote(cls, client: "RemoteClient", table: str = USERS_TABLE) -> "UserStore":
        """
        Build a store populated from the remote table.

        Raises:
            QueryError: If the initial fetch fails.
        """
        store = cls(client=client, table=table)
        store.refresh()
        return store

    # =========================================================================
    # READS
    # =========================================================================

    @property
    def snapshot(self) -> Mapping[int, User]:
        """The current read-only mapping."""
        return self._snapshot

    @property
    def is_remote(self) -> bool:
        return self._client is not None

    def get(self, user_id: int) -> Optional[User]:
        return self._snapshot.get(user_id)

    def all(self) -> List[User]:
        """Every user, ordered by id."""
        snapshot = self._snapshot
        return [snapshot[key] for key in sorted(snapshot)]

    def __contains__(self, user_id: object) -> bool:
        return user_id in self._snapshot

    def __len__(self) -> int:
        return len(self._snapshot)

    # =========================================================================
    # WRITES
    # =========================================================================

    def replace(self, users: Iterable[User]) -> None:
        """Publish a new snapshot built from ``users`` (keyed by id)."""
        fresh = MappingProxyType({user.id: user for user in users})
        with self._write_lock:
            self._snapshot = fresh
        logger.debug(f"Store now holds {len(fresh)} users")

    def refresh(self) -> None:
        """
        Re-read the remote table and publish the result.

        Raises:
            StoreError: If the store has no remote client.
            QueryError: If the fetch fails; the old snapshot stays in place.
        """
        if self._client is None:
            raise StoreError("Static store cannot be refreshed")

        with self._write_lock:
            users = load_users(self._client, self._table)
            self._snapshot = MappingProxyType(users)
