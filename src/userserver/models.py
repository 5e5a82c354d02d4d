"""User record."""

from dataclasses import dataclass
from typing import Any, Dict, Mapping


@dataclass(frozen=True)
class User:
    """
    One row of the users table.

    On the wire the name is called ``username``:

        User(id=1, name="Alice", age=30)  ⇄  {"id": 1, "username": "Alice", "age": 30}
    """

    id: int
    name: str
    age: int

    def to_dict(self) -> Dict[str, Any]:
        return {"id": self.id, "username": self.name, "age": self.age}

    @classmethod
    def from_row(cls, row: Mapping[str, Any]) -> "User":
        """
        Build a User from a remote table row.

        Raises:
            KeyError: If a column is missing.
            TypeError / ValueError: If a column has the wrong type.
        """
        user_id, name, age = row["id"], row["username"], row["age"]

        if isinstance(user_id, bool) or not isinstance(user_id, int):
            raise TypeError(f"id must be an integer, got {user_id!r}")
        if isinstance(age, bool) or not isinstance(age, int):
            raise TypeError(f"age must be an integer, got {age!r}")
        if not isinstance(name, str):
            raise TypeError(f"username must be a string, got {name!r}")

        return cls(id=user_id, name=name, age=age)
