"""
ratings/models.py -- Domain dataclass for a rating.

Pattern: Data class (pure data container, zero logic).

Layer rule: no imports from api/.
"""

from __future__ import annotations

from dataclasses import dataclass

from auth.models import User


@dataclass
class Rating:
    """A score one principal gives to a target.

    target is an opaque positive id of whatever is being rated; nothing
    checks that it exists. It is fixed once the rating is created.

    user_id is the owner and is always forced to the session caller by the
    rating service. user carries that caller into the service and is never
    persisted.

    extra is a serialized JSON document (at most 512 bytes) for client data.
    """

    score: int = 0
    target: int = 0
    comment: str = ""
    extra: str = "{}"
    active: bool = True
    anonymous: bool = True
    date: int = 0  # epoch seconds, set by the service on every write
    user_id: int = 0
    id: int = 0
    user: User | None = None
