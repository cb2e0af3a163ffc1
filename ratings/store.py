"""
ratings/store.py -- SQLAlchemy Core persistence layer for ratings.

Same contract as the stores in auth/store.py, with by_target() in place of
by_ids(). A principal rates a target at most once: the (user_id, target)
unique constraint surfaces as {"target": is_duplicate}.

Layer rule: no imports from api/.
"""

from __future__ import annotations

from sqlalchemy.engine import Engine
from sqlalchemy.exc import IntegrityError

from core.db import integrity_message, ratings
from core.errors import Duplicate, IdTaken, NotFound, RefNotFound, ValidationError
from ratings.models import Rating


class RatingStore:
    """Repository for Rating entities. Rating.user is never read or written."""

    def __init__(self, engine: Engine) -> None:
        self.engine = engine

    def create(self, rating: Rating) -> None:
        values = _rating_values(rating)
        if rating.id:
            values["id"] = rating.id
        try:
            with self.engine.connect() as conn:
                result = conn.execute(ratings.insert().values(**values))
                conn.commit()
        except IntegrityError as exc:
            field_error = _rating_field_error(exc)
            if field_error is None:
                raise
            raise field_error from exc
        rating.id = result.inserted_primary_key[0]

    def update(self, rating: Rating) -> None:
        try:
            with self.engine.connect() as conn:
                result = conn.execute(
                    ratings.update().where(ratings.c.id == rating.id).values(**_rating_values(rating))
                )
                conn.commit()
        except IntegrityError as exc:
            field_error = _rating_field_error(exc)
            if field_error is None:
                raise
            raise field_error from exc
        if result.rowcount == 0:
            raise NotFound(f"rating {rating.id} not found")

    def delete(self, rating_id: int) -> None:
        with self.engine.connect() as conn:
            result = conn.execute(ratings.delete().where(ratings.c.id == rating_id))
            conn.commit()
        if result.rowcount == 0:
            raise NotFound(f"rating {rating_id} not found")

    def by_id(self, rating_id: int) -> Rating:
        with self.engine.connect() as conn:
            row = conn.execute(ratings.select().where(ratings.c.id == rating_id)).fetchone()
        if row is None:
            raise NotFound(f"rating {rating_id} not found")
        return _row_to_rating(row)

    def by_target(self, target: int) -> list[Rating]:
        """All ratings of target, oldest first. Empty list when there are none."""
        query = ratings.select().where(ratings.c.target == target).order_by(ratings.c.id)
        with self.engine.connect() as conn:
            rows = conn.execute(query).fetchall()
        return [_row_to_rating(r) for r in rows]


# ---------------------------------------------------------------------------
# Helpers and row mapper
# ---------------------------------------------------------------------------


def _rating_values(rating: Rating) -> dict:
    return {
        "active": rating.active,
        "anonymous": rating.anonymous,
        "comment": rating.comment,
        "date": rating.date,
        "extra": rating.extra,
        "score": rating.score,
        "target": rating.target,
        "user_id": rating.user_id,
    }


def _rating_field_error(exc: IntegrityError) -> ValidationError | None:
    msg = integrity_message(exc)
    if "ratings.id" in msg or "ratings_pkey" in msg:
        return ValidationError({"id": IdTaken()})
    if "target" in msg:
        return ValidationError({"target": Duplicate()})
    if "foreign key" in msg:
        return ValidationError({"userId": RefNotFound()})
    return None


def _row_to_rating(row) -> Rating:
    return Rating(
        id=row.id,
        active=bool(row.active),
        anonymous=bool(row.anonymous),
        comment=row.comment,
        date=row.date,
        extra=row.extra,
        score=row.score,
        target=row.target,
        user_id=row.user_id,
    )
