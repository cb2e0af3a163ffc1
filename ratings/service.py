"""
ratings/service.py -- Rating validation and ownership rules.

Every operation needs the session caller in Rating.user; the owner of a new
or updated rating is always that caller, whatever user_id the request held.

  create -- any authenticated caller; one rating per (caller, target)
  update -- the owner only; the stored target is kept
  delete -- the owner, or a caller holding the admin role

Ownership decisions come from auth/gate.py and are made against the stored
rating, never against what the request claims.

Layer rule: no imports from api/.
"""

from __future__ import annotations

import logging
import time

from auth.gate import ensure_owner, ensure_owner_or_admin
from auth.models import User
from auth.users import UserService
from core.db import MAX_ID
from core.errors import Invalid, Required, TooLong, Unauthorized
from core.validation import Step, run_validators
from ratings.models import Rating
from ratings.store import RatingStore

logger = logging.getLogger("ratingsapp.ratings")

MAX_COMMENT_LENGTH = 512
MAX_EXTRA_BYTES = 512

_INT32_MIN = -(2**31)
_INT32_MAX = 2**31 - 1


# ---------------------------------------------------------------------------
# Validation steps
# ---------------------------------------------------------------------------


def _id_set_to_zero() -> Step:
    def check(rating: Rating) -> None:
        rating.id = 0

    return Step("", check)


def _session_user_valid() -> Step:
    def check(rating: Rating) -> None:
        if rating.user is None or rating.user.id < 1:
            raise Unauthorized("rating operation without a session user")

    return Step("", check)


def _set_date() -> Step:
    def check(rating: Rating) -> None:
        rating.date = int(time.time())

    return Step("", check)


def _target_required() -> Step:
    def check(rating: Rating) -> None:
        if not rating.target:
            raise Required()

    return Step("target", check)


def _target_positive() -> Step:
    def check(rating: Rating) -> None:
        if not 1 <= rating.target <= MAX_ID:
            raise Invalid()

    return Step("target", check)


def _score_required() -> Step:
    def check(rating: Rating) -> None:
        if not rating.score:
            raise Required()

    return Step("score", check)


def _score_range() -> Step:
    def check(rating: Rating) -> None:
        if not _INT32_MIN <= rating.score <= _INT32_MAX:
            raise Invalid()

    return Step("score", check)


def _comment_length() -> Step:
    def check(rating: Rating) -> None:
        if len(rating.comment) > MAX_COMMENT_LENGTH:
            raise TooLong()

    return Step("comment", check)


def _extra_length() -> Step:
    def check(rating: Rating) -> None:
        if len(rating.extra.encode("utf-8")) > MAX_EXTRA_BYTES:
            raise TooLong()

    return Step("extra", check)


class _SessionContext:
    """Caller and stored rating fetched while one operation is validated.

    fetch_caller() must run first, fetch_stored() before the ownership steps.
    """

    def __init__(self, users: UserService, store: RatingStore) -> None:
        self.users = users
        self.store = store
        self.caller = User()
        self.stored = Rating()

    def fetch_caller(self) -> Step:
        def check(rating: Rating) -> None:
            self.caller = self.users.by_id(rating.user.id)

        return Step("", check)

    def fetch_stored(self) -> Step:
        def check(rating: Rating) -> None:
            self.stored = self.store.by_id(rating.id)

        return Step("", check)

    def caller_is_owner(self) -> Step:
        def check(rating: Rating) -> None:
            ensure_owner(self.stored, self.caller)

        return Step("", check)

    def caller_is_owner_or_admin(self) -> Step:
        def check(rating: Rating) -> None:
            ensure_owner_or_admin(self.stored, self.caller)

        return Step("", check)

    def keep_stored_target(self) -> Step:
        def check(rating: Rating) -> None:
            rating.target = self.stored.target

        return Step("", check)

    def caller_as_owner(self) -> Step:
        def check(rating: Rating) -> None:
            rating.user_id = self.caller.id

        return Step("", check)


class RatingService:
    """Validating facade over RatingStore.

    Usage:
        service = RatingService(RatingStore(engine), user_service)
        rating = Rating(score=10, target=9999, user=caller)
        service.create(rating)   # rating.user_id == caller.id
    """

    def __init__(self, store: RatingStore, users: UserService) -> None:
        self.store = store
        self.users = users

    def create(self, rating: Rating) -> None:
        ctx = _SessionContext(self.users, self.store)
        run_validators(
            rating,
            [
                _id_set_to_zero(),
                _session_user_valid(),
                _target_required(),
                _score_required(),
                _score_range(),
                _comment_length(),
                _extra_length(),
                _target_positive(),
                ctx.fetch_caller(),
                ctx.caller_as_owner(),
                _set_date(),
            ],
        )
        self.store.create(rating)
        logger.info("User %d rated target %d (rating %d)", rating.user_id, rating.target, rating.id)

    def update(self, rating: Rating) -> None:
        ctx = _SessionContext(self.users, self.store)
        run_validators(
            rating,
            [
                _session_user_valid(),
                _score_required(),
                _score_range(),
                _comment_length(),
                _extra_length(),
                ctx.fetch_caller(),
                ctx.fetch_stored(),
                ctx.caller_is_owner(),
                ctx.keep_stored_target(),
                ctx.caller_as_owner(),
                _set_date(),
            ],
        )
        self.store.update(rating)
        logger.info("User %d updated rating %d", rating.user_id, rating.id)

    def delete(self, rating: Rating) -> None:
        """Delete rating.id on behalf of rating.user."""
        ctx = _SessionContext(self.users, self.store)
        run_validators(
            rating,
            [
                _session_user_valid(),
                ctx.fetch_caller(),
                ctx.fetch_stored(),
                ctx.caller_is_owner_or_admin(),
            ],
        )
        self.store.delete(rating.id)
        logger.info("User %d deleted rating %d", ctx.caller.id, rating.id)

    def by_id(self, rating_id: int) -> Rating:
        return self.store.by_id(rating_id)

    def by_target(self, target: int) -> list[Rating]:
        return self.store.by_target(target)
