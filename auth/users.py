"""
auth/users.py -- Principal validation, authentication and token lifecycle.

UserService wraps UserStore with the validation pipelines from
core/validation.py and owns everything credential related:

  authenticate(email, password) -> User      (login, password grant)
  token(user)                   -> TokenPair
  validate(access_token)        -> User      (every authenticated request)
  refresh(refresh_token)        -> User      (refresh_token grant)

Callers only ever see three outcomes from the credential methods: a User,
NoCredentials (nothing was supplied) or Unauthorized. Why a login failed
(unknown email, inactive account, wrong password, malformed input) is logged
and never returned. Every failed login sleeps AUTH_FAILURE_DELAY before
answering, and a missing account still costs one bcrypt comparison, so
neither the answer nor its timing reveals whether an email is registered.

Every User leaving this service has password == "".

Layer rule: no imports from api/ or ratings/.
"""

from __future__ import annotations

import logging
import re
import time

from auth.gate import ensure_user_mutable
from auth.models import TokenPair, User
from auth.store import RoleStore, UserStore
from auth.tokens import burn_password_check, create_token_pair, decode_token, hash_password, verify_password
from core.db import MAX_ID
from core.errors import (
    Duplicate,
    Invalid,
    ModelError,
    NoCredentials,
    NotFound,
    PasswordIncorrect,
    RefNotFound,
    Required,
    TokenExpired,
    TokenInvalid,
    TooLong,
    TooShort,
    Unauthorized,
    ValidationError,
)
from core.validation import Step, run_validators

logger = logging.getLogger("ratingsapp.auth")

AUTH_FAILURE_DELAY = 0.5  # seconds

MIN_PASSWORD_LENGTH = 8
MAX_PASSWORD_BYTES = 72  # bcrypt input limit
MIN_FIRST_NAME_LENGTH = 2
MAX_SETTINGS_BYTES = 8192

_EMAIL_RE = re.compile(r"^[a-z0-9._%+\-]+@[a-z0-9._\-]+\.[a-z0-9._\-]{2,16}$")


def normalize_email(email: str) -> str:
    return email.strip().lower()


# ---------------------------------------------------------------------------
# Validation steps
# ---------------------------------------------------------------------------


def _id_set_to_zero() -> Step:
    def check(user: User) -> None:
        user.id = 0

    return Step("", check)


def _id_not_super_admin() -> Step:
    def check(user: User) -> None:
        ensure_user_mutable(user.id)

    return Step("", check)


def _first_name_required() -> Step:
    def check(user: User) -> None:
        if not user.first_name:
            raise Required()

    return Step("firstName", check)


def _first_name_length() -> Step:
    def check(user: User) -> None:
        if len(user.first_name) < MIN_FIRST_NAME_LENGTH:
            raise TooShort()

    return Step("firstName", check)


def _settings_length() -> Step:
    def check(user: User) -> None:
        if len(user.settings.encode("utf-8")) > MAX_SETTINGS_BYTES:
            raise TooLong()

    return Step("settings", check)


def _password_required() -> Step:
    def check(user: User) -> None:
        if not user.password:
            raise Required()

    return Step("password", check)


def _password_length() -> Step:
    """Only checks a supplied password; an empty one is password_required's business."""

    def check(user: User) -> None:
        if not user.password:
            return
        if len(user.password) < MIN_PASSWORD_LENGTH:
            raise TooShort()
        if len(user.password.encode("utf-8")) > MAX_PASSWORD_BYTES:
            raise TooLong()

    return Step("password", check)


def _password_hash() -> Step:
    def check(user: User) -> None:
        if user.password:
            user.password = hash_password(user.password)

    return Step("", check)


def _email_required() -> Step:
    def check(user: User) -> None:
        if not user.email:
            raise Required()

    return Step("email", check)


def _email_normalize() -> Step:
    def check(user: User) -> None:
        user.email = normalize_email(user.email)

    return Step("email", check)


def _email_format() -> Step:
    def check(user: User) -> None:
        if user.email and not _EMAIL_RE.match(user.email):
            raise Invalid()

    return Step("email", check)


class _CurrentUser:
    """Holds the stored version of a principal while its update is validated.

    fetch() must run before the other steps it hands out.
    """

    def __init__(self, store: UserStore) -> None:
        self.store = store
        self.user = User()

    def fetch(self) -> Step:
        def check(user: User) -> None:
            self.user = self.store.by_id(user.id)

        return Step("", check)

    def preserve_password(self) -> Step:
        """Keep the stored hash when no new password was supplied. Runs after _password_hash."""

        def check(user: User) -> None:
            if not user.password:
                user.password = self.user.password

        return Step("", check)

    def email_not_taken(self) -> Step:
        def check(user: User) -> None:
            if user.email == self.user.email:
                return
            try:
                owner = self.store.by_email(user.email)
            except NotFound:
                return
            if owner.id != user.id:
                raise Duplicate()

        return Step("email", check)


class UserService:
    """Validating facade over UserStore. Construct once per application.

    Usage:
        service = UserService(UserStore(engine), RoleStore(engine))
        user = service.authenticate("jane@example.com", "s3cret-pass")
        pair = service.token(user)
    """

    def __init__(self, store: UserStore, roles: RoleStore) -> None:
        self.store = store
        self.roles = roles

    # -- steps that need the stores ---------------------------------------

    def _email_not_taken(self) -> Step:
        def check(user: User) -> None:
            try:
                self.store.by_email(user.email)
            except NotFound:
                return
            raise Duplicate()

        return Step("email", check)

    def _role_exists(self) -> Step:
        def check(user: User) -> None:
            if not 1 <= user.role_id <= MAX_ID:
                raise RefNotFound()
            try:
                self.roles.by_id(user.role_id)
            except NotFound:
                raise RefNotFound() from None

        return Step("roleId", check)

    # -- CRUD -------------------------------------------------------------

    def create(self, user: User) -> None:
        """Validate and insert user. On success user.id is set; password is always cleared."""
        try:
            run_validators(
                user,
                [
                    _id_set_to_zero(),
                    _first_name_required(),
                    _first_name_length(),
                    _settings_length(),
                    _password_required(),
                    _password_length(),
                    _password_hash(),
                    _email_required(),
                    _email_normalize(),
                    _email_format(),
                    self._email_not_taken(),
                    self._role_exists(),
                ],
            )
            self.store.create(user)
        finally:
            user.password = ""
        logger.info("Created user %d (%s)", user.id, user.email)

    def update(self, user: User) -> None:
        """Validate and rewrite user. An empty password keeps the stored one.

        The super-admin (principal 1) is read-only. A missing principal
        raises NotFound before any field is checked.
        """
        current = _CurrentUser(self.store)

        try:
            run_validators(
                user,
                [
                    current.fetch(),
                    _id_not_super_admin(),
                    _first_name_required(),
                    _first_name_length(),
                    _settings_length(),
                    _email_required(),
                    _email_normalize(),
                    _email_format(),
                    _password_length(),
                    _password_hash(),
                    current.preserve_password(),
                    current.email_not_taken(),
                    self._role_exists(),
                ],
            )
            self.store.update(user)
        finally:
            user.password = ""
        logger.info("Updated user %d", user.id)

    def delete(self, user_id: int) -> None:
        run_validators(User(id=user_id), [_id_not_super_admin()])
        self.store.delete(user_id)
        logger.info("Deleted user %d", user_id)

    def by_id(self, user_id: int) -> User:
        return _cleared(self.store.by_id(user_id))

    def by_ids(self, *user_ids: int) -> list[User]:
        return [_cleared(u) for u in self.store.by_ids(*user_ids)]

    def by_email(self, email: str) -> User:
        candidate = User(email=email)
        run_validators(candidate, [_email_required(), _email_normalize(), _email_format()])
        return _cleared(self.store.by_email(candidate.email))

    # -- credentials ------------------------------------------------------

    def authenticate(self, email: str, password: str) -> User:
        """Return the active principal owning email and password.

        Raises NoCredentials when either value is empty, Unauthorized for
        every other failure (after AUTH_FAILURE_DELAY).
        """
        email = normalize_email(email or "")
        if not email or not password:
            raise NoCredentials()

        try:
            user = self._check_credentials(email, password)
        except ModelError as exc:
            logger.info("Authentication failed for %s: %s", email, exc)
            time.sleep(AUTH_FAILURE_DELAY)
            raise Unauthorized() from exc

        logger.info("Authenticated user %d", user.id)
        return _cleared(user)

    def _check_credentials(self, email: str, password: str) -> User:
        candidate = User(email=email, password=password)
        run_validators(candidate, [_password_length(), _email_format()])

        try:
            user = self.store.by_email(email)
        except NotFound:
            burn_password_check(password)
            raise

        if not verify_password(password, user.password):
            raise ValidationError({"password": PasswordIncorrect()})
        if not user.active:
            raise Invalid(f"user {user.id} is inactive")
        return user

    def token(self, user: User) -> TokenPair:
        return create_token_pair(user)

    def validate(self, access_token: str) -> User:
        """Resolve an access token to its active principal, or raise Unauthorized."""
        if not access_token:
            raise Unauthorized()
        return self._user_from_token(access_token, refresh=False)

    def refresh(self, refresh_token: str) -> User:
        """Resolve a refresh token to its active principal.

        Raises NoCredentials for an empty token, Unauthorized otherwise.
        """
        if not refresh_token:
            raise NoCredentials()
        return self._user_from_token(refresh_token, refresh=True)

    def _user_from_token(self, token: str, refresh: bool) -> User:
        try:
            claims = decode_token(token, refresh=refresh)
            user = self.store.by_id(claims.user_id)
        except (TokenInvalid, TokenExpired, NotFound) as exc:
            logger.debug("Token rejected: %s", exc)
            raise Unauthorized() from exc
        if not user.active:
            raise Unauthorized(f"user {user.id} is inactive")
        return _cleared(user)


def _cleared(user: User) -> User:
    user.password = ""
    return user
