"""
auth/accounts.py -- Registration, login and profile flows.

These functions sit between the HTTP routes and the store/token primitives.
Input has already been validated by the API models when they run; the flows
own the ordering rules and the error mapping.

Registration:
  normalize email -> find_by_email pre-check (fast 409) -> create_user ->
  issue token. The pre-check is an optimization only. When two requests race
  past it, the UNIQUE constraint rejects the second insert and the store's
  DuplicateEmail is surfaced as EmailTaken, the same outcome as the pre-check.

Login [T1]:
  Unknown email and wrong password raise the same InvalidCredentials, and both
  paths run exactly one bcrypt verification (against dummy_hash() when the
  email is unknown), so neither the response body nor its timing reveals
  whether an account exists.

Layer rule: no imports from api/ or core/.
"""

from __future__ import annotations

import logging
from dataclasses import replace

from auth.errors import DuplicateEmail, EmailTaken, InvalidCredentials, NotFound, StorageError
from auth.models import User
from auth.passwords import dummy_hash, verify_password
from auth.store import UserStore, normalize_email
from auth.tokens import TokenIssuer

logger = logging.getLogger("passgate.auth")


def register(
    store: UserStore,
    tokens: TokenIssuer,
    email: str,
    password: str,
    first_name: str,
    last_name: str,
) -> tuple[User, str]:
    """Create an account and return (user without password hash, token).

    Raises EmailTaken if the email is already registered, StorageError on
    database failure.
    """
    email = normalize_email(email)
    if store.find_by_email(email) is not None:
        logger.info("Registration rejected: email already registered")
        raise EmailTaken()

    try:
        user_id = store.create_user(email, password, first_name, last_name)
    except DuplicateEmail as exc:
        # Lost the race against a concurrent registration of the same email.
        raise EmailTaken() from exc

    user = store.find_by_id(user_id)
    if user is None:
        raise StorageError("User not found after write")
    logger.info("Registered user id=%d", user_id)
    return user, tokens.issue(user_id)


def authenticate(store: UserStore, email: str, password: str) -> User:
    """Return the user for a matching email/password pair with password_hash cleared.

    Always runs bcrypt once, whether or not the user exists [T1].
    """
    user = store.find_by_email(email)
    if user is None or user.password_hash is None:
        # Equalize timing -- do NOT return before running bcrypt [T1]
        verify_password(password, dummy_hash(store.bcrypt_rounds))
        raise InvalidCredentials()
    if not verify_password(password, user.password_hash):
        raise InvalidCredentials()
    return replace(user, password_hash=None)


def login(store: UserStore, tokens: TokenIssuer, email: str, password: str) -> tuple[User, str]:
    """Verify credentials and return (user without password hash, token).

    Raises InvalidCredentials for an unknown email or a wrong password.
    """
    try:
        user = authenticate(store, normalize_email(email), password)
    except InvalidCredentials:
        logger.warning("Failed login attempt")
        raise
    logger.info("Login succeeded for user id=%d", user.id)
    return user, tokens.issue(user.id)


def get_profile(store: UserStore, user_id: int) -> User:
    """Return the user for an authenticated id. Raises NotFound if the account is gone."""
    user = store.find_by_id(user_id)
    if user is None:
        raise NotFound()
    return user
