"""Authentication service: user directory, sessions and profile updates.

Sessions live in a per-browser mapping (``st.session_state`` in the app, a
plain dict in tests) under ``auth_user_id``.
"""
from __future__ import annotations

import hashlib
import hmac
import logging
import os
import re
from typing import Any, Dict, List, MutableMapping, Optional

from sqlalchemy import select
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import sessionmaker

from teamtasks.backend import BackendError, Result
from teamtasks.models import User


logger = logging.getLogger(__name__)

SESSION_KEY = "auth_user_id"
MIN_PASSWORD_LENGTH = 6
_PBKDF2_ITERATIONS = 200_000
_EMAIL_RE = re.compile(r"^[^@\s]+@[^@\s]+\.[^@\s]+$")


def hash_password(password: str, *, salt: Optional[bytes] = None, iterations: int = _PBKDF2_ITERATIONS) -> str:
    salt = salt or os.urandom(16)
    digest = hashlib.pbkdf2_hmac("sha256", password.encode("utf-8"), salt, iterations)
    return f"pbkdf2_sha256${iterations}${salt.hex()}${digest.hex()}"


def check_password(password: str, encoded: str) -> bool:
    try:
        algo, iterations, salt_hex, digest_hex = encoded.split("$")
    except ValueError:
        return False
    if algo != "pbkdf2_sha256":
        return False
    digest = hashlib.pbkdf2_hmac("sha256", password.encode("utf-8"), bytes.fromhex(salt_hex), int(iterations))
    return hmac.compare_digest(digest.hex(), digest_hex)


def is_logged_in(session_state: MutableMapping[str, Any]) -> bool:
    return bool(session_state.get(SESSION_KEY))


def set_login_state(session_state: MutableMapping[str, Any], user_id: Optional[str]) -> None:
    if user_id:
        session_state[SESSION_KEY] = user_id
    else:
        session_state.pop(SESSION_KEY, None)


def display_name(user: Dict[str, Any]) -> str:
    """Name from the profile, else the local part of the email, else "User"."""
    name = (user.get("name") or "").strip()
    if name:
        return name
    email = user.get("email") or ""
    return email.split("@")[0] or "User"


class AuthService:
    def __init__(self, sessionmaker_: sessionmaker):
        self._sessionmaker = sessionmaker_

    def sign_up(self, email: str, password: str, name: str = "") -> Result:
        email = (email or "").strip().lower()
        if not _EMAIL_RE.match(email):
            return Result(error=BackendError("Please enter a valid email address", "invalid_email"))
        if len(password or "") < MIN_PASSWORD_LENGTH:
            return Result(error=BackendError(
                f"Password must be at least {MIN_PASSWORD_LENGTH} characters!", "weak_password"))
        try:
            with self._sessionmaker() as s:
                user = User(email=email, name=(name or "").strip() or None, password_hash=hash_password(password))
                s.add(user)
                s.commit()
                logger.info("Registered user %s", user.id)
                return Result(data=user.to_public_dict())
        except IntegrityError:
            return Result(error=BackendError("User already registered", "user_exists"))
        except SQLAlchemyError as exc:
            return Result(error=BackendError(str(exc), "db_error"))

    def sign_in(self, session_state: MutableMapping[str, Any], email: str, password: str) -> Result:
        email = (email or "").strip().lower()
        try:
            with self._sessionmaker() as s:
                user = s.execute(select(User).where(User.email == email)).scalar_one_or_none()
        except SQLAlchemyError as exc:
            return Result(error=BackendError(str(exc), "db_error"))
        if user is None or not check_password(password or "", user.password_hash):
            return Result(error=BackendError("Invalid login credentials", "invalid_credentials"))
        set_login_state(session_state, user.id)
        logger.info("User %s signed in", user.id)
        return Result(data=user.to_public_dict())

    def sign_out(self, session_state: MutableMapping[str, Any]) -> None:
        uid = session_state.get(SESSION_KEY)
        set_login_state(session_state, None)
        if uid:
            logger.info("User %s signed out", uid)

    def get_user(self, session_state: MutableMapping[str, Any]) -> Optional[Dict[str, Any]]:
        uid = session_state.get(SESSION_KEY)
        if not uid:
            return None
        try:
            with self._sessionmaker() as s:
                user = s.get(User, uid)
        except SQLAlchemyError:
            logger.exception("Error loading current user")
            return None
        if user is None:
            # Account deleted while signed in.
            set_login_state(session_state, None)
            return None
        return user.to_public_dict()

    def list_users(self) -> Result:
        try:
            with self._sessionmaker() as s:
                users = s.execute(select(User).order_by(User.created_at.asc())).scalars().all()
                return Result(data=[u.to_public_dict() for u in users])
        except SQLAlchemyError as exc:
            return Result(error=BackendError(str(exc), "db_error"))

    def update_user(
        self,
        session_state: MutableMapping[str, Any],
        *,
        email: Optional[str] = None,
        name: Optional[str] = None,
        password: Optional[str] = None,
    ) -> Result:
        uid = session_state.get(SESSION_KEY)
        if not uid:
            return Result(error=BackendError("Not authenticated", "not_authenticated"))
        if email is not None:
            email = email.strip().lower()
            if not _EMAIL_RE.match(email):
                return Result(error=BackendError("Please enter a valid email address", "invalid_email"))
        if password is not None and len(password) < MIN_PASSWORD_LENGTH:
            return Result(error=BackendError(
                f"Password must be at least {MIN_PASSWORD_LENGTH} characters!", "weak_password"))
        try:
            with self._sessionmaker() as s:
                user = s.get(User, uid)
                if user is None:
                    return Result(error=BackendError("User not found", "not_found"))
                if email is not None:
                    user.email = email
                if name is not None:
                    user.name = name.strip() or None
                if password is not None:
                    user.password_hash = hash_password(password)
                s.commit()
                return Result(data=user.to_public_dict())
        except IntegrityError:
            return Result(error=BackendError("A user with this email address has already been registered", "user_exists"))
        except SQLAlchemyError as exc:
            return Result(error=BackendError(str(exc), "db_error"))
