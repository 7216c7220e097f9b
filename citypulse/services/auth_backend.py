"""
Email/password accounts.

``AuthBackend`` is shared by the whole process and talks to the ``users``
collection. ``AuthClient`` is the per-browser view of it: it remembers who is
signed in and tells listeners whenever that changes.
"""
from __future__ import annotations

import logging
from enum import Enum
from typing import Awaitable, Callable, List, Optional

from email_validator import EmailNotValidError, validate_email
from pymongo.errors import PyMongoError

from citypulse.core.security import hash_password, normalize_email, verify_password
from citypulse.models.identity import Identity
from citypulse.repositories.user_repository import UserRepository
from citypulse.utils.subscription import Subscription

logger = logging.getLogger(__name__)


class AuthBackendCode(str, Enum):
    invalid_email = "auth/invalid-email"
    user_disabled = "auth/user-disabled"
    user_not_found = "auth/user-not-found"
    wrong_password = "auth/wrong-password"
    email_already_in_use = "auth/email-already-in-use"
    operation_not_allowed = "auth/operation-not-allowed"
    internal_error = "auth/internal-error"


class AuthBackendError(Exception):
    def __init__(self, code: AuthBackendCode, message: str = ""):
        self.code = code
        super().__init__(message or code.value)


AuthListener = Callable[[Optional[Identity]], Awaitable[None]]


def _to_identity(doc: dict) -> Identity:
    return Identity(uid=str(doc["_id"]), email=doc["email"])


class AuthBackend:
    def __init__(self, users: UserRepository, allow_sign_up: bool = True):
        self.users = users
        self.allow_sign_up = allow_sign_up

    @staticmethod
    def _checked_email(email: str) -> str:
        try:
            validate_email(email or "", check_deliverability=False)
        except EmailNotValidError as exc:
            raise AuthBackendError(AuthBackendCode.invalid_email, str(exc)) from exc
        return normalize_email(email)

    async def verify_credentials(self, email: str, password: str) -> Identity:
        email = self._checked_email(email)
        try:
            doc = await self.users.find_by_email(email)
        except PyMongoError as exc:
            raise AuthBackendError(AuthBackendCode.internal_error, str(exc)) from exc

        if not doc:
            raise AuthBackendError(AuthBackendCode.user_not_found)
        if not doc.get("is_active", True):
            raise AuthBackendError(AuthBackendCode.user_disabled)
        try:
            matches = verify_password(password or "", doc.get("password_hash", ""))
        except ValueError as exc:
            # stored hash passlib cannot identify
            logger.error("Unreadable password hash for %s: %s", email, exc)
            raise AuthBackendError(AuthBackendCode.internal_error, str(exc)) from exc
        if not matches:
            raise AuthBackendError(AuthBackendCode.wrong_password)
        return _to_identity(doc)

    async def create_account(self, email: str, password: str) -> Identity:
        if not self.allow_sign_up:
            raise AuthBackendError(AuthBackendCode.operation_not_allowed)
        email = self._checked_email(email)
        try:
            if await self.users.find_by_email(email):
                raise AuthBackendError(AuthBackendCode.email_already_in_use)
            doc = await self.users.insert(email, hash_password(password))
        except PyMongoError as exc:
            raise AuthBackendError(AuthBackendCode.internal_error, str(exc)) from exc

        # unique index caught a concurrent sign-up
        if doc is None:
            raise AuthBackendError(AuthBackendCode.email_already_in_use)
        return _to_identity(doc)

    async def lookup(self, uid: str) -> Optional[Identity]:
        """Current account for ``uid``, or None when it is gone or disabled."""
        doc = await self.users.find_by_id(uid)
        if not doc or not doc.get("is_active", True):
            return None
        return _to_identity(doc)


class AuthClient:
    def __init__(self, backend: AuthBackend):
        self.backend = backend
        self.current_user: Optional[Identity] = None
        self._listeners: List[AuthListener] = []

    async def sign_in_with_email_and_password(self, email: str, password: str) -> Identity:
        user = await self.backend.verify_credentials(email, password)
        await self._set_user(user)
        return user

    async def create_user_with_email_and_password(self, email: str, password: str) -> Identity:
        # the new account is not signed in
        return await self.backend.create_account(email, password)

    async def sign_out(self) -> None:
        await self._set_user(None)

    async def refresh(self) -> None:
        """Pick up changes made elsewhere, e.g. an account disabled by an admin."""
        if self.current_user is None:
            return
        try:
            user = await self.backend.lookup(self.current_user.uid)
        except PyMongoError:
            logger.exception("Could not refresh auth state for %s", self.current_user.email)
            return
        await self._set_user(user)

    async def on_auth_state_changed(self, listener: AuthListener) -> Subscription:
        self._listeners.append(listener)
        await listener(self.current_user)

        def release():
            if listener in self._listeners:
                self._listeners.remove(listener)

        return Subscription(release)

    async def _set_user(self, user: Optional[Identity]) -> None:
        if user == self.current_user:
            return
        self.current_user = user
        for listener in list(self._listeners):
            try:
                await listener(user)
            except Exception:
                logger.exception("Auth state listener failed")
