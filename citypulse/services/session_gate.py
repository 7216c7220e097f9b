from __future__ import annotations

import logging
from typing import Optional

from citypulse.core.enums import AuthTab, GateState, View
from citypulse.core.errors import (
    AuthError,
    AuthErrorKind,
    SIGN_IN_GENERIC,
    SIGN_UP_GENERIC,
)
from citypulse.core.security import AuthorizationPolicy
from citypulse.models.identity import Identity
from citypulse.services.auth_backend import AuthBackendCode, AuthBackendError, AuthClient
from citypulse.utils.subscription import Subscription

logger = logging.getLogger(__name__)

SIGN_UP_SUCCESS = "Account created successfully! You can now log in."

SIGN_IN_CODES = {
    AuthBackendCode.invalid_email: AuthErrorKind.invalid_email,
    AuthBackendCode.user_disabled: AuthErrorKind.disabled_account,
    AuthBackendCode.user_not_found: AuthErrorKind.unknown_account,
    AuthBackendCode.wrong_password: AuthErrorKind.wrong_password,
}

SIGN_UP_CODES = {
    AuthBackendCode.email_already_in_use: AuthErrorKind.email_in_use,
    AuthBackendCode.invalid_email: AuthErrorKind.invalid_email,
    AuthBackendCode.operation_not_allowed: AuthErrorKind.account_creation_disabled,
}


def sign_in_error(exc: AuthBackendError) -> AuthError:
    kind = SIGN_IN_CODES.get(exc.code)
    if kind is None:
        return AuthError(AuthErrorKind.generic, SIGN_IN_GENERIC)
    return AuthError(kind)


def sign_up_error(exc: AuthBackendError) -> AuthError:
    kind = SIGN_UP_CODES.get(exc.code)
    if kind is None:
        return AuthError(AuthErrorKind.generic, SIGN_UP_GENERIC)
    return AuthError(kind)


class SessionGate:
    """
    Decides which top-level view a browser sees.

    The identity comes from the auth client; whether it is privileged is asked
    of the policy every time ``is_privileged`` or ``state`` is read.
    """

    def __init__(self, auth: AuthClient, policy: AuthorizationPolicy, min_password_length: int = 6):
        self.auth = auth
        self.policy = policy
        self.min_password_length = min_password_length

        self.identity: Optional[Identity] = None
        self.view = View.citizen
        self.auth_open = False
        self.tab = AuthTab.sign_in

        self.login_error: Optional[AuthError] = None
        self.signup_error: Optional[AuthError] = None
        self.signup_success: Optional[str] = None
        self.sign_up_email = ""

        self._authenticating = False
        self._subscription: Optional[Subscription] = None

    # ------------------------------------------------------------------
    # derived state
    # ------------------------------------------------------------------
    @property
    def is_privileged(self) -> bool:
        return self.identity is not None and self.policy.is_privileged(self.identity.email)

    @property
    def state(self) -> GateState:
        if self._authenticating:
            return GateState.authenticating
        if self.is_privileged:
            return GateState.privileged
        return GateState.anonymous

    @property
    def restricted(self) -> bool:
        """Officials view selected without the right to see it."""
        return self.view == View.officials and not self.is_privileged

    # ------------------------------------------------------------------
    # lifecycle
    # ------------------------------------------------------------------
    async def start(self) -> None:
        if self._subscription is None:
            self._subscription = await self.auth.on_auth_state_changed(self._on_auth_state_changed)

    async def close(self) -> None:
        if self._subscription is not None:
            self._subscription.unsubscribe()
            self._subscription = None

    async def _on_auth_state_changed(self, user: Optional[Identity]) -> None:
        if user is not None and self.policy.is_privileged(user.email):
            self.identity = user
            logger.info("User logged in: %s", user.email)
            return

        self.identity = None
        if user is None:
            logger.info("User logged out or not authorized")
            return

        logger.warning("Revoking session for unauthorized account %s", user.email)
        await self.auth.sign_out()

    # ------------------------------------------------------------------
    # modal and view
    # ------------------------------------------------------------------
    def _clear_messages(self) -> None:
        self.login_error = None
        self.signup_error = None
        self.signup_success = None

    def open_auth(self) -> None:
        self.auth_open = True
        self.tab = AuthTab.sign_in

    def close_auth(self) -> None:
        self.auth_open = False
        self._clear_messages()

    def select_tab(self, tab: AuthTab) -> None:
        self.tab = tab
        self._clear_messages()

    def show(self, view: View) -> None:
        self.view = view

    # ------------------------------------------------------------------
    # actions
    # ------------------------------------------------------------------
    async def sign_in(self, email: str, password: str) -> bool:
        self.login_error = None
        self._authenticating = True
        try:
            user = await self.auth.sign_in_with_email_and_password(email, password)
        except AuthBackendError as exc:
            logger.info("Login error for %s: %s", email, exc.code.value)
            self.login_error = sign_in_error(exc)
            return False
        finally:
            self._authenticating = False

        if not self.policy.is_privileged(user.email):
            self.identity = None
            self.login_error = AuthError(AuthErrorKind.unauthorized)
            await self.auth.sign_out()
            return False

        self.identity = user
        self.close_auth()
        self.view = View.officials
        return True

    async def sign_up(self, email: str, password: str, confirm_password: str) -> bool:
        self.signup_error = None
        self.signup_success = None
        self.sign_up_email = email

        if password != confirm_password:
            self.signup_error = AuthError(AuthErrorKind.password_mismatch)
            return False
        if len(password) < self.min_password_length:
            self.signup_error = AuthError(
                AuthErrorKind.weak_password,
                f"Password should be at least {self.min_password_length} characters",
            )
            return False

        try:
            user = await self.auth.create_user_with_email_and_password(email, password)
        except AuthBackendError as exc:
            logger.info("Signup error for %s: %s", email, exc.code.value)
            self.signup_error = sign_up_error(exc)
            return False

        logger.info("User created: %s", user.email)
        self.sign_up_email = ""
        self.tab = AuthTab.sign_in
        self.signup_success = SIGN_UP_SUCCESS
        return True

    async def sign_out(self) -> None:
        email = self.identity.email if self.identity else None
        try:
            await self.auth.sign_out()
        except Exception:
            logger.exception("Logout error")
        self.identity = None
        self.view = View.citizen
        logger.info("User logged out successfully: %s", email)
