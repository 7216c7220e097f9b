# citypulse/core/security.py
from __future__ import annotations

from typing import Iterable

from passlib.context import CryptContext

pwd = CryptContext(
    schemes=["bcrypt"],
    deprecated="auto",
)


def hash_password(password: str) -> str:
    # bcrypt hard limit: 72 BYTES
    if isinstance(password, str):
        password = password.encode("utf-8")
    password = password[:72]
    return pwd.hash(password)


def verify_password(password: str, hashed: str) -> bool:
    if not hashed:
        return False
    if isinstance(password, str):
        password = password.encode("utf-8")
    password = password[:72]
    return pwd.verify(password, hashed)


def normalize_email(email: str | None) -> str:
    return (email or "").lower().strip()


class AuthorizationPolicy:
    """
    Decides whether an identity may use the officials dashboard.

    Callers ask on every read; implementations must not cache the answer
    per identity.
    """

    def is_privileged(self, email: str | None) -> bool:
        raise NotImplementedError


class AllowListPolicy(AuthorizationPolicy):
    def __init__(self, emails: Iterable[str]):
        self._emails = {normalize_email(e) for e in emails if e}

    def replace(self, emails: Iterable[str]) -> None:
        self._emails = {normalize_email(e) for e in emails if e}

    def is_privileged(self, email: str | None) -> bool:
        if not email:
            return False
        return normalize_email(email) in self._emails
