"""
Error taxonomy shared by the session gate, the geolocation providers and
the reporting view-model.

Each error carries a ``kind`` and the human readable message shown in the UI.
"""
from __future__ import annotations

from enum import Enum
from typing import Optional


class AuthErrorKind(str, Enum):
    invalid_email = "invalid_email"
    disabled_account = "disabled_account"
    unknown_account = "unknown_account"
    wrong_password = "wrong_password"
    email_in_use = "email_in_use"
    account_creation_disabled = "account_creation_disabled"
    unauthorized = "unauthorized"
    password_mismatch = "password_mismatch"
    weak_password = "weak_password"
    generic = "generic"


class LocationErrorKind(str, Enum):
    unsupported = "unsupported"
    permission_denied = "permission_denied"
    unavailable = "unavailable"
    timed_out = "timed_out"
    unknown = "unknown"


class SubmissionErrorKind(str, Enum):
    missing_location = "missing_location"
    backend_failure = "backend_failure"


AUTH_MESSAGES = {
    AuthErrorKind.invalid_email: "Invalid email address",
    AuthErrorKind.disabled_account: "User account has been disabled",
    AuthErrorKind.unknown_account: "No user found with this email",
    AuthErrorKind.wrong_password: "Incorrect password",
    AuthErrorKind.email_in_use: "This email is already registered",
    AuthErrorKind.account_creation_disabled: "Email/password accounts are not enabled",
    AuthErrorKind.unauthorized: "Access restricted to authorized officials only",
    AuthErrorKind.password_mismatch: "Passwords do not match",
    AuthErrorKind.weak_password: "Password should be at least 6 characters",
}

# generic wording differs between the two forms
SIGN_IN_GENERIC = "Failed to sign in. Please try again."
SIGN_UP_GENERIC = "Failed to create account. Please try again."

LOCATION_MESSAGES = {
    LocationErrorKind.unsupported: "Geolocation is not supported by this browser.",
    LocationErrorKind.permission_denied: "User denied the request for Geolocation.",
    LocationErrorKind.unavailable: "Location information is unavailable.",
    LocationErrorKind.timed_out: "The request to get user location timed out.",
    LocationErrorKind.unknown: "An unknown error occurred.",
}

MISSING_LOCATION_MESSAGE = "Unable to get your location. Please enable location services."
BACKEND_FAILURE_MESSAGE = "There was an error submitting your report. Please try again."


class CityPulseError(Exception):
    kind: Enum

    def __init__(self, kind, message: Optional[str] = None):
        self.kind = kind
        self.message = message or self.default_message(kind)
        super().__init__(self.message)

    @staticmethod
    def default_message(kind) -> str:
        return str(kind.value)

    def as_dict(self) -> dict:
        return {"kind": self.kind.value, "message": self.message}


class AuthError(CityPulseError):
    @staticmethod
    def default_message(kind) -> str:
        return AUTH_MESSAGES.get(kind, SIGN_IN_GENERIC)


class LocationError(CityPulseError):
    @staticmethod
    def default_message(kind) -> str:
        return LOCATION_MESSAGES[kind]


class SubmissionError(CityPulseError):
    @staticmethod
    def default_message(kind) -> str:
        if kind == SubmissionErrorKind.missing_location:
            return MISSING_LOCATION_MESSAGE
        return BACKEND_FAILURE_MESSAGE

    @classmethod
    def missing_location(cls) -> "SubmissionError":
        return cls(SubmissionErrorKind.missing_location)

    @classmethod
    def backend_failure(cls, message: Optional[str] = None) -> "SubmissionError":
        return cls(SubmissionErrorKind.backend_failure, message or None)
