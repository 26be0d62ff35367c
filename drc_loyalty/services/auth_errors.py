from __future__ import annotations

from datetime import datetime


class AuthError(Exception):
    pass


class AuthInvalidPinError(AuthError):
    pass


class AuthInvalidPasswordError(AuthError):
    pass


class AuthInvalidOtpError(AuthError):
    pass


class AuthOtpAttemptsExceededError(AuthError):
    pass


class AuthPhoneAlreadyRegisteredError(AuthError):
    pass


class AuthEmailAlreadyRegisteredError(AuthError):
    pass


class AuthInvalidCredentialsError(AuthError):
    pass


class AuthUserInactiveError(AuthError):
    pass


class AuthPartnerPendingError(AuthError):
    pass


class AuthPartnerSuspendedError(AuthError):
    pass


class AuthLoginLockedError(AuthError):
    def __init__(self, locked_until: datetime) -> None:
        super().__init__(f"login locked until {locked_until.isoformat()}")
        self.locked_until = locked_until
