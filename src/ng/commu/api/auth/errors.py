"""Authentication error taxonomy.

Every failure the auth flow can report is one member of `AuthErrorKind`, which
carries the HTTP status, a stable machine-readable code and the message shown
to the client. Services raise `AuthError`; the HTTP layer turns it into a JSON
response in exactly one place (see `ng.commu.api.app.server.error_middleware`).
"""
from enum import Enum
from typing import Any, Dict


class AuthErrorKind(Enum):
    UNAUTHENTICATED = (401, "unauthenticated", "Not authenticated")
    WRONG_SESSION_SCOPE = (403, "wrong_session_scope", "Session is not valid for this surface")
    INVALID_DOMAIN = (404, "invalid_domain", "Domain is not a registered community")
    INVALID_TOKEN = (401, "invalid_token", "Invalid exchange token")
    TOKEN_EXPIRED = (401, "token_expired", "Exchange token has expired")
    TOKEN_ALREADY_USED = (401, "token_already_used", "Exchange token has already been used")
    DOMAIN_MISMATCH = (400, "domain_mismatch", "Exchange token was issued for a different domain")
    MISSING_CREDENTIAL = (400, "missing_credential", "Session token is required")
    INVALID_REQUEST = (400, "invalid_request", "Invalid request")
    INVALID_CREDENTIALS = (401, "invalid_credentials", "Invalid login credentials")
    LOGIN_NAME_TAKEN = (400, "login_name_taken", "Login name is already in use")
    INTERNAL = (500, "internal", "Internal Server Error")

    def __init__(self, status: int, code: str, message: str) -> None:
        self.status = status
        self.code = code
        self.message = message


class AuthError(Exception):
    """
    Raised for every expected authentication failure.

    Use the static constructors rather than building instances by hand so
    that call sites read as the failure they report.
    """

    def __init__(self, kind: AuthErrorKind, message: str = "") -> None:
        self.kind = kind
        self.message = message or kind.message
        super().__init__(f"{kind.code}: {self.message}")

    @property
    def status(self) -> int:
        return self.kind.status

    def to_dict(self) -> Dict[str, Any]:
        return {"error": self.message, "code": self.kind.code}

    @staticmethod
    def unauthenticated() -> "AuthError":
        return AuthError(AuthErrorKind.UNAUTHENTICATED)

    @staticmethod
    def wrong_session_scope(message: str = "") -> "AuthError":
        return AuthError(AuthErrorKind.WRONG_SESSION_SCOPE, message)

    @staticmethod
    def invalid_domain() -> "AuthError":
        return AuthError(AuthErrorKind.INVALID_DOMAIN)

    @staticmethod
    def invalid_token() -> "AuthError":
        return AuthError(AuthErrorKind.INVALID_TOKEN)

    @staticmethod
    def token_expired() -> "AuthError":
        return AuthError(AuthErrorKind.TOKEN_EXPIRED)

    @staticmethod
    def token_already_used() -> "AuthError":
        return AuthError(AuthErrorKind.TOKEN_ALREADY_USED)

    @staticmethod
    def domain_mismatch() -> "AuthError":
        return AuthError(AuthErrorKind.DOMAIN_MISMATCH)

    @staticmethod
    def missing_credential() -> "AuthError":
        return AuthError(AuthErrorKind.MISSING_CREDENTIAL)

    @staticmethod
    def invalid_request(message: str = "") -> "AuthError":
        return AuthError(AuthErrorKind.INVALID_REQUEST, message)

    @staticmethod
    def invalid_credentials() -> "AuthError":
        return AuthError(AuthErrorKind.INVALID_CREDENTIALS)

    @staticmethod
    def login_name_taken() -> "AuthError":
        return AuthError(AuthErrorKind.LOGIN_NAME_TAKEN)
