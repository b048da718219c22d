"""
Exception hierarchy for the voter authentication core.

Every error carries a stable ``error_code`` so the service layer can report a
coarse failure to the remote party without leaking which check failed.
"""


class AuthCoreError(Exception):
    """Base exception for authentication core errors"""

    error_code: str = "INTERNAL_ERROR"

    def __init__(self, message: str = "Authentication core error"):
        self.message = message
        super().__init__(message)

    def to_dict(self) -> dict:
        return {'error': self.message, 'code': self.error_code}


class InvalidInputError(AuthCoreError, ValueError):
    """Malformed key, out-of-range scalar or wrong-size matrix"""

    error_code = "INVALID_INPUT"


class NoInverseError(AuthCoreError, ArithmeticError):
    """Modular inverse does not exist (gcd != 1)"""

    error_code = "NO_INVERSE"


class KeyNotDerivedError(AuthCoreError):
    """Session key requested before the ECDH handshake completed"""

    error_code = "KEY_NOT_DERIVED"


class ProverNotRegisteredError(AuthCoreError):
    """No registration exists for the presented public key"""

    error_code = "NOT_REGISTERED"


class SessionError(AuthCoreError):
    """Session management error"""

    error_code = "SESSION_ERROR"


class SessionNotFoundError(SessionError):
    """Unknown or already terminated session id"""

    error_code = "SESSION_NOT_FOUND"


class SessionExpiredError(SessionError):
    """Session or round exceeded its time horizon"""

    error_code = "SESSION_EXPIRED"


class SessionLimitError(SessionError):
    """Maximum concurrent sessions reached"""

    error_code = "SESSION_LIMIT"


class ConcurrentRoundError(SessionError):
    """A second operation was attempted on a session already in flight"""

    error_code = "CONCURRENT_ROUND"


__all__ = [
    'AuthCoreError',
    'InvalidInputError',
    'NoInverseError',
    'KeyNotDerivedError',
    'ProverNotRegisteredError',
    'SessionError',
    'SessionNotFoundError',
    'SessionExpiredError',
    'SessionLimitError',
    'ConcurrentRoundError',
]
