"""
errors.py
Exception taxonomy shared by the stores, the rules and the web layer.

A guess that hits the attempt cap is not an error: it is reported as
GuessResult.LIMIT_REACHED (see models.py).
"""


class SantaError(Exception):
    """Base class for every domain failure."""

    status_code = 400

    def __init__(self, detail: str):
        super().__init__(detail)
        self.detail = detail


class ValidationError(SantaError):
    """Malformed input: missing recipient, empty body, self-guess..."""

    status_code = 400


class NotFoundError(SantaError):
    """Referenced user, message or comment does not exist."""

    status_code = 404


class PermissionDenied(SantaError):
    status_code = 403


class AuthError(SantaError):
    status_code = 401


class TransientStoreError(SantaError):
    """Anything that broke at the persistence, auth or blob boundary."""

    status_code = 503
