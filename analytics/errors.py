"""Typed error outcomes raised by the analytics layer and the request handlers.

Each error carries the HTTP status the web layer answers with; the mapping to
an actual response happens only in ``app.py``.
"""


class FinanceError(Exception):
    status_code = 500

    def __init__(self, message):
        super().__init__(message)
        self.message = message


class ValidationError(FinanceError):
    """Missing or malformed input. Nothing has been written."""
    status_code = 400


class AuthorizationError(FinanceError):
    """The record belongs to someone else, or the caller lacks the role."""
    status_code = 403


class NotFoundError(FinanceError):
    status_code = 404


class UpstreamFailure(FinanceError):
    """The database or the exchange-rate service failed; message is passed through."""
    status_code = 500
