"""
Error taxonomy shared by the persistence, sync and command layers.
"""
from typing import Optional


class MeterwatchError(Exception):
    """Base class for every error raised by this package."""


class TransientIOError(MeterwatchError):
    """
    Fetch or write against the shared store failed.

    The poll loop retries on its next tick; command callers are expected
    to retry the write themselves.
    """


class MalformedInputError(MeterwatchError):
    """A row or payload could not be parsed (bad number, missing identifier)."""

    def __init__(self, message: str, row: Optional[int] = None):
        super().__init__(message)
        self.row = row


class AuthenticationError(MeterwatchError):
    """Credential mismatch."""


class StaleSessionError(MeterwatchError):
    """The authenticated identity no longer resolves in the latest user set."""


class CollaboratorFailure(MeterwatchError):
    """An external collaborator (OCR) failed; callers degrade instead of failing."""
