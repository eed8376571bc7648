"""
Core primitives for tally: counter models, submission validation, the
client identity dimension, errors, logging and storage.
"""

from tally.core.deltas import Submission, validate_submission
from tally.core.errors import (
    ConflictError,
    ErrorCategory,
    NotFoundError,
    StorageError,
    TallyError,
    ValidationError,
)
from tally.core.identity import ForwardedPosition, RemoteAddress, with_identity
from tally.core.models import CounterMap, CounterRecord

__all__ = [
    "ConflictError",
    "CounterMap",
    "CounterRecord",
    "ErrorCategory",
    "ForwardedPosition",
    "NotFoundError",
    "RemoteAddress",
    "StorageError",
    "Submission",
    "TallyError",
    "ValidationError",
    "validate_submission",
    "with_identity",
]
