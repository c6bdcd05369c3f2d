"""
Quorum Error Kinds

Typed failures raised inside the tallying core. Every public operation in
quorum.service catches these at its boundary and converts them into an
error result, so none of them ever reaches a caller as an exception.
"""

from __future__ import annotations


class QuorumError(Exception):
    """Base class for all tallying-core failures."""


class MalformedResponse(QuorumError):
    """The log service returned a shape the normalizer cannot interpret."""


class MissingIdentifier(MalformedResponse):
    """No log identifier could be extracted from a create-log response."""


class UnreadableLog(MalformedResponse):
    """A read-messages response could not be normalized to a sequence."""


class CollaboratorFailure(QuorumError):
    """The underlying log-service call itself failed."""

    def __init__(self, operation: str, cause: BaseException):
        self.operation = operation
        self.cause = cause
        super().__init__(f"{operation} failed: {cause}")
