# SPDX-License-Identifier: Apache-2.0
# SPDX-FileCopyrightText: 2026 qbraket

"""
Exception hierarchy for qbraket.

All errors produced by qbraket inherit from :class:`QBraketError`.
Only construction-time validation raises; every other fallible backend
operation returns its error inside an :class:`~qbraket.types.Outcome`
so callers inspect the outcome instead of catching exceptions.

Hierarchy
---------
::

    QBraketError
    ├── ValidationError
    ├── RemoteServiceError
    ├── StorageError
    ├── FormatError
    ├── NotFoundError
    └── ConflictError

Examples
--------
>>> outcome = backend.job_result("braket-01J...")
>>> if not outcome.ok and isinstance(outcome.error, NotFoundError):
...     print(f"unknown job: {outcome.error.job_id}")
"""

from __future__ import annotations

from typing import Any


_CONTEXT_FIELDS = frozenset(
    {
        "job_id",
        "batch_id",
        "device_arn",
        "task_arn",
        "operation",
        "error_code",
        "bucket",
        "key",
    }
)


class QBraketError(Exception):
    """
    Base exception for all qbraket errors.

    Parameters
    ----------
    message : str
        Human-readable description.
    cause : BaseException, optional
        Underlying exception reported by a collaborator, if any.
    **context
        Diagnostic context (job id, device ARN, operation, ...). Stored
        on :attr:`context` and exposed as attributes.
    """

    def __init__(
        self,
        message: str,
        *,
        cause: BaseException | None = None,
        **context: Any,
    ) -> None:
        self.message = message
        self.cause = cause
        self.context: dict[str, Any] = {k: v for k, v in context.items() if v is not None}
        super().__init__(message)

    def __getattr__(self, name: str) -> Any:
        # Only reached when normal lookup fails.
        context = self.__dict__.get("context", {})
        if name in context:
            return context[name]
        if name in _CONTEXT_FIELDS:
            return None
        raise AttributeError(name)

    def __str__(self) -> str:
        parts = [self.message]
        if self.context:
            details = ", ".join(f"{k}={v}" for k, v in sorted(self.context.items()))
            parts.append(f"[{details}]")
        if self.cause is not None:
            parts.append(f"(caused by {type(self.cause).__name__}: {self.cause})")
        return " ".join(parts)

    def to_dict(self) -> dict[str, Any]:
        """Convert to a JSON-serializable dictionary."""
        d: dict[str, Any] = {
            "type": type(self).__name__,
            "message": self.message,
        }
        if self.context:
            d["context"] = {k: str(v) for k, v in self.context.items()}
        if self.cause is not None:
            d["cause"] = f"{type(self.cause).__name__}: {self.cause}"
        return d


class ValidationError(QBraketError):
    """Invalid configuration or input, detected before any remote call."""


class RemoteServiceError(QBraketError):
    """A compute-service or price-catalog call reported a failure."""


class StorageError(QBraketError):
    """Result download from the object store failed."""


class FormatError(QBraketError):
    """A result payload is unrecognized or malformed."""


class NotFoundError(QBraketError):
    """Unknown job or batch identifier."""


class ConflictError(QBraketError):
    """Operation conflicts with the current state (e.g. cancelling a finished task)."""
