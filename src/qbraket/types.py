# SPDX-License-Identifier: Apache-2.0
# SPDX-FileCopyrightText: 2026 qbraket

"""
Core types for qbraket.

This module defines the enumerations, records and the :class:`Outcome`
wrapper shared by the state store, orchestrator, normalizer and
pricing resolver.

Bit Order
---------
Outcome indices use the Braket big-endian convention: qubit 0 is the
most significant bit, so for ``n`` measured qubits the bit vector
``b`` maps to ``sum(b[i] * 2 ** (n - 1 - i))``.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Callable, Generic, TypeVar

from qbraket.errors import QBraketError


T = TypeVar("T")
U = TypeVar("U")


# =============================================================================
# Outcome
# =============================================================================


@dataclass(frozen=True)
class Outcome(Generic[T]):
    """
    Tagged success-or-error value returned by fallible operations.

    Exactly one of ``value`` and ``error`` is meaningful: an outcome is
    successful when ``error`` is None.

    Parameters
    ----------
    value : object, optional
        Result of a successful operation.
    error : QBraketError, optional
        Error describing why the operation failed.

    Examples
    --------
    >>> Outcome.success(3).unwrap()
    3
    >>> Outcome.failure(NotFoundError("unknown job")).unwrap_or(None) is None
    True
    """

    value: T | None = None
    error: QBraketError | None = None

    @property
    def ok(self) -> bool:
        """True when the operation succeeded."""
        return self.error is None

    @classmethod
    def success(cls, value: T) -> Outcome[T]:
        return cls(value=value)

    @classmethod
    def failure(cls, error: QBraketError) -> Outcome[T]:
        return cls(error=error)

    def unwrap(self) -> T:
        """
        Return the value or raise the carried error.

        Raises
        ------
        QBraketError
            The error of a failed outcome.
        """
        if self.error is not None:
            raise self.error
        return self.value  # type: ignore[return-value]

    def unwrap_or(self, default: T) -> T:
        """Return the value, or ``default`` when the outcome failed."""
        if self.error is not None:
            return default
        return self.value  # type: ignore[return-value]

    def map(self, fn: Callable[[T], U]) -> Outcome[U]:
        """Apply ``fn`` to a successful value, passing failures through."""
        if self.error is not None:
            return Outcome(error=self.error)
        return Outcome(value=fn(self.value))  # type: ignore[arg-type]


# =============================================================================
# Enumerations
# =============================================================================


class JobState(str, Enum):
    """
    Lifecycle state of a submitted job.

    Attributes
    ----------
    CREATED
        Local record exists, the task has not been handed to the service.
    SUBMITTED
        The service accepted the task.
    QUEUED
        Waiting for device time.
    RUNNING
        Executing on the device.
    COMPLETED, FAILED, CANCELLED
        Terminal states.
    UNKNOWN
        The service reported a status code outside this enumeration.
    """

    CREATED = "created"
    SUBMITTED = "submitted"
    QUEUED = "queued"
    RUNNING = "running"
    COMPLETED = "completed"
    FAILED = "failed"
    CANCELLED = "cancelled"
    UNKNOWN = "unknown"

    @classmethod
    def from_remote(cls, code: str | None) -> JobState:
        """
        Map a Braket task status code to a job state.

        ``CREATED`` on the service side means the task was accepted, so it
        maps to :attr:`SUBMITTED`. Codes are matched exactly; anything
        else maps to :attr:`UNKNOWN`.

        Examples
        --------
        >>> JobState.from_remote("QUEUED")
        <JobState.QUEUED: 'queued'>
        >>> JobState.from_remote("CANCELLING")
        <JobState.UNKNOWN: 'unknown'>
        >>> JobState.from_remote("queued")
        <JobState.UNKNOWN: 'unknown'>
        """
        if not isinstance(code, str):
            return cls.UNKNOWN
        return _REMOTE_STATUS.get(code, cls.UNKNOWN)

    @property
    def is_terminal(self) -> bool:
        return self in (JobState.COMPLETED, JobState.FAILED, JobState.CANCELLED)


_REMOTE_STATUS: dict[str, JobState] = {
    "CREATED": JobState.SUBMITTED,
    "QUEUED": JobState.QUEUED,
    "RUNNING": JobState.RUNNING,
    "COMPLETED": JobState.COMPLETED,
    "FAILED": JobState.FAILED,
    "CANCELLED": JobState.CANCELLED,
}


class BatchState(str, Enum):
    """Aggregate state of a batch."""

    COMPLETED = "completed"
    PARTIALLY_FAILED = "partially-failed"
    RUNNING = "running"
    UNKNOWN = "unknown"


class CancelOutcome(str, Enum):
    """Result of a cancellation request for a known job."""

    CANCELLED = "cancelled"
    CANNOT_CANCEL = "cannot-cancel"


class DeviceStatus(str, Enum):
    ONLINE = "online"
    OFFLINE = "offline"
    RETIRED = "retired"
    UNKNOWN = "unknown"


class DeviceKind(str, Enum):
    QPU = "qpu"
    SIMULATOR = "simulator"


class PricingUnit(str, Enum):
    PER_SHOT = "per-shot"
    PER_MINUTE = "per-minute"


class PricingSource(str, Enum):
    """
    Where a device price came from.

    Attributes
    ----------
    CACHE
        Served from a cache entry younger than the TTL.
    DEVICE_CAPABILITY
        ``service.deviceCost`` of the device capabilities document.
    PRICE_CATALOG
        AWS Price List query.
    FALLBACK
        Built-in constants.
    """

    CACHE = "cache"
    DEVICE_CAPABILITY = "device-capability"
    PRICE_CATALOG = "price-catalog"
    FALLBACK = "fallback"


class ResultSource(str, Enum):
    """Shape of the raw payload a measurement result was derived from."""

    SAMPLE_DERIVED = "sample-derived"
    PROBABILITY_DERIVED = "probability-derived"


# =============================================================================
# Devices
# =============================================================================


@dataclass(frozen=True)
class CostHint:
    """Device-advertised price for one unit of work."""

    price: float
    unit: PricingUnit

    def to_dict(self) -> dict[str, Any]:
        return {"price": self.price, "unit": self.unit.value}


@dataclass(frozen=True)
class DeviceDescriptor:
    """
    Description of a Braket device.

    Parameters
    ----------
    arn : str
        Device ARN (opaque identifier).
    name : str
        Display name.
    status : DeviceStatus
        Availability reported by the service.
    kind : DeviceKind
        QPU or simulator.
    provider : str
        Provider name (e.g. "IonQ", "Amazon Braket").
    native_gates : tuple of str
        Lower-cased names of the operations the device accepts.
    qubit_count : int, optional
        Number of qubits, when advertised.
    connectivity : dict, optional
        Connectivity graph (qubit -> neighbours), None when fully
        connected or not advertised.
    fully_connected : bool
        True when the device advertises all-to-all connectivity.
    cost_hint : CostHint, optional
        Embedded ``service.deviceCost`` entry.
    queue_info : tuple of dict
        Raw ``deviceQueueInfo`` entries.
    capabilities : dict
        Full parsed capabilities document.
    """

    arn: str
    name: str = ""
    status: DeviceStatus = DeviceStatus.UNKNOWN
    kind: DeviceKind = DeviceKind.QPU
    provider: str = ""
    native_gates: tuple[str, ...] = ()
    qubit_count: int | None = None
    connectivity: dict[str, list[str]] | None = field(default=None, compare=False)
    fully_connected: bool = False
    cost_hint: CostHint | None = None
    queue_info: tuple[dict[str, Any], ...] = field(default=(), compare=False)
    capabilities: dict[str, Any] = field(default_factory=dict, compare=False)

    @property
    def is_simulator(self) -> bool:
        return self.kind is DeviceKind.SIMULATOR

    def to_dict(self) -> dict[str, Any]:
        """Convert to JSON-serializable dictionary."""
        d: dict[str, Any] = {
            "arn": self.arn,
            "name": self.name,
            "status": self.status.value,
            "kind": self.kind.value,
            "provider": self.provider,
            "native_gates": list(self.native_gates),
            "fully_connected": self.fully_connected,
        }
        if self.qubit_count is not None:
            d["qubit_count"] = self.qubit_count
        if self.connectivity is not None:
            d["connectivity"] = self.connectivity
        if self.cost_hint is not None:
            d["cost_hint"] = self.cost_hint.to_dict()
        return d


@dataclass(frozen=True)
class QueueStatus:
    """Queue depth of a device as reported in ``deviceQueueInfo``."""

    device_arn: str
    normal_tasks: int | None = None
    priority_tasks: int | None = None
    jobs: int | None = None

    def to_dict(self) -> dict[str, Any]:
        return {
            "device_arn": self.device_arn,
            "normal_tasks": self.normal_tasks,
            "priority_tasks": self.priority_tasks,
            "jobs": self.jobs,
        }


# =============================================================================
# Jobs and batches
# =============================================================================


@dataclass(frozen=True)
class SubmitOptions:
    """
    Per-submission options.

    Parameters
    ----------
    shots : int, optional
        Shot count. The backend default is used when None.
    result_specs : dict, optional
        Requested result types, passed through to the compiler.
    batch_id : str, optional
        Owning batch, set by batch submission.
    chunk_index : int, optional
        Dispatch window the job belonged to.
    circuit_index : int, optional
        Position of the circuit in the batch.
    """

    shots: int | None = None
    result_specs: dict[str, Any] | None = None
    batch_id: str | None = None
    chunk_index: int | None = None
    circuit_index: int | None = None

    @classmethod
    def coerce(cls, options: SubmitOptions | dict[str, Any] | None) -> SubmitOptions:
        """Accept an options object, a plain mapping, or None."""
        if options is None:
            return cls()
        if isinstance(options, cls):
            return options
        return cls(
            shots=options.get("shots"),
            result_specs=options.get("result_specs"),
            batch_id=options.get("batch_id"),
            chunk_index=options.get("chunk_index"),
            circuit_index=options.get("circuit_index"),
        )

    def to_dict(self) -> dict[str, Any]:
        return {
            k: v
            for k, v in (
                ("shots", self.shots),
                ("result_specs", self.result_specs),
                ("batch_id", self.batch_id),
                ("chunk_index", self.chunk_index),
                ("circuit_index", self.circuit_index),
            )
            if v is not None
        }


@dataclass(frozen=True)
class JobRecord:
    """
    Local record of a submitted job.

    Records are immutable; the state store replaces a record with an
    updated copy. ``task_arn`` never changes once set.
    """

    job_id: str
    task_arn: str
    submitted_at: float
    circuit: Any = field(compare=False)
    final_circuit: Any = field(compare=False)
    options: SubmitOptions = field(default_factory=SubmitOptions)
    device_arn: str | None = None
    cancelled_at: float | None = None

    def to_dict(self) -> dict[str, Any]:
        d: dict[str, Any] = {
            "job_id": self.job_id,
            "task_arn": self.task_arn,
            "submitted_at": self.submitted_at,
            "options": self.options.to_dict(),
        }
        if self.device_arn is not None:
            d["device_arn"] = self.device_arn
        if self.cancelled_at is not None:
            d["cancelled_at"] = self.cancelled_at
        return d


@dataclass(frozen=True)
class BatchRecord:
    """Jobs submitted together, in submission order."""

    batch_id: str
    job_ids: tuple[str, ...]
    submitted_at: float
    total_circuits: int
    status: BatchState = BatchState.RUNNING

    def to_dict(self) -> dict[str, Any]:
        return {
            "batch_id": self.batch_id,
            "job_ids": list(self.job_ids),
            "submitted_at": self.submitted_at,
            "total_circuits": self.total_circuits,
            "status": self.status.value,
        }


# =============================================================================
# Pricing
# =============================================================================


@dataclass(frozen=True)
class PricingCacheEntry:
    """Resolved device price together with where and when it was resolved."""

    device_arn: str
    price: float
    unit: PricingUnit
    source: PricingSource
    cached_at: float

    def is_valid(self, now: float, ttl_seconds: float) -> bool:
        """True while the entry is younger than ``ttl_seconds``."""
        return (now - self.cached_at) < ttl_seconds

    def to_dict(self) -> dict[str, Any]:
        return {
            "device_arn": self.device_arn,
            "price": self.price,
            "unit": self.unit.value,
            "source": self.source.value,
            "cached_at": self.cached_at,
        }


# =============================================================================
# Measurements
# =============================================================================


@dataclass
class MeasurementResult:
    """
    Canonical measurement data.

    Parameters
    ----------
    frequencies : dict
        Outcome index -> count.
    probabilities : dict
        Outcome index -> empirical probability.
    outcomes : list of int
        Per-shot outcome indices. Reconstructed sequences from
        probability tables are shuffled and carry no temporal order.
    shot_count : int
        Number of shots the result represents.
    measured_qubits : list of int
        Qubit indices, most significant first.
    source : ResultSource
        Which payload shape the data was derived from.
    probability_vector : list of float, optional
        Probability for every index in ``[0, 2**n)``. None when ``n`` is
        too large to materialize.
    """

    frequencies: dict[int, int]
    probabilities: dict[int, float]
    outcomes: list[int]
    shot_count: int
    measured_qubits: list[int]
    source: ResultSource
    probability_vector: list[float] | None = None

    @property
    def num_qubits(self) -> int:
        return len(self.measured_qubits)

    def to_dict(self) -> dict[str, Any]:
        """Convert to JSON-serializable dictionary (string keys)."""
        d: dict[str, Any] = {
            "frequencies": {str(k): v for k, v in sorted(self.frequencies.items())},
            "probabilities": {
                str(k): v for k, v in sorted(self.probabilities.items())
            },
            "shot_count": self.shot_count,
            "measured_qubits": list(self.measured_qubits),
            "source": self.source.value,
        }
        if self.probability_vector is not None:
            d["probability_vector"] = list(self.probability_vector)
        return d
