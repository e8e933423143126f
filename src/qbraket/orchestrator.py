# SPDX-License-Identifier: Apache-2.0
# SPDX-FileCopyrightText: 2026 qbraket

"""
Job lifecycle management.

The :class:`JobOrchestrator` submits circuits as Braket quantum tasks,
tracks them under local job identifiers and turns finished tasks into
:class:`JobResult` objects.

Job States
----------
::

    CREATED -> SUBMITTED -> {QUEUED, RUNNING} -> {COMPLETED, FAILED, CANCELLED}

Remote status codes outside this set map to ``UNKNOWN``.

Every public method returns an :class:`~qbraket.types.Outcome`. Status
and result queries are single-shot and side-effect free; polling until
a job finishes is left to the caller.
"""

from __future__ import annotations

import dataclasses
import logging
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass, field
from typing import Any, Callable, Sequence

import numpy as np

from qbraket.circuits import summarize_circuit
from qbraket.clients import (
    CircuitCompiler,
    CompiledCircuit,
    ComputeServiceClient,
    ObjectStoreClient,
    invoke,
)
from qbraket.config import BackendConfig
from qbraket.devices import descriptor_from_arn
from qbraket.errors import (
    ConflictError,
    FormatError,
    NotFoundError,
    QBraketError,
    RemoteServiceError,
    StorageError,
    ValidationError,
)
from qbraket.results import (
    ResultLocation,
    counts_by_bitstring,
    normalize_result,
    parse_result_location,
    parse_result_payload,
)
from qbraket.state import StateStore
from qbraket.types import (
    BatchRecord,
    BatchState,
    CancelOutcome,
    JobRecord,
    JobState,
    MeasurementResult,
    Outcome,
    SubmitOptions,
)
from qbraket.utils import generate_ulid, is_int, new_batch_id, new_job_id


logger = logging.getLogger(__name__)

_ACTIVE_STATES = frozenset({JobState.RUNNING, JobState.QUEUED, JobState.SUBMITTED})

# Service error codes for a cancel request on a task that can no longer be cancelled.
_CANCEL_REFUSAL_CODES = frozenset({"ConflictException", "ValidationException"})


# =============================================================================
# Result types
# =============================================================================


@dataclass
class JobResult:
    """
    Measurement result of a completed job.

    Parameters
    ----------
    job_id : str
        Local job identifier.
    measurement : MeasurementResult
        Canonical measurement data.
    shots : int
        Shots the measurement represents.
    execution_time_ms : float
        Time from submission to result retrieval.
    task_arn : str
        Remote task ARN.
    location : ResultLocation
        S3 location of the task output.
    task_metadata : dict
        ``taskMetadata`` section of the result document.
    additional_metadata : dict
        ``additionalMetadata`` section of the result document.
    circuit_metadata : dict
        Structural figures of the submitted circuit.
    """

    job_id: str
    measurement: MeasurementResult
    shots: int
    execution_time_ms: float
    task_arn: str
    location: ResultLocation
    task_metadata: dict[str, Any] = field(default_factory=dict)
    additional_metadata: dict[str, Any] = field(default_factory=dict)
    circuit_metadata: dict[str, Any] = field(default_factory=dict)
    status: JobState = JobState.COMPLETED

    def counts(self) -> dict[str, int]:
        """Frequencies keyed by big-endian bitstring."""
        return counts_by_bitstring(self.measurement)

    def to_dict(self) -> dict[str, Any]:
        return {
            "job_id": self.job_id,
            "status": self.status.value,
            "measurement": self.measurement.to_dict(),
            "counts": self.counts(),
            "shots": self.shots,
            "execution_time_ms": self.execution_time_ms,
            "task_arn": self.task_arn,
            "s3_location": self.location.to_dict(),
            "task_metadata": self.task_metadata,
            "circuit_metadata": self.circuit_metadata,
        }


@dataclass(frozen=True)
class PendingResult:
    """
    Returned by a result query for a task that has not completed.

    ``status`` is the task's current state; ``failure_reason`` is set
    when the service reports one.
    """

    job_id: str
    status: JobState
    failure_reason: str | None = None

    @property
    def message(self) -> str:
        if self.failure_reason:
            return f"Job {self.status.value}: {self.failure_reason}"
        return f"Job not completed yet ({self.status.value})"


@dataclass(frozen=True)
class CancelResult:
    """
    Outcome of a cancellation request for a known job.

    ``conflict`` explains a ``CANNOT_CANCEL`` outcome.
    """

    job_id: str
    outcome: CancelOutcome
    cancelled_at: float | None = None
    conflict: ConflictError | None = None


@dataclass(frozen=True)
class BatchSubmission:
    """Identifiers produced by a batch submission, in submission order."""

    batch_id: str
    job_ids: tuple[str, ...]
    total_circuits: int
    windows: int


@dataclass(frozen=True)
class BatchStatusReport:
    """Aggregated status of the jobs in a batch."""

    batch_id: str
    total_jobs: int
    completed: int
    failed: int
    running: int
    overall: BatchState
    job_statuses: tuple[JobState, ...]

    def to_dict(self) -> dict[str, Any]:
        return {
            "batch_id": self.batch_id,
            "total_jobs": self.total_jobs,
            "completed": self.completed,
            "failed": self.failed,
            "running": self.running,
            "overall_status": self.overall.value,
            "job_statuses": [s.value for s in self.job_statuses],
        }


@dataclass(frozen=True)
class BatchResults:
    """Per-job result outcomes of a batch, in submission order."""

    batch_id: str
    total_jobs: int
    results: tuple[Outcome[JobResult | PendingResult], ...]
    completed_at: float


def aggregate_batch_state(statuses: Sequence[JobState]) -> BatchState:
    """
    Combine job states into a batch state.

    Examples
    --------
    >>> aggregate_batch_state([JobState.COMPLETED, JobState.FAILED])
    <BatchState.PARTIALLY_FAILED: 'partially-failed'>
    >>> aggregate_batch_state([])
    <BatchState.UNKNOWN: 'unknown'>
    """
    if statuses and all(s is JobState.COMPLETED for s in statuses):
        return BatchState.COMPLETED
    if any(s is JobState.FAILED for s in statuses):
        return BatchState.PARTIALLY_FAILED
    if any(s in _ACTIVE_STATES for s in statuses):
        return BatchState.RUNNING
    return BatchState.UNKNOWN


def _with_context(error: QBraketError, **context: Any) -> QBraketError:
    for k, v in context.items():
        if v is not None:
            error.context.setdefault(k, v)
    return error


# =============================================================================
# Orchestrator
# =============================================================================


class JobOrchestrator:
    """
    Submits, tracks, cancels and collects Braket tasks.

    Parameters
    ----------
    state : StateStore
        Backend state.
    compute : ComputeServiceClient
        Braket task operations.
    store : ObjectStoreClient
        Access to task output.
    compiler : CircuitCompiler
        Converts circuits into submittable programs.
    config : BackendConfig
        Bucket, prefix, default shots and batch window size.
    logger : logging.Logger, optional
        Logger for lifecycle events.
    rng : numpy.random.Generator, optional
        Randomness for outcome sequences rebuilt from probability tables.
    id_factory : callable, optional
        Generates job identifiers.
    """

    def __init__(
        self,
        state: StateStore,
        compute: ComputeServiceClient,
        store: ObjectStoreClient,
        compiler: CircuitCompiler,
        config: BackendConfig,
        *,
        logger: logging.Logger | None = None,
        rng: np.random.Generator | None = None,
        id_factory: Callable[[], str] = new_job_id,
    ) -> None:
        self._state = state
        self._compute = compute
        self._store = store
        self._compiler = compiler
        self._config = config
        self._log = logger or logging.getLogger(__name__)
        self._rng = rng
        self._new_job_id = id_factory

    # -------------------------------------------------------------------------
    # Single jobs
    # -------------------------------------------------------------------------

    def submit(
        self,
        circuit: Any,
        options: SubmitOptions | dict[str, Any] | None = None,
    ) -> Outcome[str]:
        """
        Submit a circuit to the selected device.

        Parameters
        ----------
        circuit : Any
            Circuit accepted by the compiler.
        options : SubmitOptions or dict, optional
            Shot count and result specs. Shots default to the backend
            configuration.

        Returns
        -------
        Outcome
            The new job id. On failure no job record is created.
        """
        opts = SubmitOptions.coerce(options)
        shots = opts.shots if opts.shots is not None else self._config.shots
        if not is_int(shots) or shots <= 0:
            return Outcome.failure(
                ValidationError(
                    f"shots must be a positive integer, got {shots!r}", operation="submit"
                )
            )
        opts = dataclasses.replace(opts, shots=shots)

        device = self._state.get_current_device() or descriptor_from_arn(
            self._config.device_arn
        )
        compiled = invoke(
            "Optimize",
            self._compiler.optimize,
            circuit,
            device,
            opts,
            error_type=ValidationError,
            context={"device_arn": device.arn},
        )
        if not compiled.ok:
            return Outcome.failure(compiled.error)
        program: CompiledCircuit = compiled.value

        key_prefix = (
            f"{self._config.s3_key_prefix}task-"
            f"{int(self._state.now() * 1000)}-{generate_ulid()}"
        )
        self._log.debug(
            "CreateQuantumTask device=%s shots=%d prefix=s3://%s/%s",
            device.arn,
            shots,
            self._config.s3_bucket,
            key_prefix,
        )
        created = invoke(
            "CreateQuantumTask",
            self._compute.create_task,
            device_arn=device.arn,
            action=program.action_document(),
            shots=shots,
            output_bucket=self._config.s3_bucket,
            output_key_prefix=key_prefix,
            client_token=generate_ulid(),
            context={"device_arn": device.arn, "batch_id": opts.batch_id},
        )
        if not created.ok:
            return Outcome.failure(created.error)

        job_id = self._new_job_id()
        self._state.put_job(
            JobRecord(
                job_id=job_id,
                task_arn=created.value,
                submitted_at=self._state.now(),
                circuit=circuit,
                final_circuit=program.circuit,
                options=opts,
                device_arn=device.arn,
            )
        )
        self._log.info("Submitted job %s as task %s", job_id, created.value)
        return Outcome.success(job_id)

    def status(self, job_id: str) -> Outcome[JobState]:
        """
        Query the current state of a job.

        A failed status query reports ``FAILED``; the stored job record
        is never modified.

        Returns
        -------
        Outcome
            The job state, or :class:`NotFoundError` for an unknown id.
        """
        record = self._state.get_job(job_id)
        if record is None:
            return Outcome.failure(NotFoundError("Job not found", job_id=job_id))
        task = invoke(
            "GetQuantumTask",
            self._compute.get_task,
            record.task_arn,
            context={"job_id": job_id, "task_arn": record.task_arn},
        )
        if not task.ok:
            self._log.warning("Job %s: status query failed: %s", job_id, task.error)
            return Outcome.success(JobState.FAILED)
        state = JobState.from_remote(task.value.get("status"))
        if state is JobState.UNKNOWN:
            self._log.warning(
                "Job %s: unrecognized task status %r", job_id, task.value.get("status")
            )
        return Outcome.success(state)

    def result(self, job_id: str) -> Outcome[JobResult | PendingResult]:
        """
        Fetch and normalize the result of a job.

        Returns
        -------
        Outcome
            A :class:`JobResult` for completed tasks, a
            :class:`PendingResult` otherwise. Fails with
            :class:`NotFoundError`, :class:`RemoteServiceError`,
            :class:`StorageError` or :class:`FormatError`.
        """
        record = self._state.get_job(job_id)
        if record is None:
            return Outcome.failure(NotFoundError("Job not found", job_id=job_id))
        context = {"job_id": job_id, "task_arn": record.task_arn}

        task = invoke("GetQuantumTask", self._compute.get_task, record.task_arn, context=context)
        if not task.ok:
            return Outcome.failure(task.error)
        metadata = task.value
        state = JobState.from_remote(metadata.get("status"))
        if state is not JobState.COMPLETED:
            return Outcome.success(
                PendingResult(
                    job_id=job_id,
                    status=state,
                    failure_reason=metadata.get("failureReason"),
                )
            )

        try:
            location = parse_result_location(metadata)
        except StorageError as e:
            return Outcome.failure(_with_context(e, **context))

        raw = invoke(
            "GetObject",
            self._store.get_object,
            location.bucket,
            location.results_key,
            error_type=StorageError,
            context={**context, "bucket": location.bucket, "key": location.results_key},
        )
        if not raw.ok:
            return Outcome.failure(raw.error)

        try:
            payload = parse_result_payload(raw.value)
        except FormatError as e:
            return Outcome.failure(_with_context(e, key=location.results_key, **context))

        measurement = normalize_result(payload, shots=record.options.shots, rng=self._rng)
        if not measurement.ok:
            return Outcome.failure(_with_context(measurement.error, **context))

        elapsed_ms = (self._state.now() - record.submitted_at) * 1000.0
        self._log.debug("Job %s result retrieved from %s", job_id, location.uri)
        return Outcome.success(
            JobResult(
                job_id=job_id,
                measurement=measurement.value,
                shots=measurement.value.shot_count,
                execution_time_ms=elapsed_ms,
                task_arn=record.task_arn,
                location=location,
                task_metadata=payload.get("taskMetadata") or {},
                additional_metadata=payload.get("additionalMetadata") or {},
                circuit_metadata=summarize_circuit(record.circuit),
            )
        )

    def cancel(self, job_id: str) -> Outcome[CancelResult]:
        """
        Request cancellation of a job.

        Returns
        -------
        Outcome
            :class:`NotFoundError` for an unknown id. Otherwise a
            :class:`CancelResult` whose outcome is ``CANCELLED`` or, when
            the service refuses (for example because the task already
            finished), ``CANNOT_CANCEL``. Other service failures, such as
            throttling, are returned as :class:`RemoteServiceError`.
        """
        record = self._state.get_job(job_id)
        if record is None:
            return Outcome.failure(NotFoundError("Job not found", job_id=job_id))

        if record.cancelled_at is not None:
            conflict = ConflictError(
                "Job was already cancelled", job_id=job_id, task_arn=record.task_arn
            )
            return Outcome.success(
                CancelResult(job_id, CancelOutcome.CANNOT_CANCEL, record.cancelled_at, conflict)
            )

        cancelled = invoke(
            "CancelQuantumTask",
            self._compute.cancel_task,
            record.task_arn,
            context={"job_id": job_id, "task_arn": record.task_arn},
        )
        if not cancelled.ok:
            if cancelled.error.error_code not in _CANCEL_REFUSAL_CODES:
                return Outcome.failure(cancelled.error)
            conflict = ConflictError(
                "Service refused cancellation",
                cause=cancelled.error,
                job_id=job_id,
                task_arn=record.task_arn,
            )
            return Outcome.success(
                CancelResult(job_id, CancelOutcome.CANNOT_CANCEL, None, conflict)
            )

        now = self._state.now()
        self._state.update_job(
            job_id, lambda r: dataclasses.replace(r, cancelled_at=now)
        )
        self._log.info("Cancelled job %s", job_id)
        return Outcome.success(CancelResult(job_id, CancelOutcome.CANCELLED, now))

    def cleanup(self, job_id: str) -> Outcome[JobRecord]:
        """Remove a job record from the backend state."""
        record = self._state.remove_job(job_id)
        if record is None:
            return Outcome.failure(NotFoundError("Job not found", job_id=job_id))
        return Outcome.success(record)

    # -------------------------------------------------------------------------
    # Batches
    # -------------------------------------------------------------------------

    def batch_submit(
        self,
        circuits: Sequence[Any],
        options: SubmitOptions | dict[str, Any] | None = None,
    ) -> Outcome[BatchSubmission]:
        """
        Submit circuits in windows of ``max_parallel_shots``.

        Circuits of one window are dispatched concurrently; the next
        window starts once every submission of the current window has
        returned. Task execution is not awaited.

        Returns
        -------
        Outcome
            The batch id and job ids in circuit order. If any submission
            fails, no further windows are dispatched, no batch record is
            stored and the error lists the jobs created so far.
        """
        circuits = list(circuits)
        if not circuits:
            return Outcome.failure(
                ValidationError("Batch contains no circuits", operation="batch_submit")
            )
        opts = SubmitOptions.coerce(options)
        size = self._config.max_parallel_shots
        windows = [circuits[i : i + size] for i in range(0, len(circuits), size)]
        batch_id = new_batch_id()
        job_ids: list[str] = []

        for chunk_index, window in enumerate(windows):
            offset = chunk_index * size
            outcomes = self._dispatch_window(window, opts, batch_id, chunk_index, offset)
            failed = next((o for o in outcomes if not o.ok), None)
            job_ids.extend(o.value for o in outcomes if o.ok)
            if failed is not None:
                return Outcome.failure(
                    RemoteServiceError(
                        "Batch submission aborted",
                        cause=failed.error,
                        batch_id=batch_id,
                        operation="batch_submit",
                        submitted_job_ids=list(job_ids),
                    )
                )
            self._log.debug(
                "Batch %s: dispatched window %d/%d", batch_id, chunk_index + 1, len(windows)
            )

        self._state.put_batch(
            BatchRecord(
                batch_id=batch_id,
                job_ids=tuple(job_ids),
                submitted_at=self._state.now(),
                total_circuits=len(circuits),
            )
        )
        self._log.info(
            "Submitted batch %s: %d circuits in %d windows",
            batch_id,
            len(circuits),
            len(windows),
        )
        return Outcome.success(
            BatchSubmission(batch_id, tuple(job_ids), len(circuits), len(windows))
        )

    def _dispatch_window(
        self,
        window: list[Any],
        opts: SubmitOptions,
        batch_id: str,
        chunk_index: int,
        offset: int,
    ) -> list[Outcome[str]]:
        job_options = [
            dataclasses.replace(
                opts, batch_id=batch_id, chunk_index=chunk_index, circuit_index=offset + i
            )
            for i in range(len(window))
        ]
        with ThreadPoolExecutor(max_workers=len(window)) as pool:
            return list(pool.map(self.submit, window, job_options))

    def batch_status(self, batch_id: str) -> Outcome[BatchStatusReport]:
        """Aggregate the states of a batch's jobs."""
        batch = self._state.get_batch(batch_id)
        if batch is None:
            return Outcome.failure(NotFoundError("Batch not found", batch_id=batch_id))

        statuses = tuple(
            self.status(job_id).unwrap_or(JobState.UNKNOWN) for job_id in batch.job_ids
        )
        overall = aggregate_batch_state(statuses)
        return Outcome.success(
            BatchStatusReport(
                batch_id=batch_id,
                total_jobs=len(batch.job_ids),
                completed=sum(s is JobState.COMPLETED for s in statuses),
                failed=sum(s is JobState.FAILED for s in statuses),
                running=sum(s in _ACTIVE_STATES for s in statuses),
                overall=overall,
                job_statuses=statuses,
            )
        )

    def batch_results(self, batch_id: str) -> Outcome[BatchResults]:
        """Collect the result outcome of every job in a batch."""
        batch = self._state.get_batch(batch_id)
        if batch is None:
            return Outcome.failure(NotFoundError("Batch not found", batch_id=batch_id))
        results = tuple(self.result(job_id) for job_id in batch.job_ids)
        return Outcome.success(
            BatchResults(
                batch_id=batch_id,
                total_jobs=len(batch.job_ids),
                results=results,
                completed_at=self._state.now(),
            )
        )
