# SPDX-License-Identifier: Apache-2.0
# SPDX-FileCopyrightText: 2026 qbraket

"""
Amazon Braket backend.

:class:`BraketBackend` ties together the configuration, the service
clients, the per-instance :class:`~qbraket.state.StateStore`, the
:class:`~qbraket.orchestrator.JobOrchestrator` and the
:class:`~qbraket.pricing.PricingResolver`. Each instance owns its state;
two backends never share jobs, devices or cached prices.

Examples
--------
>>> backend = create_simulator(s3_bucket="amazon-braket-my-results")
>>> job_id = backend.submit_circuit(bell_qasm, {"shots": 100}).unwrap()
>>> backend.job_status(job_id).unwrap()
<JobState.QUEUED: 'queued'>
"""

from __future__ import annotations

import logging
import time
from typing import Any, Callable, Sequence

import numpy as np

from qbraket.clients import (
    AwsPriceCatalog,
    BraketServiceClient,
    CircuitCompiler,
    ComputeServiceClient,
    ObjectStoreClient,
    OpenQASMCompiler,
    PriceCatalogClient,
    S3ObjectStore,
    create_session,
    invoke,
)
from qbraket.config import DM1_ARN, SV1_ARN, TN1_ARN, BackendConfig
from qbraket.devices import (
    CircuitValidation,
    descriptor_from_arn,
    parse_device,
    parse_queue_status,
    validate_circuit,
)
from qbraket.errors import ValidationError
from qbraket.orchestrator import (
    BatchResults,
    BatchStatusReport,
    BatchSubmission,
    CancelResult,
    JobOrchestrator,
    JobResult,
    PendingResult,
)
from qbraket.pricing import CostEstimate, PricingResolver
from qbraket.state import StateStore
from qbraket.types import (
    DeviceDescriptor,
    DeviceStatus,
    JobRecord,
    JobState,
    Outcome,
    QueueStatus,
    SubmitOptions,
)
from qbraket.utils import generate_ulid


logger = logging.getLogger(__name__)

SIMULATORS = {"sv1": SV1_ARN, "dm1": DM1_ARN, "tn1": TN1_ARN}

BACKEND_NAME = "Amazon Braket"


class BraketBackend:
    """
    Cloud backend submitting circuits to Amazon Braket.

    Parameters
    ----------
    config : BackendConfig
        Validated configuration.
    compute : ComputeServiceClient
        Braket task and device client.
    store : ObjectStoreClient
        S3 client for task output.
    catalog : PriceCatalogClient, optional
        Price List client. Without it pricing skips the catalog step.
    compiler : CircuitCompiler, optional
        Defaults to :class:`~qbraket.clients.OpenQASMCompiler`.
    logger : logging.Logger, optional
        Receives lifecycle and pricing events instead of the module
        loggers.
    rng : numpy.random.Generator, optional
        Randomness for outcome sequences rebuilt from probability tables.
    clock : callable, optional
        Current time in seconds. Default is :func:`time.time`.
    """

    def __init__(
        self,
        config: BackendConfig,
        compute: ComputeServiceClient,
        store: ObjectStoreClient,
        catalog: PriceCatalogClient | None = None,
        compiler: CircuitCompiler | None = None,
        *,
        logger: logging.Logger | None = None,
        rng: np.random.Generator | None = None,
        clock: Callable[[], float] = time.time,
    ) -> None:
        if not isinstance(config, BackendConfig):
            raise ValidationError(
                f"config must be a BackendConfig, got {type(config).__name__}",
                operation="configure",
            )
        self.config = config
        self._compute = compute
        self._log = logger or logging.getLogger(__name__)
        self._state = StateStore(
            pricing_ttl_seconds=config.pricing_ttl_seconds, clock=clock
        )
        self._state.set_current_device(descriptor_from_arn(config.device_arn))
        self._orchestrator = JobOrchestrator(
            self._state,
            compute,
            store,
            compiler or OpenQASMCompiler(),
            config,
            logger=logger,
            rng=rng,
        )
        self._pricing = PricingResolver(
            self._state,
            compute,
            catalog,
            pricing_region=config.pricing_region,
            default_shots=config.shots,
            logger=logger,
        )
        self._session_id = f"braket-session-{generate_ulid()}"
        self._created_at = self._state.now()

    def __repr__(self) -> str:
        device = self._state.get_current_device()
        return (
            f"BraketBackend(region={self.config.region!r}, "
            f"device={device.arn if device else None!r})"
        )

    @property
    def state(self) -> StateStore:
        return self._state

    # -------------------------------------------------------------------------
    # Jobs
    # -------------------------------------------------------------------------

    def submit_circuit(
        self, circuit: Any, options: SubmitOptions | dict[str, Any] | None = None
    ) -> Outcome[str]:
        """Submit one circuit; see :meth:`JobOrchestrator.submit`."""
        return self._orchestrator.submit(circuit, options)

    def job_status(self, job_id: str) -> Outcome[JobState]:
        return self._orchestrator.status(job_id)

    def job_result(self, job_id: str) -> Outcome[JobResult | PendingResult]:
        return self._orchestrator.result(job_id)

    def cancel_job(self, job_id: str) -> Outcome[CancelResult]:
        return self._orchestrator.cancel(job_id)

    def cleanup_job(self, job_id: str) -> Outcome[JobRecord]:
        """Forget a job. The remote task is not affected."""
        return self._orchestrator.cleanup(job_id)

    def batch_submit(
        self,
        circuits: Sequence[Any],
        options: SubmitOptions | dict[str, Any] | None = None,
    ) -> Outcome[BatchSubmission]:
        return self._orchestrator.batch_submit(circuits, options)

    def batch_status(self, batch_id: str) -> Outcome[BatchStatusReport]:
        return self._orchestrator.batch_status(batch_id)

    def batch_results(self, batch_id: str) -> Outcome[BatchResults]:
        return self._orchestrator.batch_results(batch_id)

    # -------------------------------------------------------------------------
    # Pricing
    # -------------------------------------------------------------------------

    def estimate_cost(
        self,
        circuits: Any,
        options: SubmitOptions | dict[str, Any] | None = None,
        device_arn: str | None = None,
    ) -> Outcome[CostEstimate]:
        """
        Estimate the cost of running circuits.

        Parameters
        ----------
        circuits : Any or list
            One circuit or a list of circuits.
        options : SubmitOptions or dict, optional
            ``shots`` per circuit.
        device_arn : str, optional
            Device to price instead of the selected one. The selection
            is left unchanged.
        """
        return self._pricing.estimate_cost(circuits, options, device_arn)

    # -------------------------------------------------------------------------
    # Devices
    # -------------------------------------------------------------------------

    def devices(
        self, filters: list[dict[str, Any]] | None = None
    ) -> Outcome[list[DeviceDescriptor]]:
        """Refresh and return the list of Braket devices."""
        found = invoke("SearchDevices", self._compute.search_devices, filters)
        if not found.ok:
            return Outcome.failure(found.error)
        devices = [parse_device(raw) for raw in found.value]
        self._state.set_devices(devices)
        self._log.debug("Found %d devices", len(devices))
        return Outcome.success(devices)

    def select_device(self, device: DeviceDescriptor | str) -> Outcome[DeviceDescriptor]:
        """
        Make a device the target for submissions and estimates.

        Parameters
        ----------
        device : DeviceDescriptor or str
            A descriptor, or an ARN resolved from the cached device list
            or, failing that, a ``GetDevice`` lookup.
        """
        if isinstance(device, str):
            descriptor = self._state.find_device(device)
            if descriptor is None or not descriptor.capabilities:
                fetched = invoke(
                    "GetDevice",
                    self._compute.get_device,
                    device,
                    context={"device_arn": device},
                )
                if not fetched.ok:
                    return Outcome.failure(fetched.error)
                descriptor = parse_device(fetched.value)
        else:
            descriptor = device
        self._state.set_current_device(descriptor)
        self._log.info("Selected device %s", descriptor.arn)
        return Outcome.success(descriptor)

    def device(self) -> DeviceDescriptor | None:
        """Currently selected device."""
        return self._state.get_current_device()

    def available(self) -> bool:
        """True when the selected device reports ``ONLINE``."""
        arn = self._current_arn()
        fetched = invoke(
            "GetDevice", self._compute.get_device, arn, context={"device_arn": arn}
        )
        if not fetched.ok:
            return False
        return parse_device(fetched.value).status is DeviceStatus.ONLINE

    def queue_status(self) -> Outcome[QueueStatus]:
        """Queue depth of the selected device."""
        arn = self._current_arn()
        fetched = invoke(
            "GetDevice", self._compute.get_device, arn, context={"device_arn": arn}
        )
        if not fetched.ok:
            return Outcome.failure(fetched.error)
        return Outcome.success(
            parse_queue_status(arn, fetched.value.get("deviceQueueInfo"))
        )

    def validate_circuit(self, circuit: Any) -> CircuitValidation:
        """Check a circuit against the selected device's capabilities."""
        device = self._state.get_current_device() or descriptor_from_arn(self._current_arn())
        return validate_circuit(circuit, device)

    def _current_arn(self) -> str:
        device = self._state.get_current_device()
        return device.arn if device is not None else self.config.device_arn

    # -------------------------------------------------------------------------
    # Introspection
    # -------------------------------------------------------------------------

    def backend_info(self) -> dict[str, Any]:
        device = self._state.get_current_device()
        return {
            "backend_type": "cloud",
            "backend_name": BACKEND_NAME,
            "provider": "aws",
            "capabilities": ["multi-device", "cloud", "batch"],
            "config": self.config.to_dict(),
            "devices": [d.to_dict() for d in self._state.get_devices()],
            "device": device.to_dict() if device is not None else None,
            "created_at": self._created_at,
        }

    def session_info(self) -> dict[str, Any]:
        return {
            "session_id": self._session_id,
            "region": self.config.region,
            "device_arn": self._current_arn(),
            "active_jobs": len(self._state.list_jobs()),
            "active_batches": len(self._state.list_batches()),
            "session_start": self._created_at,
        }


# =============================================================================
# Factories
# =============================================================================


def create_backend(
    config: BackendConfig | None = None,
    *,
    braket_client: ComputeServiceClient | None = None,
    s3_client: ObjectStoreClient | None = None,
    pricing_client: PriceCatalogClient | None = None,
    compiler: CircuitCompiler | None = None,
    logger: logging.Logger | None = None,
    rng: np.random.Generator | None = None,
    clock: Callable[[], float] = time.time,
    **settings: Any,
) -> BraketBackend:
    """
    Create a backend, building boto3 clients for any not supplied.

    Parameters
    ----------
    config : BackendConfig, optional
        Configuration. When omitted it is built from ``settings``.
    braket_client, s3_client, pricing_client : optional
        Pre-built service clients. A boto3 session is created only when
        at least one is missing.
    compiler : CircuitCompiler, optional
        Circuit compiler.
    logger : logging.Logger, optional
        Logger passed to the backend.
    **settings
        :class:`BackendConfig` fields.

    Returns
    -------
    BraketBackend
        Ready-to-use backend.

    Raises
    ------
    ValidationError
        If the configuration is invalid. Raised before any client is
        created.
    """
    if config is None:
        settings.setdefault("s3_bucket", "")
        config = BackendConfig(**settings)
    elif settings:
        config = config.with_overrides(**settings)

    if braket_client is None or s3_client is None or pricing_client is None:
        session = create_session(config.region, config.aws_profile)
        braket_client = braket_client or BraketServiceClient.from_session(session)
        s3_client = s3_client or S3ObjectStore.from_session(session)
        pricing_client = pricing_client or AwsPriceCatalog.from_session(session)

    return BraketBackend(
        config,
        braket_client,
        s3_client,
        pricing_client,
        compiler,
        logger=logger,
        rng=rng,
        clock=clock,
    )


def create_simulator(
    s3_bucket: str | None = None,
    *,
    simulator: str = "sv1",
    **kwargs: Any,
) -> BraketBackend:
    """
    Create a backend targeting an Amazon Braket managed simulator.

    Parameters
    ----------
    s3_bucket : str
        Result bucket.
    simulator : str, optional
        One of "sv1", "dm1", "tn1". Default is "sv1".
    **kwargs
        Passed to :func:`create_backend`.
    """
    arn = SIMULATORS.get(simulator.lower())
    if arn is None:
        raise ValidationError(
            f"Unknown simulator {simulator!r}; expected one of {sorted(SIMULATORS)}",
            operation="configure",
        )
    return create_backend(
        s3_bucket=s3_bucket or "",
        device_arn=arn,
        device_type="simulator",
        **kwargs,
    )


def create_qpu(device_arn: str, s3_bucket: str | None = None, **kwargs: Any) -> BraketBackend:
    """
    Create a backend targeting a QPU.

    Parameters
    ----------
    device_arn : str
        QPU ARN, e.g. ``arn:aws:braket:us-east-1::device/qpu/ionq/Aria-1``.
    s3_bucket : str
        Result bucket.
    **kwargs
        Passed to :func:`create_backend`.
    """
    if not device_arn:
        raise ValidationError("device_arn is required for a QPU backend", operation="configure")
    return create_backend(
        s3_bucket=s3_bucket or "",
        device_arn=device_arn,
        device_type="qpu",
        **kwargs,
    )
