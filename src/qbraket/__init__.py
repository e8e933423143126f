# SPDX-License-Identifier: Apache-2.0
# SPDX-FileCopyrightText: 2026 qbraket

"""
qbraket: Amazon Braket job orchestration.

Quick Start
-----------
>>> from qbraket import create_simulator
>>> backend = create_simulator(s3_bucket="amazon-braket-my-results")
>>> job_id = backend.submit_circuit(bell_qasm, {"shots": 100}).unwrap()
>>> result = backend.job_result(job_id).unwrap()
>>> result.counts()
{'00': 52, '11': 48}

Cost Estimation
---------------
>>> backend = create_qpu("arn:aws:braket:us-east-1::device/qpu/ionq/Forte-1",
...                      s3_bucket="amazon-braket-my-results")
>>> estimate = backend.estimate_cost([bell_qasm], {"shots": 1000}).unwrap()
>>> estimate.total_cost, estimate.pricing_source
(80.3, <PricingSource.DEVICE_CAPABILITY: 'device-capability'>)

Submodules
----------
- qbraket.backend: Backend facade and factories
- qbraket.orchestrator: Job and batch lifecycle
- qbraket.results: Result normalization
- qbraket.pricing: Price resolution and cost estimates
- qbraket.devices: Device descriptors
- qbraket.clients: Service client protocols and boto3 implementations
- qbraket.config: Backend configuration
- qbraket.errors: Public exception types
"""

from __future__ import annotations

from importlib.metadata import PackageNotFoundError, version
from typing import TYPE_CHECKING, Any


__all__ = [
    # Version
    "__version__",
    # Backend
    "BraketBackend",
    "create_backend",
    "create_simulator",
    "create_qpu",
    # Config
    "BackendConfig",
    # Types
    "Outcome",
    "JobState",
    "BatchState",
    "CancelOutcome",
    "SubmitOptions",
    "MeasurementResult",
    "DeviceDescriptor",
    # Results
    "JobResult",
    "PendingResult",
    "CostEstimate",
    # Errors
    "QBraketError",
    "ValidationError",
    "RemoteServiceError",
    "StorageError",
    "FormatError",
    "NotFoundError",
    "ConflictError",
]


try:
    __version__ = version("qbraket")
except PackageNotFoundError:
    __version__ = "0.0.0"


if TYPE_CHECKING:
    from qbraket.backend import (
        BraketBackend,
        create_backend,
        create_qpu,
        create_simulator,
    )
    from qbraket.config import BackendConfig
    from qbraket.errors import (
        ConflictError,
        FormatError,
        NotFoundError,
        QBraketError,
        RemoteServiceError,
        StorageError,
        ValidationError,
    )
    from qbraket.orchestrator import JobResult, PendingResult
    from qbraket.pricing import CostEstimate
    from qbraket.types import (
        BatchState,
        CancelOutcome,
        DeviceDescriptor,
        JobState,
        MeasurementResult,
        Outcome,
        SubmitOptions,
    )


_LAZY_IMPORTS = {
    # Backend
    "BraketBackend": ("qbraket.backend", "BraketBackend"),
    "create_backend": ("qbraket.backend", "create_backend"),
    "create_simulator": ("qbraket.backend", "create_simulator"),
    "create_qpu": ("qbraket.backend", "create_qpu"),
    # Config
    "BackendConfig": ("qbraket.config", "BackendConfig"),
    # Types
    "Outcome": ("qbraket.types", "Outcome"),
    "JobState": ("qbraket.types", "JobState"),
    "BatchState": ("qbraket.types", "BatchState"),
    "CancelOutcome": ("qbraket.types", "CancelOutcome"),
    "SubmitOptions": ("qbraket.types", "SubmitOptions"),
    "MeasurementResult": ("qbraket.types", "MeasurementResult"),
    "DeviceDescriptor": ("qbraket.types", "DeviceDescriptor"),
    # Results
    "JobResult": ("qbraket.orchestrator", "JobResult"),
    "PendingResult": ("qbraket.orchestrator", "PendingResult"),
    "CostEstimate": ("qbraket.pricing", "CostEstimate"),
    # Errors
    "QBraketError": ("qbraket.errors", "QBraketError"),
    "ValidationError": ("qbraket.errors", "ValidationError"),
    "RemoteServiceError": ("qbraket.errors", "RemoteServiceError"),
    "StorageError": ("qbraket.errors", "StorageError"),
    "FormatError": ("qbraket.errors", "FormatError"),
    "NotFoundError": ("qbraket.errors", "NotFoundError"),
    "ConflictError": ("qbraket.errors", "ConflictError"),
}


def __getattr__(name: str) -> Any:
    """Lazy import handler for module-level attributes."""
    if name in _LAZY_IMPORTS:
        module_path, attr_name = _LAZY_IMPORTS[name]
        module = __import__(module_path, fromlist=[attr_name])
        value = getattr(module, attr_name)
        globals()[name] = value
        return value
    raise AttributeError(f"module {__name__!r} has no attribute {name!r}")


def __dir__() -> list[str]:
    """List available attributes for autocomplete."""
    return sorted(set(__all__) | set(_LAZY_IMPORTS.keys()))
