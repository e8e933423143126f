# SPDX-License-Identifier: Apache-2.0
# SPDX-FileCopyrightText: 2026 qbraket

"""
Test fixtures for qbraket.

Provides in-memory fakes for the Braket compute service, the S3 object
store and the AWS Price List catalog. Every fake counts its calls so
tests can assert which collaborators were used. No test touches the
network or boto3.
"""

from __future__ import annotations

import json
import threading
from collections import Counter
from typing import Any, Callable

import numpy as np
import pytest
from click.testing import CliRunner

from qbraket.backend import BraketBackend, create_backend
from qbraket.config import SV1_ARN, BackendConfig
from qbraket.errors import RemoteServiceError, StorageError


BELL_QASM = """OPENQASM 3.0;
bit[2] b;
qubit[2] q;
h q[0];
cnot q[0], q[1];
b[0] = measure q[0];
b[1] = measure q[1];
"""

FORTE_ARN = "arn:aws:braket:us-east-1::device/qpu/ionq/Forte-1"
GARNET_ARN = "arn:aws:braket:eu-north-1::device/qpu/iqm/Garnet"
ANKAA_ARN = "arn:aws:braket:us-west-1::device/qpu/rigetti/Ankaa-3"


def device_record(
    arn: str,
    name: str,
    *,
    provider: str,
    device_type: str = "QPU",
    status: str = "ONLINE",
    qubits: int | None = None,
    operations: list[str] | None = None,
    cost: dict[str, Any] | None = None,
    queue: list[dict[str, Any]] | None = None,
) -> dict[str, Any]:
    """Build a ``GetDevice`` style record."""
    capabilities: dict[str, Any] = {"service": {}, "action": {}, "paradigm": {}}
    if cost is not None:
        capabilities["service"]["deviceCost"] = cost
    if operations is not None:
        capabilities["action"]["braket.ir.openqasm.program"] = {
            "supportedOperations": operations
        }
    if qubits is not None:
        capabilities["paradigm"]["qubitCount"] = qubits
        capabilities["paradigm"]["connectivity"] = {
            "fullyConnected": True,
            "connectivityGraph": {},
        }
    return {
        "deviceArn": arn,
        "deviceName": name,
        "deviceStatus": status,
        "deviceType": device_type,
        "providerName": provider,
        "deviceCapabilities": json.dumps(capabilities),
        "deviceQueueInfo": queue or [],
    }


DEVICES = {
    SV1_ARN: device_record(
        SV1_ARN,
        "SV1",
        provider="Amazon Braket",
        device_type="SIMULATOR",
        qubits=34,
        operations=["h", "x", "cnot", "rz"],
        cost={"price": 0.075, "unit": "minute"},
    ),
    FORTE_ARN: device_record(
        FORTE_ARN,
        "Forte 1",
        provider="IonQ",
        qubits=36,
        operations=["x", "y", "z", "h", "cnot", "rx", "ry", "rz"],
        cost={"price": 0.08, "unit": "shot"},
        queue=[
            {"queue": "QUANTUM_TASKS_QUEUE", "queueSize": "13", "queuePriority": "Normal"},
            {"queue": "QUANTUM_TASKS_QUEUE", "queueSize": "0", "queuePriority": "Priority"},
            {"queue": "JOBS_QUEUE", "queueSize": "2"},
        ],
    ),
    GARNET_ARN: device_record(
        GARNET_ARN,
        "Garnet",
        provider="IQM",
        qubits=20,
        operations=["prx", "cz"],
        cost={"price": 0.00145, "unit": "shot"},
    ),
    ANKAA_ARN: device_record(
        ANKAA_ARN,
        "Ankaa-3",
        provider="Rigetti",
        status="OFFLINE",
        qubits=84,
        operations=["rx", "rz", "iswap"],
    ),
}


class FakeComputeService:
    """In-memory Braket task and device service."""

    def __init__(self, devices: dict[str, dict[str, Any]] | None = None) -> None:
        self.devices = dict(DEVICES if devices is None else devices)
        self.tasks: dict[str, dict[str, Any]] = {}
        self.requests: list[dict[str, Any]] = []
        self.calls: Counter[str] = Counter()
        self.initial_status = "QUEUED"
        self.fail_create = False
        self.fail_after: int | None = None
        self.fail_get_task = False
        self.fail_devices = False
        self.fail_cancel = False
        self._lock = threading.Lock()
        self._next = 0

    def _count(self, name: str) -> None:
        with self._lock:
            self.calls[name] += 1

    def create_task(self, **request: Any) -> str:
        self._count("create_task")
        with self._lock:
            exhausted = self.fail_after is not None and self._next >= self.fail_after
            if self.fail_create or exhausted:
                raise RemoteServiceError(
                    "CreateQuantumTask failed (ServiceQuotaExceededException)"
                )
            self._next += 1
            arn = f"arn:aws:braket:us-east-1:123456789012:quantum-task/task-{self._next:04d}"
            self.requests.append(request)
            self.tasks[arn] = {
                "quantumTaskArn": arn,
                "status": self.initial_status,
                "deviceArn": request["device_arn"],
                "shots": request["shots"],
                "outputS3Bucket": request["output_bucket"],
                "outputS3Directory": request["output_key_prefix"],
            }
        return arn

    def get_task(self, task_arn: str) -> dict[str, Any]:
        self._count("get_task")
        if self.fail_get_task:
            raise RemoteServiceError("GetQuantumTask failed (ThrottlingException)")
        return dict(self.tasks[task_arn])

    def cancel_task(self, task_arn: str) -> None:
        self._count("cancel_task")
        if self.fail_cancel:
            raise RemoteServiceError(
                "CancelQuantumTask failed (ThrottlingException)",
                error_code="ThrottlingException",
            )
        task = self.tasks[task_arn]
        if task["status"] in ("COMPLETED", "FAILED", "CANCELLED"):
            raise RemoteServiceError(
                "CancelQuantumTask failed (ValidationException)",
                error_code="ValidationException",
            )
        task["status"] = "CANCELLED"

    def search_devices(self, filters: list[dict[str, Any]] | None = None) -> list[dict[str, Any]]:
        self._count("search_devices")
        if self.fail_devices:
            raise RemoteServiceError("SearchDevices failed")
        summaries = []
        for record in self.devices.values():
            summary = {k: v for k, v in record.items() if k != "deviceCapabilities"}
            summaries.append(summary)
        return summaries

    def get_device(self, device_arn: str) -> dict[str, Any]:
        self._count("get_device")
        if self.fail_devices or device_arn not in self.devices:
            raise RemoteServiceError("GetDevice failed (ResourceNotFoundException)")
        return dict(self.devices[device_arn])

    # -- test helpers ---------------------------------------------------------

    def set_status(self, task_arn: str, status: str, **extra: Any) -> None:
        self.tasks[task_arn]["status"] = status
        self.tasks[task_arn].update(extra)

    def complete(self, task_arn: str, store: FakeObjectStore, payload: Any) -> None:
        """Mark a task completed and write its results document."""
        task = self.tasks[task_arn]
        task["status"] = "COMPLETED"
        body = payload if isinstance(payload, (bytes, str)) else json.dumps(payload)
        store.put(task["outputS3Bucket"], f"{task['outputS3Directory']}/results.json", body)


class FakeObjectStore:
    """In-memory S3."""

    def __init__(self) -> None:
        self.objects: dict[tuple[str, str], bytes] = {}
        self.calls: Counter[str] = Counter()

    def put(self, bucket: str, key: str, body: bytes | str) -> None:
        self.objects[(bucket, key)] = body.encode("utf-8") if isinstance(body, str) else body

    def get_object(self, bucket: str, key: str) -> bytes:
        self.calls["get_object"] += 1
        try:
            return self.objects[(bucket, key)]
        except KeyError:
            raise StorageError("GetObject failed (NoSuchKey)", bucket=bucket, key=key) from None


def price_record(usage_type: str, unit: str, usd: str) -> str:
    """Build a Price List ``PriceList`` entry."""
    return json.dumps(
        {
            "product": {"attributes": {"usagetype": usage_type, "servicecode": "AmazonBraket"}},
            "terms": {
                "OnDemand": {
                    "SKU.TERM": {
                        "priceDimensions": {
                            "SKU.TERM.DIM": {
                                "unit": unit,
                                "pricePerUnit": {"USD": usd},
                            }
                        }
                    }
                }
            },
        }
    )


class FakePriceCatalog:
    """In-memory AWS Price List."""

    def __init__(self, products: list[Any] | None = None) -> None:
        self.products = list(products or [])
        self.calls: Counter[str] = Counter()
        self.requests: list[tuple[str, str]] = []
        self.fail = False

    def get_products(self, service_code: str, region: str) -> list[Any]:
        self.calls["get_products"] += 1
        self.requests.append((service_code, region))
        if self.fail:
            raise RemoteServiceError("GetProducts failed")
        return list(self.products)


class FakeClock:
    """Manually advanced clock."""

    def __init__(self, start: float = 1_700_000_000.0) -> None:
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


@pytest.fixture
def compute() -> FakeComputeService:
    return FakeComputeService()


@pytest.fixture
def object_store() -> FakeObjectStore:
    return FakeObjectStore()


@pytest.fixture
def catalog() -> FakePriceCatalog:
    return FakePriceCatalog()


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def config() -> BackendConfig:
    return BackendConfig(s3_bucket="amazon-braket-test-results")


@pytest.fixture
def make_backend(
    compute: FakeComputeService,
    object_store: FakeObjectStore,
    catalog: FakePriceCatalog,
    clock: FakeClock,
) -> Callable[..., BraketBackend]:
    """
    Factory for backends wired to the fakes.

    Usage:
        backend = make_backend()
        backend = make_backend(max_parallel_shots=3, device_arn=FORTE_ARN)
    """

    def _make(**settings: Any) -> BraketBackend:
        settings.setdefault("s3_bucket", "amazon-braket-test-results")
        return create_backend(
            braket_client=compute,
            s3_client=object_store,
            pricing_client=catalog,
            rng=np.random.default_rng(1234),
            clock=clock,
            **settings,
        )

    return _make


@pytest.fixture
def backend(make_backend: Callable[..., BraketBackend]) -> BraketBackend:
    return make_backend()


@pytest.fixture
def cli_runner() -> CliRunner:
    """Click CLI test runner."""
    return CliRunner()


@pytest.fixture
def invoke(cli_runner: CliRunner, backend: BraketBackend) -> Callable[..., Any]:
    """
    Invoke CLI commands against the fake-backed backend.

    Usage:
        result = invoke("devices")
        result = invoke("estimate", "--shots", "1000")
    """
    from qbraket.cli import cli

    def _invoke(*args: str) -> Any:
        return cli_runner.invoke(cli, list(args), obj={"backend": backend})

    return _invoke
