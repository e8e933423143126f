# SPDX-License-Identifier: Apache-2.0
# SPDX-FileCopyrightText: 2026 qbraket

"""
Service clients.

The backend talks to four collaborators through the protocols defined
here: the Braket compute service, the S3 object store holding task
results, the AWS Price List catalog and a circuit compiler. Default
implementations wrap ``boto3`` clients; tests inject in-memory fakes.

Client methods raise on failure. :func:`invoke` is the single place
where collaborator exceptions are turned into :class:`~qbraket.types.Outcome`
values carrying a :class:`~qbraket.errors.QBraketError`.
"""

from __future__ import annotations

import json
import logging
from contextlib import contextmanager
from dataclasses import dataclass
from typing import Any, Callable, Iterator, Protocol, TypeVar, runtime_checkable

import boto3
from botocore.exceptions import BotoCoreError, ClientError

from qbraket.errors import (
    QBraketError,
    RemoteServiceError,
    StorageError,
    ValidationError,
)
from qbraket.types import DeviceDescriptor, Outcome, SubmitOptions
from qbraket.utils import generate_ulid


logger = logging.getLogger(__name__)

T = TypeVar("T")

BRAKET_SERVICE_CODE = "AmazonBraket"
OPENQASM_HEADER = {"name": "braket.ir.openqasm.program", "version": "1"}

# The Price List API is served from a few regions only.
PRICING_API_REGION = "us-east-1"

REGION_LOCATIONS = {
    "us-east-1": "US East (N. Virginia)",
    "us-west-1": "US West (N. California)",
    "us-west-2": "US West (Oregon)",
    "eu-west-2": "EU (London)",
    "eu-north-1": "EU (Stockholm)",
    "eu-central-1": "EU (Frankfurt)",
    "ap-northeast-1": "Asia Pacific (Tokyo)",
}


# =============================================================================
# Protocols
# =============================================================================


@runtime_checkable
class ComputeServiceClient(Protocol):
    """Braket task and device operations."""

    def create_task(
        self,
        *,
        device_arn: str,
        action: str,
        shots: int,
        output_bucket: str,
        output_key_prefix: str,
        client_token: str,
    ) -> str:
        """Create a quantum task and return its ARN."""
        ...

    def get_task(self, task_arn: str) -> dict[str, Any]:
        """Return the ``GetQuantumTask`` document (status, output location, ...)."""
        ...

    def cancel_task(self, task_arn: str) -> None:
        """Request cancellation; raise if the service refuses."""
        ...

    def search_devices(
        self, filters: list[dict[str, Any]] | None = None
    ) -> list[dict[str, Any]]:
        """Return raw device summaries."""
        ...

    def get_device(self, device_arn: str) -> dict[str, Any]:
        """Return the raw ``GetDevice`` document."""
        ...


@runtime_checkable
class ObjectStoreClient(Protocol):
    """Read access to task output."""

    def get_object(self, bucket: str, key: str) -> bytes:
        ...


@runtime_checkable
class PriceCatalogClient(Protocol):
    """AWS Price List access."""

    def get_products(self, service_code: str, region: str) -> list[Any]:
        """Return raw price records (JSON strings or decoded dicts)."""
        ...


@dataclass(frozen=True)
class CompiledCircuit:
    """
    Circuit ready for submission.

    Parameters
    ----------
    circuit : Any
        Final circuit after any transformation.
    program : str
        OpenQASM source sent to the service.
    """

    circuit: Any
    program: str

    def action_document(self) -> str:
        """Render the ``braket.ir.openqasm.program`` action JSON."""
        return json.dumps({"braketSchemaHeader": OPENQASM_HEADER, "source": self.program})


@runtime_checkable
class CircuitCompiler(Protocol):
    """Turns a caller circuit into a submittable program for a device."""

    def optimize(
        self,
        circuit: Any,
        device: DeviceDescriptor,
        options: SubmitOptions,
    ) -> CompiledCircuit:
        ...


# =============================================================================
# Error seam
# =============================================================================


def invoke(
    operation: str,
    fn: Callable[..., T],
    *args: Any,
    error_type: type[QBraketError] = RemoteServiceError,
    context: dict[str, Any] | None = None,
    **kwargs: Any,
) -> Outcome[T]:
    """
    Call a collaborator and capture any failure as an outcome.

    Parameters
    ----------
    operation : str
        Name of the remote operation, recorded on the error.
    fn : callable
        Client method to call with ``*args`` and ``**kwargs``.
    error_type : type, optional
        Error class for exceptions that are not already qbraket errors.
    context : dict, optional
        Identifiers (job id, device ARN, ...) attached to the error.

    Returns
    -------
    Outcome
        The call's return value, or the error it raised.
    """
    context = dict(context or {})
    try:
        return Outcome.success(fn(*args, **kwargs))
    except QBraketError as e:
        for k, v in context.items():
            if v is not None:
                e.context.setdefault(k, v)
        e.context.setdefault("operation", operation)
        logger.warning("%s failed: %s", operation, e)
        return Outcome.failure(e)
    except Exception as e:
        err = error_type(f"{operation} failed", cause=e, operation=operation, **context)
        logger.warning("%s", err)
        return Outcome.failure(err)


@contextmanager
def _translate_errors(
    operation: str,
    error_type: type[QBraketError] = RemoteServiceError,
    **context: Any,
) -> Iterator[None]:
    try:
        yield
    except (ClientError, BotoCoreError) as e:
        code = None
        if isinstance(e, ClientError):
            code = e.response.get("Error", {}).get("Code")
        raise error_type(
            f"{operation} failed" + (f" ({code})" if code else ""),
            cause=e,
            operation=operation,
            error_code=code,
            **context,
        ) from e


def _strip_metadata(response: dict[str, Any]) -> dict[str, Any]:
    return {k: v for k, v in response.items() if k != "ResponseMetadata"}


# =============================================================================
# boto3 implementations
# =============================================================================


def create_session(
    region: str, profile: str | None = None
) -> boto3.session.Session:
    """Create a boto3 session, optionally for a named profile."""
    if profile:
        return boto3.Session(profile_name=profile, region_name=region)
    return boto3.Session(region_name=region)


class BraketServiceClient:
    """
    :class:`ComputeServiceClient` backed by the boto3 ``braket`` client.

    Parameters
    ----------
    client : botocore client
        A ``braket`` service client.
    """

    def __init__(self, client: Any) -> None:
        self._client = client

    @classmethod
    def from_session(cls, session: boto3.session.Session) -> BraketServiceClient:
        return cls(session.client("braket"))

    def create_task(
        self,
        *,
        device_arn: str,
        action: str,
        shots: int,
        output_bucket: str,
        output_key_prefix: str,
        client_token: str,
    ) -> str:
        with _translate_errors("CreateQuantumTask", device_arn=device_arn):
            response = self._client.create_quantum_task(
                action=action,
                clientToken=client_token,
                deviceArn=device_arn,
                outputS3Bucket=output_bucket,
                outputS3KeyPrefix=output_key_prefix,
                shots=shots,
            )
        logger.debug("CreateQuantumTask -> %s", response.get("quantumTaskArn"))
        return response["quantumTaskArn"]

    def get_task(self, task_arn: str) -> dict[str, Any]:
        with _translate_errors("GetQuantumTask", task_arn=task_arn):
            response = self._client.get_quantum_task(quantumTaskArn=task_arn)
        return _strip_metadata(response)

    def cancel_task(self, task_arn: str) -> None:
        with _translate_errors("CancelQuantumTask", task_arn=task_arn):
            self._client.cancel_quantum_task(
                quantumTaskArn=task_arn, clientToken=generate_ulid()
            )

    def search_devices(
        self, filters: list[dict[str, Any]] | None = None
    ) -> list[dict[str, Any]]:
        devices: list[dict[str, Any]] = []
        with _translate_errors("SearchDevices"):
            paginator = self._client.get_paginator("search_devices")
            for page in paginator.paginate(filters=filters or []):
                devices.extend(page.get("devices", []))
        return devices

    def get_device(self, device_arn: str) -> dict[str, Any]:
        with _translate_errors("GetDevice", device_arn=device_arn):
            response = self._client.get_device(deviceArn=device_arn)
        return _strip_metadata(response)


class S3ObjectStore:
    """:class:`ObjectStoreClient` backed by the boto3 ``s3`` client."""

    def __init__(self, client: Any) -> None:
        self._client = client

    @classmethod
    def from_session(cls, session: boto3.session.Session) -> S3ObjectStore:
        return cls(session.client("s3"))

    def get_object(self, bucket: str, key: str) -> bytes:
        with _translate_errors("GetObject", StorageError, bucket=bucket, key=key):
            response = self._client.get_object(Bucket=bucket, Key=key)
            return response["Body"].read()


class AwsPriceCatalog:
    """
    :class:`PriceCatalogClient` backed by the boto3 ``pricing`` client.

    Products are filtered with ``TERM_MATCH`` on the service code and the
    human-readable location of the requested region.
    """

    def __init__(self, client: Any) -> None:
        self._client = client

    @classmethod
    def from_session(cls, session: boto3.session.Session) -> AwsPriceCatalog:
        return cls(session.client("pricing", region_name=PRICING_API_REGION))

    def get_products(self, service_code: str, region: str) -> list[Any]:
        location = REGION_LOCATIONS.get(region, REGION_LOCATIONS["us-east-1"])
        filters = [
            {"Type": "TERM_MATCH", "Field": "ServiceCode", "Value": service_code},
            {"Type": "TERM_MATCH", "Field": "location", "Value": location},
        ]
        products: list[Any] = []
        with _translate_errors("GetProducts", operation_region=region):
            paginator = self._client.get_paginator("get_products")
            for page in paginator.paginate(
                ServiceCode=service_code,
                Filters=filters,
                PaginationConfig={"PageSize": 100},
            ):
                products.extend(page.get("PriceList", []))
        logger.debug("GetProducts(%s, %s) -> %d records", service_code, location, len(products))
        return products


# =============================================================================
# Compiler
# =============================================================================


class OpenQASMCompiler:
    """
    Default :class:`CircuitCompiler`.

    Accepts OpenQASM source strings (passed through unchanged) and Amazon
    Braket SDK circuits (serialized with ``to_ir(IRType.OPENQASM)``). No
    device-specific optimization is applied.
    """

    def optimize(
        self,
        circuit: Any,
        device: DeviceDescriptor,
        options: SubmitOptions,
    ) -> CompiledCircuit:
        if isinstance(circuit, str):
            if not circuit.strip():
                raise ValidationError("OpenQASM source is empty", device_arn=device.arn)
            return CompiledCircuit(circuit=circuit, program=circuit)

        if callable(getattr(circuit, "to_ir", None)):
            from braket.circuits.serialization import IRType

            program = circuit.to_ir(ir_type=IRType.OPENQASM)
            return CompiledCircuit(circuit=circuit, program=program.source)

        raise ValidationError(
            f"Cannot compile circuit of type {type(circuit).__name__}; "
            "expected an OpenQASM string or a braket Circuit",
            device_arn=device.arn,
        )
