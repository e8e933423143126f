# SPDX-License-Identifier: Apache-2.0
# SPDX-FileCopyrightText: 2026 qbraket

"""Tests for service client adapters and the error seam."""

from __future__ import annotations

import io
import json
from types import SimpleNamespace
from typing import Any

import pytest
from botocore.exceptions import ClientError, EndpointConnectionError
from qbraket.clients import (
    AwsPriceCatalog,
    BraketServiceClient,
    CompiledCircuit,
    ComputeServiceClient,
    ObjectStoreClient,
    OpenQASMCompiler,
    PriceCatalogClient,
    S3ObjectStore,
    invoke,
)
from qbraket.config import SV1_ARN
from qbraket.devices import descriptor_from_arn
from qbraket.errors import (
    NotFoundError,
    RemoteServiceError,
    StorageError,
    ValidationError,
)
from qbraket.types import SubmitOptions

from conftest import BELL_QASM, FakeComputeService, FakeObjectStore, FakePriceCatalog


def _client_error(code: str, operation: str) -> ClientError:
    return ClientError({"Error": {"Code": code, "Message": "boom"}}, operation)


class _Paginator:
    def __init__(self, pages: list[dict[str, Any]]) -> None:
        self.pages = pages
        self.kwargs: dict[str, Any] = {}

    def paginate(self, **kwargs: Any) -> list[dict[str, Any]]:
        self.kwargs = kwargs
        return self.pages


class _StubBoto:
    """Minimal stand-in for a botocore client."""

    def __init__(self, **methods: Any) -> None:
        self.paginators: dict[str, _Paginator] = {}
        for name, fn in methods.items():
            setattr(self, name, fn)

    def get_paginator(self, name: str) -> _Paginator:
        return self.paginators[name]


def _raise(exc: BaseException) -> Any:
    def _fn(**kwargs: Any) -> Any:
        raise exc

    return _fn


# =============================================================================
# invoke
# =============================================================================


class TestInvoke:
    """Tests for the collaborator error seam."""

    def test_success(self) -> None:
        outcome = invoke("Echo", lambda x: x * 2, 21)
        assert outcome.ok and outcome.value == 42

    def test_wraps_foreign_exceptions(self) -> None:
        outcome = invoke(
            "GetQuantumTask",
            _raise(KeyError("missing")),
            context={"job_id": "braket-1"},
        )

        assert isinstance(outcome.error, RemoteServiceError)
        assert isinstance(outcome.error.cause, KeyError)
        assert outcome.error.operation == "GetQuantumTask"
        assert outcome.error.job_id == "braket-1"

    def test_custom_error_type(self) -> None:
        outcome = invoke("Optimize", _raise(TypeError("bad")), error_type=ValidationError)
        assert isinstance(outcome.error, ValidationError)

    def test_keeps_qbraket_errors_and_adds_context(self) -> None:
        original = NotFoundError("gone", key="k")

        outcome = invoke("GetObject", _raise(original), context={"job_id": "braket-1"})

        assert outcome.error is original
        assert original.job_id == "braket-1"
        assert original.operation == "GetObject"
        assert original.key == "k"


# =============================================================================
# boto3 adapters
# =============================================================================


class TestBraketServiceClient:
    """Tests for the boto3 braket adapter."""

    def test_create_task(self) -> None:
        captured: dict[str, Any] = {}

        def create_quantum_task(**kwargs: Any) -> dict[str, Any]:
            captured.update(kwargs)
            return {"quantumTaskArn": "arn:task/1", "ResponseMetadata": {}}

        client = BraketServiceClient(_StubBoto(create_quantum_task=create_quantum_task))

        arn = client.create_task(
            device_arn=SV1_ARN,
            action="{}",
            shots=10,
            output_bucket="bucket",
            output_key_prefix="prefix/task-1",
            client_token="token",
        )

        assert arn == "arn:task/1"
        assert captured == {
            "action": "{}",
            "clientToken": "token",
            "deviceArn": SV1_ARN,
            "outputS3Bucket": "bucket",
            "outputS3KeyPrefix": "prefix/task-1",
            "shots": 10,
        }

    def test_client_error_translation(self) -> None:
        client = BraketServiceClient(
            _StubBoto(
                get_quantum_task=_raise(
                    _client_error("ResourceNotFoundException", "GetQuantumTask")
                )
            )
        )

        with pytest.raises(RemoteServiceError) as exc_info:
            client.get_task("arn:task/1")

        err = exc_info.value
        assert "ResourceNotFoundException" in err.message
        assert err.error_code == "ResourceNotFoundException"
        assert err.task_arn == "arn:task/1"
        assert isinstance(err.cause, ClientError)

    def test_connection_error_translation(self) -> None:
        client = BraketServiceClient(
            _StubBoto(get_device=_raise(EndpointConnectionError(endpoint_url="https://x")))
        )

        with pytest.raises(RemoteServiceError):
            client.get_device(SV1_ARN)

    def test_get_task_strips_metadata(self) -> None:
        client = BraketServiceClient(
            _StubBoto(
                get_quantum_task=lambda **kw: {"status": "QUEUED", "ResponseMetadata": {"x": 1}}
            )
        )
        assert client.get_task("arn:task/1") == {"status": "QUEUED"}

    def test_search_devices_paginates(self) -> None:
        stub = _StubBoto()
        stub.paginators["search_devices"] = _Paginator(
            [{"devices": [{"deviceArn": "a"}]}, {"devices": [{"deviceArn": "b"}]}]
        )

        devices = BraketServiceClient(stub).search_devices()

        assert [d["deviceArn"] for d in devices] == ["a", "b"]
        assert stub.paginators["search_devices"].kwargs == {"filters": []}

    def test_cancel_sends_client_token(self) -> None:
        captured: dict[str, Any] = {}
        client = BraketServiceClient(
            _StubBoto(cancel_quantum_task=lambda **kw: captured.update(kw))
        )

        client.cancel_task("arn:task/1")

        assert captured["quantumTaskArn"] == "arn:task/1"
        assert captured["clientToken"]


class TestS3ObjectStore:
    def test_reads_body(self) -> None:
        store = S3ObjectStore(
            _StubBoto(get_object=lambda **kw: {"Body": io.BytesIO(b'{"a": 1}')})
        )
        assert store.get_object("bucket", "key") == b'{"a": 1}'

    def test_missing_key_is_storage_error(self) -> None:
        store = S3ObjectStore(_StubBoto(get_object=_raise(_client_error("NoSuchKey", "GetObject"))))

        with pytest.raises(StorageError) as exc_info:
            store.get_object("bucket", "prefix/results.json")

        assert exc_info.value.bucket == "bucket"
        assert exc_info.value.key == "prefix/results.json"


class TestAwsPriceCatalog:
    def test_filters_by_location(self) -> None:
        stub = _StubBoto()
        stub.paginators["get_products"] = _Paginator(
            [{"PriceList": ["{}", "{}"]}, {"PriceList": ["{}"]}]
        )

        products = AwsPriceCatalog(stub).get_products("AmazonBraket", "eu-west-2")

        assert len(products) == 3
        kwargs = stub.paginators["get_products"].kwargs
        assert kwargs["ServiceCode"] == "AmazonBraket"
        assert {"Type": "TERM_MATCH", "Field": "location", "Value": "EU (London)"} in (
            kwargs["Filters"]
        )


# =============================================================================
# Compiler
# =============================================================================


class TestOpenQASMCompiler:
    """Tests for the default compiler."""

    def test_source_passes_through(self) -> None:
        compiled = OpenQASMCompiler().optimize(
            BELL_QASM, descriptor_from_arn(SV1_ARN), SubmitOptions()
        )

        assert compiled.program == BELL_QASM
        doc = json.loads(compiled.action_document())
        assert doc == {
            "braketSchemaHeader": {"name": "braket.ir.openqasm.program", "version": "1"},
            "source": BELL_QASM,
        }

    def test_rejects_unknown_type(self) -> None:
        with pytest.raises(ValidationError, match="Cannot compile"):
            OpenQASMCompiler().optimize(42, descriptor_from_arn(SV1_ARN), SubmitOptions())

    def test_object_with_to_ir(self) -> None:
        pytest.importorskip("braket.circuits")
        circuit = SimpleNamespace(to_ir=lambda ir_type: SimpleNamespace(source="OPENQASM 3.0;"))

        compiled = OpenQASMCompiler().optimize(
            circuit, descriptor_from_arn(SV1_ARN), SubmitOptions()
        )

        assert compiled.circuit is circuit
        assert compiled.program == "OPENQASM 3.0;"

    def test_braket_circuit(self) -> None:
        circuits = pytest.importorskip("braket.circuits")
        bell = circuits.Circuit().h(0).cnot(0, 1)

        compiled = OpenQASMCompiler().optimize(
            bell, descriptor_from_arn(SV1_ARN), SubmitOptions()
        )

        assert isinstance(compiled, CompiledCircuit)
        assert compiled.program.startswith("OPENQASM 3.0;")
        assert "cnot" in compiled.program


class TestProtocols:
    def test_fakes_satisfy_protocols(self) -> None:
        assert isinstance(FakeComputeService(), ComputeServiceClient)
        assert isinstance(FakeObjectStore(), ObjectStoreClient)
        assert isinstance(FakePriceCatalog(), PriceCatalogClient)
