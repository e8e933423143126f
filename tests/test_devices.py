# SPDX-License-Identifier: Apache-2.0
# SPDX-FileCopyrightText: 2026 qbraket

"""Tests for device descriptors and circuit introspection."""

from __future__ import annotations

from types import SimpleNamespace

from qbraket.circuits import (
    circuit_depth,
    gate_count,
    gate_names,
    qubit_count,
    summarize_circuit,
)
from qbraket.config import SV1_ARN
from qbraket.devices import (
    descriptor_from_arn,
    device_cost,
    parse_device,
    parse_device_arn,
    parse_queue_status,
    validate_circuit,
)
from qbraket.types import CostHint, DeviceKind, DeviceStatus, PricingUnit

from conftest import ANKAA_ARN, BELL_QASM, DEVICES, FORTE_ARN


# =============================================================================
# Circuits
# =============================================================================


class TestCircuitIntrospection:
    """Tests for structural figures of supported circuit inputs."""

    def test_openqasm(self) -> None:
        assert qubit_count(BELL_QASM) == 2
        assert gate_names(BELL_QASM) == ["h", "cnot"]
        assert gate_count(BELL_QASM) == 2
        assert circuit_depth(BELL_QASM) is None

    def test_openqasm_physical_qubits(self) -> None:
        source = "OPENQASM 3.0;\nrx(0.5) $0;\ncz $0, $4;\n"
        assert qubit_count(source) == 5
        assert gate_names(source) == ["rx", "cz"]

    def test_openqasm2_registers(self) -> None:
        source = 'OPENQASM 2.0;\ninclude "qelib1.inc";\nqreg q[3];\ncreg c[3];\nx q[0];\n'
        assert qubit_count(source) == 3
        assert gate_names(source) == ["x"]

    def test_comments_are_ignored(self) -> None:
        source = "OPENQASM 3.0;\nqubit[1] q;\n// h q[0];\nx q[0];\n"
        assert gate_names(source) == ["x"]

    def test_summary_mapping(self) -> None:
        summary = {"num_qubits": 4, "gate_count": 12, "depth": 5}

        assert qubit_count(summary) == 4
        assert gate_count(summary) == 12
        assert summarize_circuit(summary) == summary

    def test_mapping_without_gates(self) -> None:
        assert gate_count({"num_qubits": 3}) is None
        assert summarize_circuit({"num_qubits": 3}) == {"num_qubits": 3}

    def test_circuit_like_object(self) -> None:
        circuit = SimpleNamespace(
            qubit_count=2,
            depth=2,
            instructions=[
                SimpleNamespace(operator=SimpleNamespace(name="H")),
                SimpleNamespace(operator=SimpleNamespace(name="CNot")),
            ],
        )

        assert gate_names(circuit) == ["h", "cnot"]
        assert summarize_circuit(circuit) == {"num_qubits": 2, "gate_count": 2, "depth": 2}

    def test_unknown_object(self) -> None:
        assert summarize_circuit(object()) == {}


# =============================================================================
# Devices
# =============================================================================


class TestDeviceArn:
    def test_qpu(self) -> None:
        parsed = parse_device_arn(FORTE_ARN)

        assert parsed.kind is DeviceKind.QPU
        assert parsed.provider == "ionq"
        assert parsed.name == "Forte-1"
        assert parsed.region == "us-east-1"

    def test_simulator(self) -> None:
        parsed = parse_device_arn(SV1_ARN)

        assert parsed.kind is DeviceKind.SIMULATOR
        assert parsed.region is None

    def test_not_a_device(self) -> None:
        assert parse_device_arn("arn:aws:s3:::bucket") is None
        assert parse_device_arn("") is None

    def test_descriptor_from_arn(self) -> None:
        descriptor = descriptor_from_arn(SV1_ARN)

        assert descriptor.is_simulator
        assert descriptor.name == "sv1"
        assert descriptor.cost_hint is None


class TestParseDevice:
    """Tests for GetDevice record conversion."""

    def test_qpu_record(self) -> None:
        device = parse_device(DEVICES[FORTE_ARN])

        assert device.arn == FORTE_ARN
        assert device.name == "Forte 1"
        assert device.status is DeviceStatus.ONLINE
        assert device.kind is DeviceKind.QPU
        assert device.provider == "IonQ"
        assert device.qubit_count == 36
        assert "cnot" in device.native_gates
        assert device.fully_connected
        assert device.cost_hint == CostHint(0.08, PricingUnit.PER_SHOT)

    def test_simulator_record(self) -> None:
        device = parse_device(DEVICES[SV1_ARN])

        assert device.is_simulator
        assert device.cost_hint == CostHint(0.075, PricingUnit.PER_MINUTE)

    def test_record_without_cost(self) -> None:
        device = parse_device(DEVICES[ANKAA_ARN])

        assert device.status is DeviceStatus.OFFLINE
        assert device.cost_hint is None
        assert device_cost(device) is None

    def test_unknown_status_and_bad_capabilities(self) -> None:
        device = parse_device(
            {
                "deviceArn": "arn:x",
                "deviceStatus": "MAINTENANCE",
                "deviceCapabilities": "{not json",
            }
        )

        assert device.status is DeviceStatus.UNKNOWN
        assert device.kind is DeviceKind.QPU
        assert device.capabilities == {}

    def test_to_dict(self) -> None:
        d = parse_device(DEVICES[FORTE_ARN]).to_dict()

        assert d["status"] == "online"
        assert d["cost_hint"] == {"price": 0.08, "unit": "per-shot"}


class TestQueueStatus:
    def test_queue_entries(self) -> None:
        status = parse_queue_status(FORTE_ARN, DEVICES[FORTE_ARN]["deviceQueueInfo"])

        assert status.normal_tasks == 13
        assert status.priority_tasks == 0
        assert status.jobs == 2

    def test_no_entries(self) -> None:
        status = parse_queue_status(FORTE_ARN, None)
        assert status.normal_tasks is None and status.jobs is None


class TestValidateCircuit:
    """Tests for capability checks."""

    def test_supported(self) -> None:
        check = validate_circuit(BELL_QASM, parse_device(DEVICES[FORTE_ARN]))

        assert check.valid
        assert check.issues == []

    def test_unsupported_gates(self) -> None:
        ankaa = parse_device(DEVICES[ANKAA_ARN])
        check = validate_circuit(BELL_QASM, ankaa)

        assert not check.valid
        assert check.unsupported_gates == ["h", "cnot"]

    def test_too_many_qubits(self) -> None:
        check = validate_circuit({"num_qubits": 40}, parse_device(DEVICES[FORTE_ARN]))

        assert not check.valid
        assert "40 qubits" in check.issues[0]

    def test_unadvertised_capabilities_skip_checks(self) -> None:
        check = validate_circuit(BELL_QASM, descriptor_from_arn(FORTE_ARN))
        assert check.valid
