# SPDX-License-Identifier: Apache-2.0
# SPDX-FileCopyrightText: 2026 qbraket

"""
Device descriptors.

Converts Braket ``GetDevice`` / ``SearchDevices`` records into
:class:`~qbraket.types.DeviceDescriptor` objects and provides the small
amount of device logic the backend needs: ARN parsing, embedded cost
hints, queue depth and circuit validation against device capabilities.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Any

from qbraket.circuits import gate_names, qubit_count
from qbraket.types import (
    CostHint,
    DeviceDescriptor,
    DeviceKind,
    DeviceStatus,
    PricingUnit,
    QueueStatus,
)
from qbraket.utils import get_nested, load_json_document, to_float, to_int


logger = logging.getLogger(__name__)

OPENQASM_ACTION = "braket.ir.openqasm.program"

_STATUS = {
    "ONLINE": DeviceStatus.ONLINE,
    "OFFLINE": DeviceStatus.OFFLINE,
    "RETIRED": DeviceStatus.RETIRED,
}

_KIND = {
    "QPU": DeviceKind.QPU,
    "SIMULATOR": DeviceKind.SIMULATOR,
}

_COST_UNITS = {
    "shot": PricingUnit.PER_SHOT,
    "minute": PricingUnit.PER_MINUTE,
}


@dataclass(frozen=True)
class DeviceArn:
    """Components of a Braket device ARN."""

    arn: str
    kind: DeviceKind
    provider: str
    name: str
    region: str | None = None


def parse_device_arn(device_arn: str | None) -> DeviceArn | None:
    """
    Split a device ARN into its components.

    Parameters
    ----------
    device_arn : str
        ARN such as ``arn:aws:braket:us-east-1::device/qpu/ionq/Aria-1``.

    Returns
    -------
    DeviceArn or None
        None when the ARN does not have the ``device/<kind>/<provider>/<name>``
        resource path.

    Examples
    --------
    >>> parse_device_arn("arn:aws:braket:::device/quantum-simulator/amazon/sv1").kind
    <DeviceKind.SIMULATOR: 'simulator'>
    """
    if not device_arn:
        return None
    parts = device_arn.split(":")
    if len(parts) < 6 or parts[0] != "arn":
        return None
    path = parts[-1].split("/")
    if len(path) < 4 or path[0] != "device":
        return None
    kind = DeviceKind.SIMULATOR if "simulator" in path[1] else DeviceKind.QPU
    return DeviceArn(
        arn=device_arn,
        kind=kind,
        provider=path[2],
        name="/".join(path[3:]),
        region=parts[3] or None,
    )


def device_cost(source: DeviceDescriptor | dict[str, Any] | None) -> CostHint | None:
    """
    Extract the ``service.deviceCost`` hint.

    Parameters
    ----------
    source : DeviceDescriptor or dict
        A descriptor, or a parsed capabilities document.

    Returns
    -------
    CostHint or None
        None when no usable price/unit pair is advertised.
    """
    if source is None:
        return None
    if isinstance(source, DeviceDescriptor):
        if source.cost_hint is not None:
            return source.cost_hint
        source = source.capabilities
    price = to_float(get_nested(source, ("service", "deviceCost", "price")))
    unit = _COST_UNITS.get(
        str(get_nested(source, ("service", "deviceCost", "unit")) or "").lower()
    )
    if price is None or unit is None:
        return None
    return CostHint(price=price, unit=unit)


def parse_capabilities(raw: Any) -> dict[str, Any]:
    """Decode a ``deviceCapabilities`` document; malformed input yields {}."""
    if raw is None:
        return {}
    try:
        doc = load_json_document(raw)
    except ValueError as e:
        logger.warning("Ignoring malformed device capabilities: %s", e)
        return {}
    return doc if isinstance(doc, dict) else {}


def parse_device(raw: dict[str, Any]) -> DeviceDescriptor:
    """
    Convert a Braket device record into a descriptor.

    Parameters
    ----------
    raw : dict
        ``GetDevice`` response or a ``SearchDevices`` summary.

    Returns
    -------
    DeviceDescriptor
        Unknown statuses map to ``UNKNOWN``; unknown types default to QPU.
    """
    arn = str(raw.get("deviceArn") or raw.get("arn") or "")
    capabilities = parse_capabilities(raw.get("deviceCapabilities"))

    operations = get_nested(
        capabilities, ("action", OPENQASM_ACTION, "supportedOperations")
    )
    native_gates = tuple(str(op).lower() for op in operations or ())

    connectivity = get_nested(capabilities, ("paradigm", "connectivity")) or {}
    graph = connectivity.get("connectivityGraph") if isinstance(connectivity, dict) else None

    queue_info = raw.get("deviceQueueInfo") or ()
    if isinstance(queue_info, dict):
        queue_info = (queue_info,)

    return DeviceDescriptor(
        arn=arn,
        name=str(raw.get("deviceName") or ""),
        status=_STATUS.get(str(raw.get("deviceStatus") or "").upper(), DeviceStatus.UNKNOWN),
        kind=_KIND.get(str(raw.get("deviceType") or "").upper(), DeviceKind.QPU),
        provider=str(raw.get("providerName") or ""),
        native_gates=native_gates,
        qubit_count=to_int(get_nested(capabilities, ("paradigm", "qubitCount"))),
        connectivity=graph or None,
        fully_connected=bool(connectivity.get("fullyConnected", False))
        if isinstance(connectivity, dict)
        else False,
        cost_hint=device_cost(capabilities),
        queue_info=tuple(dict(q) for q in queue_info),
        capabilities=capabilities,
    )


def descriptor_from_arn(device_arn: str) -> DeviceDescriptor:
    """
    Build a minimal descriptor for a device known only by ARN.

    Used for the configured default device before any lookup.
    """
    parsed = parse_device_arn(device_arn)
    if parsed is None:
        return DeviceDescriptor(arn=device_arn, name=device_arn)
    return DeviceDescriptor(
        arn=device_arn,
        name=parsed.name,
        kind=parsed.kind,
        provider=parsed.provider,
    )


def parse_queue_status(device_arn: str, queue_info: Any) -> QueueStatus:
    """
    Summarize ``deviceQueueInfo`` entries.

    Entries have ``queue`` ("QUANTUM_TASKS_QUEUE" or "JOBS_QUEUE"),
    ``queueSize`` (a string) and, for task queues, ``queuePriority``.
    """
    if isinstance(queue_info, dict):
        queue_info = [queue_info]
    normal = priority = jobs = None
    for entry in queue_info or ():
        size = to_int(entry.get("queueSize"))
        queue = str(entry.get("queue") or entry.get("queueType") or "").upper()
        if queue == "JOBS_QUEUE":
            jobs = size
        elif str(entry.get("queuePriority") or "").lower() == "priority":
            priority = size
        else:
            normal = size
    return QueueStatus(
        device_arn=device_arn,
        normal_tasks=normal,
        priority_tasks=priority,
        jobs=jobs,
    )


@dataclass
class CircuitValidation:
    """Outcome of checking a circuit against a device."""

    valid: bool
    device_arn: str
    num_qubits: int | None = None
    max_qubits: int | None = None
    unsupported_gates: list[str] = field(default_factory=list)
    issues: list[str] = field(default_factory=list)

    def to_dict(self) -> dict[str, Any]:
        return {
            "valid": self.valid,
            "device_arn": self.device_arn,
            "num_qubits": self.num_qubits,
            "max_qubits": self.max_qubits,
            "unsupported_gates": list(self.unsupported_gates),
            "issues": list(self.issues),
        }


def validate_circuit(circuit: Any, device: DeviceDescriptor) -> CircuitValidation:
    """
    Check a circuit against a device's qubit count and native gate set.

    Checks are skipped for figures the device does not advertise.

    Parameters
    ----------
    circuit : Any
        Braket circuit, OpenQASM source or summary mapping.
    device : DeviceDescriptor
        Target device.

    Returns
    -------
    CircuitValidation
        ``valid`` is False when any issue was found.
    """
    issues: list[str] = []
    n = qubit_count(circuit)
    if n is not None and device.qubit_count is not None and n > device.qubit_count:
        issues.append(
            f"Circuit uses {n} qubits but device supports {device.qubit_count}"
        )

    unsupported: list[str] = []
    if device.native_gates:
        native = set(device.native_gates)
        for name in gate_names(circuit):
            if name not in native and name not in unsupported:
                unsupported.append(name)
        if unsupported:
            issues.append(f"Unsupported gates: {', '.join(unsupported)}")

    return CircuitValidation(
        valid=not issues,
        device_arn=device.arn,
        num_qubits=n,
        max_qubits=device.qubit_count,
        unsupported_gates=unsupported,
        issues=issues,
    )
