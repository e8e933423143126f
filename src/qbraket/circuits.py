# SPDX-License-Identifier: Apache-2.0
# SPDX-FileCopyrightText: 2026 qbraket

"""
Circuit introspection helpers.

The backend accepts several circuit representations and only needs a
few structural figures from them (qubit count, gate count, depth and
gate names) for validation, cost estimation and result metadata.

Supported inputs
----------------
- Amazon Braket SDK ``Circuit`` objects (``qubit_count``,
  ``instructions``, ``depth``), read by attribute so other objects with
  the same shape work too;
- OpenQASM 3 (or 2) source strings;
- plain mappings with ``num_qubits`` / ``gate_count`` / ``depth`` keys,
  which is what the CLI uses for estimates.
"""

from __future__ import annotations

import logging
import re
from typing import Any

from qbraket.utils import to_int


logger = logging.getLogger(__name__)

_QASM_QUBIT_DECL = re.compile(r"^\s*qubit\s*(?:\[\s*(\d+)\s*\])?\s*\w+\s*$")
_QASM_QREG_DECL = re.compile(r"^\s*qreg\s+\w+\s*\[\s*(\d+)\s*\]\s*$")
_QASM_PHYSICAL_QUBIT = re.compile(r"\$(\d+)")
_QASM_NON_GATE = (
    "openqasm",
    "include",
    "qubit",
    "bit",
    "qreg",
    "creg",
    "measure",
    "barrier",
    "reset",
    "input",
    "output",
    "gate",
    "def",
    "#pragma",
    "const",
    "int",
    "float",
    "angle",
)


def _statements(source: str) -> list[str]:
    lines = [line.split("//", 1)[0] for line in source.splitlines()]
    return [s.strip() for s in "\n".join(lines).split(";") if s.strip()]


def _qasm_gate_names(source: str) -> list[str]:
    names: list[str] = []
    for stmt in _statements(source):
        if "=" in stmt or "{" in stmt or "}" in stmt:
            continue
        head = re.split(r"[\s(\[]", stmt, maxsplit=1)[0].lower()
        if not head or head in _QASM_NON_GATE:
            continue
        names.append(head)
    return names


def _qasm_qubit_count(source: str) -> int | None:
    total = 0
    declared = False
    for stmt in _statements(source):
        m = _QASM_QUBIT_DECL.match(stmt) or _QASM_QREG_DECL.match(stmt)
        if m:
            declared = True
            total += int(m.group(1)) if m.group(1) else 1
    if declared:
        return total
    physical = [int(q) for q in _QASM_PHYSICAL_QUBIT.findall(source)]
    return max(physical) + 1 if physical else None


def qubit_count(circuit: Any) -> int | None:
    """
    Return the number of qubits of a circuit, or None if unknown.

    Examples
    --------
    >>> qubit_count("OPENQASM 3.0; qubit[2] q; h q[0]; cnot q[0], q[1];")
    2
    >>> qubit_count({"num_qubits": 5})
    5
    """
    if circuit is None:
        return None
    if isinstance(circuit, str):
        return _qasm_qubit_count(circuit)
    if isinstance(circuit, dict):
        return to_int(circuit.get("num_qubits", circuit.get("qubit_count")))
    for attr in ("qubit_count", "num_qubits"):
        value = getattr(circuit, attr, None)
        if value is not None:
            return to_int(value() if callable(value) else value)
    return None


def gate_names(circuit: Any) -> list[str]:
    """
    Return the lower-cased gate names of a circuit in program order.

    Measurement and declaration statements are not gates.
    """
    if circuit is None:
        return []
    if isinstance(circuit, str):
        return _qasm_gate_names(circuit)
    if isinstance(circuit, dict):
        gates = circuit.get("gates") or circuit.get("operations") or []
        return [str(g.get("name", g) if isinstance(g, dict) else g).lower() for g in gates]
    names: list[str] = []
    for instr in getattr(circuit, "instructions", None) or []:
        op = getattr(instr, "operator", None)
        name = getattr(op, "name", None) if op is not None else None
        if not isinstance(name, str) or not name:
            name = type(op if op is not None else instr).__name__
        names.append(name.lower())
    return names


def gate_count(circuit: Any) -> int | None:
    """
    Return the number of gate applications, or None if unknown.

    Examples
    --------
    >>> gate_count("OPENQASM 3.0; qubit[2] q; h q[0]; cnot q[0], q[1];")
    2
    """
    if circuit is None:
        return None
    if isinstance(circuit, dict):
        explicit = to_int(circuit.get("gate_count"))
        if explicit is not None:
            return explicit
        if "gates" not in circuit and "operations" not in circuit:
            return None
    elif not isinstance(circuit, str) and getattr(circuit, "instructions", None) is None:
        return None
    return len(gate_names(circuit))


def circuit_depth(circuit: Any) -> int | None:
    """Return the circuit depth when the representation provides it."""
    if isinstance(circuit, dict):
        return to_int(circuit.get("depth"))
    if circuit is None or isinstance(circuit, str):
        return None
    value = getattr(circuit, "depth", None)
    return to_int(value() if callable(value) else value)


def summarize_circuit(circuit: Any) -> dict[str, Any]:
    """
    Collect the structural figures of a circuit.

    Returns
    -------
    dict
        ``num_qubits``, ``gate_count`` and ``depth`` for the values that
        are known.
    """
    summary = {
        "num_qubits": qubit_count(circuit),
        "gate_count": gate_count(circuit),
        "depth": circuit_depth(circuit),
    }
    return {k: v for k, v in summary.items() if v is not None}
