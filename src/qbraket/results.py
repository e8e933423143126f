# SPDX-License-Identifier: Apache-2.0
# SPDX-FileCopyrightText: 2026 qbraket

"""
Result normalization for Braket task results.

Braket devices report measurements in one of two shapes:

- per-shot samples (``measurements``: one bit vector per shot), typical
  for gate-based QPUs and the state-vector simulators;
- aggregated tables (``measurementProbabilities`` keyed by bitstring,
  or ``measurementCounts``), typical for some hardware providers.

Both are converted into a :class:`~qbraket.types.MeasurementResult`
keyed by integer outcome index.

Notes
-----
Braket uses big-endian bit ordering (qubit 0 = leftmost bit). The same
convention is applied to bit vectors and to bitstrings, so the vector
``[1, 0]`` and the bitstring ``"10"`` both map to index 2.

Converting probabilities to frequencies rounds each outcome
independently, half up. The frequency total may therefore differ from
the nominal shot count by at most the number of distinct outcomes.
"""

from __future__ import annotations

import json
import logging
import math
from collections import Counter
from dataclasses import dataclass
from typing import Any, Sequence

import numpy as np

from qbraket.errors import FormatError, StorageError
from qbraket.types import MeasurementResult, Outcome, ResultSource
from qbraket.utils import is_int, to_int


logger = logging.getLogger(__name__)

# Largest register for which the dense probability vector is built.
MAX_DENSE_QUBITS = 20

# Bit vectors wider than this are indexed with Python ints.
_INT64_BITS = 62

_PROBABILITY_TOLERANCE = 1e-9


# =============================================================================
# Bit indexing
# =============================================================================


def bits_to_index(bits: Sequence[int]) -> int:
    """
    Convert a big-endian bit vector to an outcome index.

    Examples
    --------
    >>> bits_to_index([1, 1])
    3
    >>> bits_to_index([1, 0, 0])
    4
    """
    index = 0
    for bit in bits:
        if bit not in (0, 1):
            raise FormatError(f"Invalid measurement bit {bit!r}")
        index = (index << 1) | int(bit)
    return index


def bitstring_to_index(bitstring: str) -> int:
    """
    Convert a big-endian bitstring to an outcome index.

    Examples
    --------
    >>> bitstring_to_index("011")
    3
    >>> bitstring_to_index("10")
    2
    """
    if not bitstring or any(c not in "01" for c in bitstring):
        raise FormatError(f"Invalid bitstring {bitstring!r}")
    return int(bitstring, 2)


def index_to_bitstring(index: int, num_bits: int) -> str:
    """
    Convert an outcome index to a big-endian bitstring of ``num_bits``.

    Examples
    --------
    >>> index_to_bitstring(3, 2)
    '11'
    >>> index_to_bitstring(1, 3)
    '001'
    """
    if index < 0 or index >= (1 << num_bits):
        raise ValueError(f"Index {index} out of range for {num_bits} bits")
    return format(index, f"0{num_bits}b") if num_bits > 0 else ""


def counts_by_bitstring(result: MeasurementResult) -> dict[str, int]:
    """
    Express the frequency table of a result with bitstring keys.

    Examples
    --------
    >>> counts_by_bitstring(result)  # 2 qubits, {0: 4, 3: 6}
    {'00': 4, '11': 6}
    """
    n = result.num_qubits
    return {
        index_to_bitstring(index, n): count
        for index, count in sorted(result.frequencies.items())
    }


# =============================================================================
# Format detection
# =============================================================================


def detect_format(payload: dict[str, Any]) -> ResultSource:
    """
    Determine which payload shape a result document has.

    Parameters
    ----------
    payload : dict
        Decoded result document.

    Returns
    -------
    ResultSource
        ``SAMPLE_DERIVED`` when per-shot measurements are present,
        ``PROBABILITY_DERIVED`` when only an aggregated table is present.

    Raises
    ------
    FormatError
        If neither shape is present, or a present field has the wrong type.
    """
    for key in ("measurementProbabilities", "measurementCounts"):
        if payload.get(key) is not None and not isinstance(payload[key], dict):
            raise FormatError(
                f"'{key}' must be an object, got {type(payload[key]).__name__}"
            )
    qubits = payload.get("measuredQubits")
    if qubits is not None and not (
        isinstance(qubits, list) and all(is_int(q) for q in qubits)
    ):
        raise FormatError("'measuredQubits' must be a list of integers")

    measurements = payload.get("measurements")
    if measurements is not None:
        if not (
            isinstance(measurements, list)
            and all(isinstance(row, list) for row in measurements)
        ):
            raise FormatError("'measurements' must be a list of bit lists")
        return ResultSource.SAMPLE_DERIVED
    if (
        payload.get("measurementProbabilities") is not None
        or payload.get("measurementCounts") is not None
    ):
        return ResultSource.PROBABILITY_DERIVED
    raise FormatError(
        "Unknown result format: expected 'measurements', "
        "'measurementProbabilities' or 'measurementCounts'"
    )


# =============================================================================
# Conversions
# =============================================================================


def from_samples(
    measurements: Sequence[Sequence[int]],
    *,
    measured_qubits: Sequence[int] | None = None,
    device_probabilities: dict[str, float] | None = None,
) -> MeasurementResult:
    """
    Build a result from per-shot bit vectors.

    Parameters
    ----------
    measurements : sequence of sequence of int
        One big-endian bit vector per shot.
    measured_qubits : sequence of int, optional
        Qubit indices of the vector positions. Defaults to
        ``range(width)``.
    device_probabilities : dict, optional
        Device-reported bitstring probabilities. When given they fill
        the probability vector instead of the observed frequencies.

    Returns
    -------
    MeasurementResult
        Frequencies sum exactly to the number of shots.

    Raises
    ------
    FormatError
        If the sample list is empty, ragged, or contains non-binary values.
    """
    if len(measurements) == 0:
        raise FormatError("Measurement list is empty")
    try:
        arr = np.asarray(measurements)
    except (ValueError, TypeError) as e:
        raise FormatError("Measurement list is not a rectangular bit matrix", cause=e) from e
    if arr.ndim != 2:
        raise FormatError("Measurement list is not a rectangular bit matrix")
    if arr.dtype.kind not in "iub" or not np.isin(arr, (0, 1)).all():
        raise FormatError("Measurement list contains values other than 0 and 1")
    arr = arr.astype(np.int64)

    shots, width = arr.shape
    qubits = _measured_qubits(measured_qubits, width)
    indices = _sample_indices(arr)

    frequencies = dict(sorted(Counter(indices).items()))
    probabilities = {index: count / shots for index, count in frequencies.items()}

    vector_source: dict[int, float] = probabilities
    if device_probabilities:
        try:
            vector_source = _probability_table(device_probabilities, width)
        except FormatError as e:
            logger.debug("Ignoring device-reported probabilities: %s", e)
    vector = _dense_vector(vector_source, width)

    return MeasurementResult(
        frequencies=frequencies,
        probabilities=probabilities,
        outcomes=indices,
        shot_count=shots,
        measured_qubits=qubits,
        source=ResultSource.SAMPLE_DERIVED,
        probability_vector=vector,
    )


def from_probabilities(
    probabilities: dict[str, float],
    shots: int,
    *,
    measured_qubits: Sequence[int] | None = None,
    rng: np.random.Generator | None = None,
) -> MeasurementResult:
    """
    Build a result from a bitstring probability table.

    Parameters
    ----------
    probabilities : dict
        Bitstring -> probability.
    shots : int
        Nominal shot count used to scale probabilities to frequencies.
    measured_qubits : sequence of int, optional
        Qubit indices of the bitstring positions.
    rng : numpy.random.Generator, optional
        Source of randomness for the reconstructed outcome order.

    Returns
    -------
    MeasurementResult
        Frequencies are ``round(p * shots)`` per outcome; probabilities
        are the input values unchanged.

    Raises
    ------
    FormatError
        If keys are not equal-length bitstrings, probabilities fall
        outside [0, 1], or ``shots`` is not positive.
    """
    if shots is None or shots <= 0:
        raise FormatError(f"Shot count must be positive, got {shots!r}")
    width = _table_width(probabilities)
    table = _probability_table(probabilities, width)

    frequencies = {
        index: _round_half_up(p * shots) for index, p in sorted(table.items())
    }
    frequencies = {index: f for index, f in frequencies.items() if f > 0}

    return MeasurementResult(
        frequencies=frequencies,
        probabilities=dict(sorted(table.items())),
        outcomes=_shuffled_outcomes(frequencies, rng),
        shot_count=shots,
        measured_qubits=_measured_qubits(measured_qubits, width),
        source=ResultSource.PROBABILITY_DERIVED,
        probability_vector=_dense_vector(table, width),
    )


def from_counts(
    counts: dict[str, int],
    *,
    measured_qubits: Sequence[int] | None = None,
    rng: np.random.Generator | None = None,
) -> MeasurementResult:
    """
    Build a result from a bitstring count table.

    Counts are exact, so no rounding takes place. The result is tagged
    probability-derived because the per-shot order is unknown.

    Raises
    ------
    FormatError
        If keys are not equal-length bitstrings or counts are negative.
    """
    width = _table_width(counts)
    frequencies: dict[int, int] = {}
    for key, value in counts.items():
        count = to_int(value)
        if count is None or count < 0:
            raise FormatError(f"Invalid count {value!r} for outcome {key!r}")
        if count:
            index = bitstring_to_index(key)
            frequencies[index] = frequencies.get(index, 0) + count
    total = sum(frequencies.values())
    if total <= 0:
        raise FormatError("Count table is empty")

    frequencies = dict(sorted(frequencies.items()))
    probabilities = {index: c / total for index, c in frequencies.items()}
    return MeasurementResult(
        frequencies=frequencies,
        probabilities=probabilities,
        outcomes=_shuffled_outcomes(frequencies, rng),
        shot_count=total,
        measured_qubits=_measured_qubits(measured_qubits, width),
        source=ResultSource.PROBABILITY_DERIVED,
        probability_vector=_dense_vector(probabilities, width),
    )


def normalize_result(
    payload: dict[str, Any],
    *,
    shots: int | None = None,
    rng: np.random.Generator | None = None,
) -> Outcome[MeasurementResult]:
    """
    Convert a decoded Braket result document to canonical form.

    Parameters
    ----------
    payload : dict
        Decoded ``results.json`` document (camelCase keys).
    shots : int, optional
        Nominal shot count of the submission. Used for probability
        tables; falls back to ``taskMetadata.shots``.
    rng : numpy.random.Generator, optional
        Randomness for reconstructed outcome sequences.

    Returns
    -------
    Outcome
        The measurement result, or a :class:`FormatError`.
    """
    try:
        source = detect_format(payload)
        measured_qubits = payload.get("measuredQubits")

        if source is ResultSource.SAMPLE_DERIVED:
            result = from_samples(
                payload["measurements"],
                measured_qubits=measured_qubits,
                device_probabilities=payload.get("measurementProbabilities"),
            )
            if shots is not None and shots != result.shot_count:
                logger.debug(
                    "Sample count %d differs from requested shots %d",
                    result.shot_count,
                    shots,
                )
        elif payload.get("measurementProbabilities") is not None:
            nominal = shots
            if nominal is None:
                nominal = to_int((payload.get("taskMetadata") or {}).get("shots"))
            result = from_probabilities(
                payload["measurementProbabilities"],
                nominal,
                measured_qubits=measured_qubits,
                rng=rng,
            )
        else:
            result = from_counts(
                payload["measurementCounts"],
                measured_qubits=measured_qubits,
                rng=rng,
            )
    except FormatError as e:
        return Outcome.failure(e)

    logger.debug(
        "Normalized %s result: %d outcomes over %d shots",
        result.source.value,
        len(result.frequencies),
        result.shot_count,
    )
    return Outcome.success(result)


# =============================================================================
# Payload and location parsing
# =============================================================================


@dataclass(frozen=True)
class ResultLocation:
    """S3 location of a task's output."""

    bucket: str
    key_prefix: str

    @property
    def results_key(self) -> str:
        return f"{self.key_prefix}/results.json"

    @property
    def task_metadata_key(self) -> str:
        return f"{self.key_prefix}/task-metadata.json"

    @property
    def uri(self) -> str:
        return f"s3://{self.bucket}/{self.key_prefix}"

    def to_dict(self) -> dict[str, str]:
        return {
            "bucket": self.bucket,
            "key_prefix": self.key_prefix,
            "results_key": self.results_key,
            "task_metadata_key": self.task_metadata_key,
        }


def parse_result_location(task: dict[str, Any]) -> ResultLocation:
    """
    Extract the output location from a ``GetQuantumTask`` response.

    Raises
    ------
    StorageError
        If the response carries no output bucket or directory.
    """
    bucket = task.get("outputS3Bucket")
    directory = task.get("outputS3Directory")
    if not bucket or not directory:
        raise StorageError(
            "Task metadata has no output location",
            task_arn=task.get("quantumTaskArn"),
        )
    return ResultLocation(bucket=str(bucket), key_prefix=str(directory).rstrip("/"))


def parse_result_payload(raw: bytes | str | dict[str, Any]) -> dict[str, Any]:
    """
    Decode a ``results.json`` document.

    Raises
    ------
    FormatError
        If the document is not a JSON object.
    """
    if isinstance(raw, dict):
        return raw
    try:
        if isinstance(raw, (bytes, bytearray)):
            raw = raw.decode("utf-8")
        doc = json.loads(raw)
    except ValueError as e:
        raise FormatError("Result document is not valid JSON", cause=e) from e
    if not isinstance(doc, dict):
        raise FormatError(
            f"Result document must be a JSON object, got {type(doc).__name__}"
        )
    return doc


# =============================================================================
# Helpers
# =============================================================================


def _round_half_up(x: float) -> int:
    return int(math.floor(x + 0.5))


def _sample_indices(arr: np.ndarray) -> list[int]:
    width = arr.shape[1]
    if width <= _INT64_BITS:
        weights = np.left_shift(
            np.int64(1), np.arange(width - 1, -1, -1, dtype=np.int64)
        )
        return [int(i) for i in arr @ weights]
    return [bits_to_index(row) for row in arr.tolist()]


def _measured_qubits(measured_qubits: Sequence[int] | None, width: int) -> list[int]:
    if measured_qubits is None:
        return list(range(width))
    qubits = [int(q) for q in measured_qubits]
    if len(qubits) != width:
        raise FormatError(
            f"measuredQubits lists {len(qubits)} qubits but outcomes have {width} bits"
        )
    return qubits


def _table_width(table: dict[str, Any]) -> int:
    if not table:
        raise FormatError("Outcome table is empty")
    widths = {len(str(key)) for key in table}
    if len(widths) != 1:
        raise FormatError("Outcome table keys have different lengths")
    return widths.pop()


def _probability_table(table: dict[str, Any], width: int) -> dict[int, float]:
    out: dict[int, float] = {}
    for key, value in table.items():
        key = str(key)
        if len(key) != width:
            raise FormatError(f"Bitstring {key!r} does not have {width} bits")
        try:
            p = float(value)
        except (TypeError, ValueError) as e:
            raise FormatError(f"Invalid probability {value!r} for {key!r}", cause=e) from e
        if not (-_PROBABILITY_TOLERANCE <= p <= 1.0 + _PROBABILITY_TOLERANCE):
            raise FormatError(f"Probability {p} for {key!r} is outside [0, 1]")
        index = bitstring_to_index(key)
        out[index] = out.get(index, 0.0) + p
    return out


def _dense_vector(table: dict[int, float], width: int) -> list[float] | None:
    if width > MAX_DENSE_QUBITS:
        logger.debug("Skipping dense probability vector for %d qubits", width)
        return None
    vector = np.zeros(1 << width, dtype=np.float64)
    for index, p in table.items():
        vector[index] = p
    return vector.tolist()


def _shuffled_outcomes(
    frequencies: dict[int, int], rng: np.random.Generator | None
) -> list[int]:
    if not frequencies:
        return []
    rng = rng if rng is not None else np.random.default_rng()
    indices = np.array(list(frequencies.keys()), dtype=object)
    repeated = np.repeat(indices, list(frequencies.values()))
    return [int(i) for i in rng.permutation(repeated)]
