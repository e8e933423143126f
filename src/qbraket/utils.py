# SPDX-License-Identifier: Apache-2.0
# SPDX-FileCopyrightText: 2026 qbraket

"""
Common utilities.

This module provides small, shared utility functions:
- Identifier generation (ULID based job and batch ids)
- Safe conversions for loosely typed service payloads
"""

from __future__ import annotations

import json
from typing import Any


JOB_ID_PREFIX = "braket-"
BATCH_ID_PREFIX = "batch-"


def generate_ulid() -> str:
    """
    Generate a ULID string.

    Returns
    -------
    str
        A new ULID as a 26-character Crockford Base32 string.
    """
    from ulid import ULID

    return str(ULID())


def new_job_id() -> str:
    """
    Generate a local job identifier.

    Examples
    --------
    >>> new_job_id().startswith("braket-")
    True
    """
    return f"{JOB_ID_PREFIX}{generate_ulid()}"


def new_batch_id() -> str:
    return f"{BATCH_ID_PREFIX}{generate_ulid()}"


def to_float(x: Any) -> float | None:
    """
    Convert to float, returning None on failure.

    Parameters
    ----------
    x : Any
        Value to convert.

    Returns
    -------
    float or None
        Float value or None if conversion fails.
    """
    if x is None:
        return None
    try:
        return float(x)
    except (ValueError, TypeError):
        return None


def to_int(x: Any) -> int | None:
    """Convert to int, returning None on failure."""
    if x is None or isinstance(x, bool):
        return None
    try:
        return int(x)
    except (ValueError, TypeError):
        return None


def is_int(x: Any) -> bool:
    """True for a real integer; booleans are rejected."""
    return isinstance(x, int) and not isinstance(x, bool)


def get_nested(obj: Any, path: tuple[str, ...]) -> Any:
    """
    Get a nested value supporting both attribute and dict-style access.

    Parameters
    ----------
    obj : Any
        Object or dict to traverse.
    path : tuple of str
        Sequence of keys/attributes.

    Returns
    -------
    Any
        Nested value, or None if any key is missing.

    Examples
    --------
    >>> get_nested({"service": {"deviceCost": {"price": 0.3}}}, ("service", "deviceCost", "price"))
    0.3
    """
    cur: Any = obj
    for key in path:
        if cur is None:
            return None
        if isinstance(cur, dict):
            cur = cur.get(key)
        else:
            cur = getattr(cur, key, None)
    return cur


def load_json_document(raw: Any) -> Any:
    """
    Decode a JSON document that may already be decoded.

    Braket returns some documents (device capabilities, price list
    entries) as JSON strings and others as parsed objects.

    Raises
    ------
    ValueError
        If ``raw`` is text that is not valid JSON.
    """
    if isinstance(raw, (bytes, bytearray)):
        raw = raw.decode("utf-8")
    if isinstance(raw, str):
        return json.loads(raw)
    return raw
