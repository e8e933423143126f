# SPDX-License-Identifier: Apache-2.0
# SPDX-FileCopyrightText: 2026 qbraket

"""
Backend configuration.

:class:`BackendConfig` is an immutable, validated snapshot of every
setting a :class:`~qbraket.backend.BraketBackend` needs. Validation runs
in ``__post_init__`` so an invalid configuration never reaches client
construction.

Environment Variables
---------------------
QBRAKET_S3_BUCKET
    Bucket receiving task results (required).
QBRAKET_REGION
    AWS region of the Braket service. Default ``us-east-1``.
QBRAKET_SHOTS
    Default shot count. Default ``1000``.
QBRAKET_MAX_PARALLEL_SHOTS
    Batch dispatch window size. Default ``10``.
QBRAKET_S3_KEY_PREFIX
    Key prefix for task output. Default ``braket-results/``.
QBRAKET_DEVICE_ARN
    Initially selected device. Default is the SV1 simulator.
QBRAKET_DEVICE_TYPE
    ``simulator`` or ``qpu``.
AWS_PROFILE
    Named profile for the boto3 session.
"""

from __future__ import annotations

import dataclasses
import os
from dataclasses import dataclass
from typing import Any

from qbraket.errors import ValidationError


ENV_S3_BUCKET = "QBRAKET_S3_BUCKET"
ENV_REGION = "QBRAKET_REGION"
ENV_SHOTS = "QBRAKET_SHOTS"
ENV_MAX_PARALLEL_SHOTS = "QBRAKET_MAX_PARALLEL_SHOTS"
ENV_S3_KEY_PREFIX = "QBRAKET_S3_KEY_PREFIX"
ENV_DEVICE_ARN = "QBRAKET_DEVICE_ARN"
ENV_DEVICE_TYPE = "QBRAKET_DEVICE_TYPE"
ENV_AWS_PROFILE = "AWS_PROFILE"

DEFAULT_REGION = "us-east-1"
DEFAULT_SHOTS = 1000
DEFAULT_MAX_PARALLEL_SHOTS = 10
DEFAULT_S3_KEY_PREFIX = "braket-results/"
DEFAULT_PRICING_TTL_SECONDS = 24 * 60 * 60

SV1_ARN = "arn:aws:braket:::device/quantum-simulator/amazon/sv1"
DM1_ARN = "arn:aws:braket:::device/quantum-simulator/amazon/dm1"
TN1_ARN = "arn:aws:braket:::device/quantum-simulator/amazon/tn1"

DEVICE_TYPES = ("simulator", "qpu")


@dataclass(frozen=True)
class BackendConfig:
    """
    Configuration for a Braket backend instance.

    Parameters
    ----------
    s3_bucket : str
        Bucket where the service writes task results. Required.
    region : str, optional
        AWS region of the Braket service. Default is "us-east-1".
    shots : int, optional
        Shot count used when a submission does not specify one.
        Default is 1000.
    max_parallel_shots : int, optional
        Number of circuits dispatched per batch window. Default is 10.
    s3_key_prefix : str, optional
        Prefix for task output keys. Default is "braket-results/".
    device_arn : str, optional
        Device selected when the backend is created. Default is SV1.
    device_type : str, optional
        Either "simulator" or "qpu". Default is "simulator".
    pricing_region : str, optional
        Region whose price list is queried. Default is "us-east-1".
    pricing_ttl_seconds : float, optional
        Lifetime of a cached device price. Default is 24 hours.
    aws_profile : str, optional
        Named AWS profile for the boto3 session.

    Raises
    ------
    ValidationError
        If the bucket is missing or a numeric setting is out of range.
    """

    s3_bucket: str
    region: str = DEFAULT_REGION
    shots: int = DEFAULT_SHOTS
    max_parallel_shots: int = DEFAULT_MAX_PARALLEL_SHOTS
    s3_key_prefix: str = DEFAULT_S3_KEY_PREFIX
    device_arn: str = SV1_ARN
    device_type: str = "simulator"
    pricing_region: str = DEFAULT_REGION
    pricing_ttl_seconds: float = DEFAULT_PRICING_TTL_SECONDS
    aws_profile: str | None = None

    def __post_init__(self) -> None:
        """Validate configuration on creation."""
        if not self.s3_bucket or not str(self.s3_bucket).strip():
            raise ValidationError(
                "s3_bucket is required. Set QBRAKET_S3_BUCKET environment "
                "variable or pass s3_bucket parameter.",
                operation="configure",
            )
        if not self.region:
            raise ValidationError("region is required", operation="configure")
        if not isinstance(self.shots, int) or self.shots <= 0:
            raise ValidationError(
                f"shots must be a positive integer, got {self.shots!r}",
                operation="configure",
            )
        if not isinstance(self.max_parallel_shots, int) or self.max_parallel_shots <= 0:
            raise ValidationError(
                "max_parallel_shots must be a positive integer, "
                f"got {self.max_parallel_shots!r}",
                operation="configure",
            )
        if self.device_type not in DEVICE_TYPES:
            raise ValidationError(
                f"device_type must be one of {DEVICE_TYPES}, got {self.device_type!r}",
                operation="configure",
            )
        if self.pricing_ttl_seconds < 0:
            raise ValidationError(
                "pricing_ttl_seconds must be non-negative", operation="configure"
            )

    @classmethod
    def from_env(cls, **overrides: Any) -> BackendConfig:
        """
        Create configuration from environment variables with overrides.

        Parameters
        ----------
        **overrides
            Explicit settings. Values that are ``None`` are ignored so
            callers can forward optional CLI arguments directly.

        Returns
        -------
        BackendConfig
            Validated configuration instance.

        Raises
        ------
        ValidationError
            If a numeric environment variable is malformed or the
            resulting configuration is invalid.
        """
        values: dict[str, Any] = {
            "s3_bucket": os.getenv(ENV_S3_BUCKET, ""),
            "region": os.getenv(ENV_REGION, DEFAULT_REGION),
            "shots": _env_int(ENV_SHOTS, DEFAULT_SHOTS),
            "max_parallel_shots": _env_int(
                ENV_MAX_PARALLEL_SHOTS, DEFAULT_MAX_PARALLEL_SHOTS
            ),
            "s3_key_prefix": os.getenv(ENV_S3_KEY_PREFIX, DEFAULT_S3_KEY_PREFIX),
            "device_arn": os.getenv(ENV_DEVICE_ARN, SV1_ARN),
            "aws_profile": os.getenv(ENV_AWS_PROFILE) or None,
        }
        device_type = os.getenv(ENV_DEVICE_TYPE)
        if device_type:
            values["device_type"] = device_type.strip().lower()
        values.update({k: v for k, v in overrides.items() if v is not None})
        if "device_type" not in values:
            values["device_type"] = infer_device_type(values["device_arn"])
        return cls(**values)

    def with_overrides(self, **changes: Any) -> BackendConfig:
        """Return a validated copy with ``changes`` applied."""
        return dataclasses.replace(self, **changes)

    def to_dict(self) -> dict[str, Any]:
        """Convert to JSON-serializable dictionary."""
        return dataclasses.asdict(self)


def infer_device_type(device_arn: str) -> str:
    """
    Guess the device type from a device ARN.

    Examples
    --------
    >>> infer_device_type(SV1_ARN)
    'simulator'
    >>> infer_device_type("arn:aws:braket:us-east-1::device/qpu/ionq/Aria-1")
    'qpu'
    """
    return "simulator" if "simulator" in (device_arn or "").lower() else "qpu"


def _env_int(name: str, default: int) -> int:
    raw = os.getenv(name)
    if raw is None or raw.strip() == "":
        return default
    try:
        return int(raw)
    except ValueError as e:
        raise ValidationError(
            f"{name} must be an integer, got {raw!r}", operation="configure", cause=e
        ) from e
