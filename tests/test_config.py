# SPDX-License-Identifier: Apache-2.0
# SPDX-FileCopyrightText: 2026 qbraket

"""Tests for backend configuration and the error hierarchy."""

from __future__ import annotations

import pytest
from qbraket.config import (
    DM1_ARN,
    SV1_ARN,
    BackendConfig,
    infer_device_type,
)
from qbraket.errors import (
    ConflictError,
    NotFoundError,
    QBraketError,
    RemoteServiceError,
    ValidationError,
)


# =============================================================================
# BackendConfig
# =============================================================================


class TestBackendConfig:
    """Tests for construction-time validation."""

    def test_defaults(self) -> None:
        config = BackendConfig(s3_bucket="results")

        assert config.region == "us-east-1"
        assert config.shots == 1000
        assert config.max_parallel_shots == 10
        assert config.s3_key_prefix == "braket-results/"
        assert config.device_arn == SV1_ARN
        assert config.device_type == "simulator"
        assert config.pricing_ttl_seconds == 86400

    @pytest.mark.parametrize("bucket", ["", "   "])
    def test_bucket_required(self, bucket: str) -> None:
        with pytest.raises(ValidationError, match="s3_bucket is required"):
            BackendConfig(s3_bucket=bucket)

    @pytest.mark.parametrize(
        "field,value",
        [
            ("shots", 0),
            ("shots", -5),
            ("max_parallel_shots", 0),
            ("device_type", "annealer"),
            ("pricing_ttl_seconds", -1),
            ("region", ""),
        ],
    )
    def test_invalid_values(self, field: str, value: object) -> None:
        with pytest.raises(ValidationError) as exc_info:
            BackendConfig(s3_bucket="results", **{field: value})
        assert exc_info.value.operation == "configure"

    def test_frozen(self) -> None:
        config = BackendConfig(s3_bucket="results")
        with pytest.raises(AttributeError):
            config.shots = 5  # type: ignore[misc]

    def test_with_overrides_revalidates(self) -> None:
        config = BackendConfig(s3_bucket="results")

        assert config.with_overrides(shots=50).shots == 50
        with pytest.raises(ValidationError):
            config.with_overrides(shots=0)

    def test_to_dict(self) -> None:
        d = BackendConfig(s3_bucket="results", aws_profile="lab").to_dict()
        assert d["s3_bucket"] == "results"
        assert d["aws_profile"] == "lab"


class TestFromEnv:
    """Tests for environment loading."""

    @pytest.fixture(autouse=True)
    def _clean_env(self, monkeypatch: pytest.MonkeyPatch) -> None:
        for name in (
            "QBRAKET_S3_BUCKET",
            "QBRAKET_REGION",
            "QBRAKET_SHOTS",
            "QBRAKET_MAX_PARALLEL_SHOTS",
            "QBRAKET_S3_KEY_PREFIX",
            "QBRAKET_DEVICE_ARN",
            "QBRAKET_DEVICE_TYPE",
            "AWS_PROFILE",
        ):
            monkeypatch.delenv(name, raising=False)

    def test_reads_environment(self, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setenv("QBRAKET_S3_BUCKET", "env-bucket")
        monkeypatch.setenv("QBRAKET_REGION", "eu-west-2")
        monkeypatch.setenv("QBRAKET_SHOTS", "250")
        monkeypatch.setenv("QBRAKET_MAX_PARALLEL_SHOTS", "4")
        monkeypatch.setenv("AWS_PROFILE", "research")

        config = BackendConfig.from_env()

        assert config.s3_bucket == "env-bucket"
        assert config.region == "eu-west-2"
        assert config.shots == 250
        assert config.max_parallel_shots == 4
        assert config.aws_profile == "research"

    def test_overrides_win_and_none_is_ignored(
        self, monkeypatch: pytest.MonkeyPatch
    ) -> None:
        monkeypatch.setenv("QBRAKET_S3_BUCKET", "env-bucket")

        config = BackendConfig.from_env(s3_bucket="explicit", region=None)

        assert config.s3_bucket == "explicit"
        assert config.region == "us-east-1"

    def test_missing_bucket(self) -> None:
        with pytest.raises(ValidationError):
            BackendConfig.from_env()

    def test_malformed_integer(self, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setenv("QBRAKET_S3_BUCKET", "env-bucket")
        monkeypatch.setenv("QBRAKET_SHOTS", "many")

        with pytest.raises(ValidationError, match="QBRAKET_SHOTS"):
            BackendConfig.from_env()

    def test_device_type_inferred_from_arn(self) -> None:
        config = BackendConfig.from_env(
            s3_bucket="b", device_arn="arn:aws:braket:us-east-1::device/qpu/ionq/Forte-1"
        )
        assert config.device_type == "qpu"


class TestInferDeviceType:
    def test_simulators(self) -> None:
        assert infer_device_type(SV1_ARN) == "simulator"
        assert infer_device_type(DM1_ARN) == "simulator"

    def test_qpu(self) -> None:
        assert infer_device_type("arn:aws:braket:eu-north-1::device/qpu/iqm/Garnet") == "qpu"


# =============================================================================
# Errors
# =============================================================================


class TestErrors:
    """Tests for the error hierarchy."""

    def test_hierarchy(self) -> None:
        for cls in (ValidationError, RemoteServiceError, NotFoundError, ConflictError):
            assert issubclass(cls, QBraketError)

    def test_context_attributes(self) -> None:
        err = NotFoundError("Job not found", job_id="braket-1", device_arn=None)

        assert err.job_id == "braket-1"
        assert err.device_arn is None
        assert err.context == {"job_id": "braket-1"}
        with pytest.raises(AttributeError):
            err.no_such_field  # noqa: B018

    def test_str_includes_context_and_cause(self) -> None:
        cause = KeyError("quantumTaskArn")
        err = RemoteServiceError("GetQuantumTask failed", cause=cause, task_arn="arn:t")

        text = str(err)
        assert "GetQuantumTask failed" in text
        assert "task_arn=arn:t" in text
        assert "KeyError" in text

    def test_to_dict(self) -> None:
        d = ConflictError("Job was already cancelled", job_id="braket-1").to_dict()

        assert d["type"] == "ConflictError"
        assert d["message"] == "Job was already cancelled"
        assert d["context"] == {"job_id": "braket-1"}
