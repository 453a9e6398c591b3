"""Tests for the shared Pydantic models."""

from __future__ import annotations

import pytest
from pydantic import ValidationError

from authcapture.models import (
    CaptureMode,
    CaptureState,
    CaptureStatus,
    ControlResult,
    CredentialArtifact,
    CredentialRef,
    ResultCode,
)


class TestCaptureState:
    def test_defaults(self) -> None:
        state = CaptureState()
        assert state.mode == CaptureMode.CREATE
        assert state.target_index is None
        assert state.running is False

    def test_relogin_requires_target(self) -> None:
        with pytest.raises(ValidationError):
            CaptureState(mode=CaptureMode.RELOGIN)

    def test_create_rejects_target(self) -> None:
        with pytest.raises(ValidationError):
            CaptureState(mode=CaptureMode.CREATE, target_index=2)

    def test_status_serialises_enums(self) -> None:
        status = CaptureStatus(mode=CaptureMode.RELOGIN, target_index=1)
        data = status.model_dump(mode="json")
        assert data["mode"] == "relogin"
        assert data["phase"] == "idle"
        assert data["continue_sent"] is False


class TestControlResult:
    def test_payload_omits_missing_error(self) -> None:
        result = ControlResult(ok=True, status=200, message=ResultCode.STARTED)
        assert result.to_payload() == {"ok": True, "status": 200, "message": "setupAuthStarted"}

    def test_payload_with_error(self) -> None:
        result = ControlResult(
            ok=False, status=500, message=ResultCode.CONTINUE_FAILED, error="broken pipe"
        )
        assert result.to_payload() == {
            "ok": False,
            "status": 500,
            "message": "setupAuthContinueFailed",
            "error": "broken pipe",
        }


class TestCredentialModels:
    def test_artifact_keeps_unknown_fields(self) -> None:
        artifact = CredentialArtifact.model_validate({"cookies": [], "note": {"a": 1}})
        assert artifact.storage_state() == {"cookies": [], "origins": [], "note": {"a": 1}}

    def test_ref_rejects_negative_index(self) -> None:
        with pytest.raises(ValidationError):
            CredentialRef(index=-1, file="auth--1.json")
