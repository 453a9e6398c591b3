"""Canonical Pydantic models shared across all authcapture modules.

The models fall into three groups:

**Supervisor models** -- the observable lifecycle of a capture run:
    :class:`CaptureMode`, :class:`SupervisorPhase`, :class:`CaptureState`,
    :class:`CaptureStatus`, :class:`ResultCode`, and :class:`ControlResult`.

**Credential models** -- what lives in the credential store:
    :class:`CredentialArtifact` and :class:`CredentialRef`.

**Configuration** -- :class:`CaptureConfig`, produced by
:func:`authcapture.config.resolve_config`.

All models use Pydantic v2. :class:`CredentialArtifact` uses ``extra="allow"``
so that fields this package does not know about survive a relogin untouched.
"""

from __future__ import annotations

import enum
from datetime import datetime
from pathlib import Path
from typing import Any, Optional

from pydantic import BaseModel, ConfigDict, Field, model_validator


DEFAULT_TARGET_URL = (
    "https://aistudio.google.com/u/0/apps/bundled/blank"
    "?showPreview=true&showCode=true&showAssistant=true"
)


# --- Supervisor ---


class CaptureMode(str, enum.Enum):
    """What a capture run does with the credential store."""

    CREATE = "create"
    RELOGIN = "relogin"


class SupervisorPhase(str, enum.Enum):
    """Lifecycle phase of the supervisor.

    ``idle -> starting -> running -> closing -> idle``; ``error`` is entered
    on spawn failure or a non-zero exit and is always followed by ``idle``.
    """

    IDLE = "idle"
    STARTING = "starting"
    RUNNING = "running"
    CLOSING = "closing"
    ERROR = "error"


class CaptureState(BaseModel):
    """Mutable-by-replacement record of the current (or last) capture run.

    Owned by :class:`~authcapture.supervisor.CaptureSupervisor`; every
    transition produces a new instance via ``model_copy``.
    """

    mode: CaptureMode = CaptureMode.CREATE
    target_index: Optional[int] = None
    running: bool = False
    pid: Optional[int] = None
    started_at: Optional[datetime] = None
    finished_at: Optional[datetime] = None
    exit_code: Optional[int] = None
    error: Optional[str] = None
    last_auth_file: Optional[str] = None
    last_auth_index: Optional[int] = None

    @model_validator(mode="after")
    def _target_matches_mode(self) -> CaptureState:
        if self.mode == CaptureMode.RELOGIN and self.target_index is None:
            raise ValueError("relogin mode requires target_index")
        if self.mode == CaptureMode.CREATE and self.target_index is not None:
            raise ValueError("create mode does not take a target_index")
        return self


class CaptureStatus(CaptureState):
    """Point-in-time snapshot returned by ``CaptureSupervisor.status()``."""

    continue_sent: bool = False
    phase: SupervisorPhase = SupervisorPhase.IDLE


class ResultCode(str, enum.Enum):
    """Symbolic codes carried in :attr:`ControlResult.message`."""

    ALREADY_RUNNING = "setupAuthAlreadyRunning"
    INVALID_INDEX = "errorInvalidIndex"
    STARTED = "setupAuthStarted"
    RELOGIN_STARTED = "setupAuthReloginStarted"
    START_FAILED = "setupAuthStartFailed"
    RELOGIN_START_FAILED = "setupAuthReloginStartFailed"
    NOT_RUNNING = "setupAuthNotRunning"
    CONTINUE_SENT = "setupAuthContinueSent"
    CONTINUE_FAILED = "setupAuthContinueFailed"
    CANCEL_SUCCESS = "setupAuthCancelSuccess"
    CANCEL_FAILED = "setupAuthCancelFailed"


class ControlResult(BaseModel):
    """Outcome of a supervisor control operation.

    ``status`` follows HTTP semantics (200, 400, 409, 500) so a control
    surface can forward it as-is.

    Example::

        ControlResult(ok=False, status=409, message=ResultCode.NOT_RUNNING)
    """

    ok: bool
    status: int
    message: ResultCode
    error: Optional[str] = None

    def to_payload(self) -> dict[str, Any]:
        """Return the wire form ``{ok, status, message[, error]}``."""
        return self.model_dump(mode="json", exclude_none=True)


# --- Credentials ---


class CredentialArtifact(BaseModel):
    """One account's session record as stored in ``auth-<index>.json``.

    Only ``cookies`` and ``origins`` are interpreted; both are replaced
    wholesale on relogin. Any other top-level field is kept verbatim.
    """

    model_config = ConfigDict(extra="allow")

    cookies: list[dict[str, Any]] = Field(
        default_factory=list, description="Cookie entries for the session"
    )
    origins: list[dict[str, Any]] = Field(
        default_factory=list, description="Per-origin localStorage entries"
    )

    def storage_state(self) -> dict[str, Any]:
        """Return the full record as a plain dict suitable for seeding a browser context."""
        return self.model_dump(mode="json")


class CredentialRef(BaseModel):
    """Identifies a credential file in the store by index and file name."""

    index: int = Field(ge=0)
    file: str


# --- Configuration ---


class CaptureConfig(BaseModel):
    """Effective configuration for the supervisor and the capture process.

    Relative ``auth_dir`` values are resolved against ``project_root`` by
    :func:`~authcapture.config.resolve_config`.
    """

    project_root: Path = Field(default_factory=Path.cwd)
    auth_dir: Path = Field(default=Path("configs") / "auth")
    lang: str = Field(default="zh", description="Language hint for capture messages")
    browser_path: Optional[str] = Field(
        default=None, description="Explicit browser executable path"
    )
    target_url: str = DEFAULT_TARGET_URL
    navigation_timeout_ms: int = Field(default=120_000, gt=0)
    headless: bool = False
    reload_url: Optional[str] = Field(
        default=None, description="HTTP endpoint that triggers a credential reload"
    )
