"""Capture supervisor -- owns at most one capture process at a time.

:class:`CaptureSupervisor` exposes four control operations, ``start``,
``continue_``, ``cancel`` and ``status``. Each returns immediately and never
raises; failures come back as :class:`~authcapture.models.ControlResult`
values whose ``status`` follows HTTP semantics.

Per run, three daemon threads observe the child: one drain each for stdout
(logged at INFO) and stderr (logged at WARNING), and an exit watcher. The
watcher joins both drains before exit handling, so every line the child
printed is logged before the run is marked finished. There is no ordering
between the two streams.

Exit handling records the exit code, attributes the run to a credential file
(the known target for relogin, discovery for create), releases the process
handle and then notifies the reload sink. A reload failure is logged and
otherwise ignored.

All state transitions happen under a single lock, which is also what
enforces the one-live-process invariant.

Example::

    supervisor = CaptureSupervisor.from_config(resolve_config())
    supervisor.start(CaptureMode.RELOGIN, 3)
    # ... operator finishes the login in the browser ...
    supervisor.continue_()
    supervisor.wait()
    print(supervisor.status().exit_code)
"""

from __future__ import annotations

import logging
import os
import subprocess
import sys
import threading
from collections.abc import Callable
from datetime import datetime, timezone
from typing import IO, Any, Optional

from authcapture.auth import create_reload_sink
from authcapture.auth.base import ReloadSink
from authcapture.auth.credential_store import CredentialStore, auth_filename
from authcapture.config import ENV_AUTH_DIR, ENV_LANG, ENV_MODE, ENV_TARGET_INDEX
from authcapture.exceptions import InvalidTargetError
from authcapture.models import (
    CaptureConfig,
    CaptureMode,
    CaptureState,
    CaptureStatus,
    ControlResult,
    CredentialRef,
    ResultCode,
    SupervisorPhase,
)

logger = logging.getLogger(__name__)

LOG_PREFIX = "[SetupAuth]"

CommandBuilder = Callable[[CaptureMode, Optional[int]], list[str]]
"""Maps ``(mode, target_index)`` to the capture process command line."""


def default_capture_command(mode: CaptureMode, target_index: Optional[int]) -> list[str]:
    """Run the bundled capture module with the current interpreter."""
    args = [sys.executable, "-m", "authcapture.capture", mode.value]
    if mode == CaptureMode.RELOGIN:
        args.append(str(target_index))
    return args


def validate_target_index(mode: CaptureMode, target_index: Any) -> Optional[int]:
    """Return the target index to record for *mode*.

    Create mode ignores *target_index* and returns ``None``.

    Raises:
        InvalidTargetError: In relogin mode, when *target_index* is not a
            non-negative ``int`` (``bool`` is rejected too).
    """
    if mode != CaptureMode.RELOGIN:
        return None
    if isinstance(target_index, bool) or not isinstance(target_index, int) or target_index < 0:
        raise InvalidTargetError(f"Invalid account index: {target_index!r}")
    return target_index


def _now() -> datetime:
    return datetime.now(timezone.utc)


class CaptureSupervisor:
    """Starts, signals, cancels and observes a single capture process.

    Args:
        store: The credential store the capture process writes into.
        reload_sink: Notified after every process exit. ``None`` disables
            notification.
        config: Supplies the working directory and language hint for the
            child. Defaults to a config rooted at the current directory.
        command_builder: Override for the capture command line, mainly for
            tests. Defaults to :func:`default_capture_command`.
    """

    def __init__(
        self,
        store: CredentialStore,
        reload_sink: Optional[ReloadSink] = None,
        config: Optional[CaptureConfig] = None,
        command_builder: Optional[CommandBuilder] = None,
    ) -> None:
        self._store = store
        self._reload_sink = reload_sink
        self._config = config or CaptureConfig(auth_dir=store.directory)
        self._command_builder = command_builder or default_capture_command

        self._lock = threading.RLock()
        self._process: Optional[subprocess.Popen[str]] = None
        self._state = CaptureState()
        self._phase = SupervisorPhase.IDLE
        self._continue_sent = False
        self._done = threading.Event()
        self._done.set()

    @classmethod
    def from_config(
        cls,
        config: CaptureConfig,
        reload_sink: Optional[ReloadSink] = None,
    ) -> CaptureSupervisor:
        """Build a supervisor for *config*, choosing the reload sink from it when not given."""
        store = CredentialStore(config.auth_dir)
        if reload_sink is None:
            reload_sink = create_reload_sink(config, store)
        return cls(store, reload_sink=reload_sink, config=config)

    @property
    def store(self) -> CredentialStore:
        return self._store

    @property
    def is_running(self) -> bool:
        with self._lock:
            return self._process is not None

    # ------------------------------------------------------------------
    # Control operations
    # ------------------------------------------------------------------

    def start(
        self,
        mode: CaptureMode | str = CaptureMode.CREATE,
        target_index: Any = None,
    ) -> ControlResult:
        """Spawn a capture process for *mode*.

        Anything other than ``relogin`` is treated as create. Precondition
        failures leave the previous state untouched.

        Returns:
            ``setupAuthStarted`` / ``setupAuthReloginStarted`` (200) on
            success; ``setupAuthAlreadyRunning`` (409) if a process is live;
            ``errorInvalidIndex`` (400) for a bad relogin target; a
            ``*StartFailed`` result (500) if the OS refused to spawn.
        """
        mode = CaptureMode.RELOGIN if mode == CaptureMode.RELOGIN else CaptureMode.CREATE
        relogin = mode == CaptureMode.RELOGIN

        with self._lock:
            if self._process is not None:
                return ControlResult(ok=False, status=409, message=ResultCode.ALREADY_RUNNING)
            try:
                index = validate_target_index(mode, target_index)
            except InvalidTargetError as exc:
                logger.warning("%s %s", LOG_PREFIX, exc)
                return ControlResult(
                    ok=False, status=400, message=ResultCode.INVALID_INDEX, error=str(exc)
                )

            self._state = CaptureState(mode=mode, target_index=index)
            self._continue_sent = False
            self._transition(SupervisorPhase.STARTING)

            try:
                command = self._command_builder(mode, index)
                process = subprocess.Popen(
                    command,
                    cwd=str(self._config.project_root),
                    env=self._child_environment(mode, index),
                    stdin=subprocess.PIPE,
                    stdout=subprocess.PIPE,
                    stderr=subprocess.PIPE,
                    text=True,
                    encoding="utf-8",
                    errors="replace",
                    bufsize=1,
                )
            except (OSError, ValueError, subprocess.SubprocessError) as exc:
                message = str(exc) or type(exc).__name__
                self._update(error=message)
                self._transition(SupervisorPhase.ERROR)
                logger.error("%s Failed to start capture process: %s", LOG_PREFIX, message)
                self._transition(SupervisorPhase.IDLE)
                return ControlResult(
                    ok=False,
                    status=500,
                    message=ResultCode.RELOGIN_START_FAILED if relogin else ResultCode.START_FAILED,
                    error=message,
                )

            done = threading.Event()
            self._process = process
            self._done = done
            self._update(running=True, pid=process.pid, started_at=_now())
            self._transition(SupervisorPhase.RUNNING)
            self._spawn_observers(process, done)

        logger.info(
            "%s Started %s capture (pid %s%s)",
            LOG_PREFIX,
            mode.value,
            process.pid,
            f", account #{index}" if relogin else "",
        )
        return ControlResult(
            ok=True,
            status=200,
            message=ResultCode.RELOGIN_STARTED if relogin else ResultCode.STARTED,
        )

    def continue_(self) -> ControlResult:
        """Write the continuation signal (a single newline) to the child's stdin.

        Named with a trailing underscore because ``continue`` is a keyword.
        Sending twice is harmless; ``continue_sent`` is a flag, not a counter.
        """
        with self._lock:
            process = self._process
            if process is None or not self._state.running:
                return ControlResult(ok=False, status=409, message=ResultCode.NOT_RUNNING)

            stdin = process.stdin
            if stdin is None or stdin.closed:
                return ControlResult(
                    ok=False,
                    status=500,
                    message=ResultCode.CONTINUE_FAILED,
                    error="Capture process input stream is closed",
                )
            try:
                stdin.write("\n")
                stdin.flush()
            except (OSError, ValueError) as exc:
                logger.warning("%s Failed to send continue signal: %s", LOG_PREFIX, exc)
                return ControlResult(
                    ok=False,
                    status=500,
                    message=ResultCode.CONTINUE_FAILED,
                    error=str(exc) or type(exc).__name__,
                )
            self._continue_sent = True

        logger.info("%s Continue signal sent", LOG_PREFIX)
        return ControlResult(ok=True, status=200, message=ResultCode.CONTINUE_SENT)

    def cancel(self) -> ControlResult:
        """Ask the child to terminate. Does not wait for it to exit.

        Exit handling runs on the watcher thread as for any other exit. A
        child that ignores the request stays ``running``.
        """
        with self._lock:
            process = self._process
            if process is None or not self._state.running:
                return ControlResult(ok=False, status=409, message=ResultCode.NOT_RUNNING)

            if process.poll() is not None:
                return ControlResult(
                    ok=False,
                    status=500,
                    message=ResultCode.CANCEL_FAILED,
                    error=f"Capture process already exited with code {process.returncode}",
                )
            try:
                process.terminate()
            except OSError as exc:
                return ControlResult(
                    ok=False,
                    status=500,
                    message=ResultCode.CANCEL_FAILED,
                    error=str(exc) or type(exc).__name__,
                )
            self._transition(SupervisorPhase.CLOSING)

        logger.info("%s Termination requested (pid %s)", LOG_PREFIX, process.pid)
        return ControlResult(ok=True, status=200, message=ResultCode.CANCEL_SUCCESS)

    def status(self) -> CaptureStatus:
        """Return a snapshot of the current state. Never fails."""
        with self._lock:
            data = self._state.model_dump()
            data["continue_sent"] = self._continue_sent
            data["phase"] = self._phase
            return CaptureStatus.model_validate(data)

    def wait(self, timeout: Optional[float] = None) -> bool:
        """Block until the current run's exit handling has finished.

        Returns immediately with ``True`` when nothing is running.

        Returns:
            ``False`` if *timeout* elapsed first.
        """
        with self._lock:
            done = self._done
        return done.wait(timeout)

    # ------------------------------------------------------------------
    # Process observation
    # ------------------------------------------------------------------

    def _spawn_observers(self, process: subprocess.Popen[str], done: threading.Event) -> None:
        drains = [
            threading.Thread(
                target=self._drain,
                args=(process.stdout, logging.INFO),
                name=f"capture-stdout-{process.pid}",
                daemon=True,
            ),
            threading.Thread(
                target=self._drain,
                args=(process.stderr, logging.WARNING),
                name=f"capture-stderr-{process.pid}",
                daemon=True,
            ),
        ]
        for thread in drains:
            thread.start()
        threading.Thread(
            target=self._watch_exit,
            args=(process, drains, done),
            name=f"capture-exit-{process.pid}",
            daemon=True,
        ).start()

    def _drain(self, stream: Optional[IO[str]], level: int) -> None:
        if stream is None:
            return
        try:
            for line in iter(stream.readline, ""):
                text = line.rstrip()
                if text:
                    logger.log(level, "%s %s", LOG_PREFIX, text)
        except (OSError, ValueError) as exc:
            logger.debug("%s Output stream closed: %s", LOG_PREFIX, exc)
        finally:
            stream.close()

    def _watch_exit(
        self,
        process: subprocess.Popen[str],
        drains: list[threading.Thread],
        done: threading.Event,
    ) -> None:
        exit_code = process.wait()
        for thread in drains:
            thread.join()
        try:
            if self._handle_exit(process, exit_code):
                self._notify_reload()
        finally:
            done.set()

    def _handle_exit(self, process: subprocess.Popen[str], exit_code: int) -> bool:
        with self._lock:
            if process is not self._process:
                return False
            if self._phase != SupervisorPhase.CLOSING:
                self._transition(SupervisorPhase.CLOSING)

            state = self._state
            if state.mode == CaptureMode.RELOGIN and state.target_index is not None:
                ref: Optional[CredentialRef] = CredentialRef(
                    index=state.target_index, file=auth_filename(state.target_index)
                )
            else:
                ref = self._discover_latest()

            error = state.error
            if exit_code != 0 and error is None:
                error = f"Capture process exited with code {exit_code}"

            self._update(
                running=False,
                exit_code=exit_code,
                finished_at=_now(),
                error=error,
                last_auth_file=ref.file if ref else None,
                last_auth_index=ref.index if ref else None,
            )
            self._process = None
            self._close_stdin(process)

            if exit_code != 0:
                self._transition(SupervisorPhase.ERROR)
            self._transition(SupervisorPhase.IDLE)

        logger.info("%s Completed with code %s", LOG_PREFIX, exit_code)
        return True

    def _discover_latest(self) -> Optional[CredentialRef]:
        try:
            return self._store.find_latest()
        except OSError as exc:
            logger.error("%s Credential discovery failed: %s", LOG_PREFIX, exc)
            return None

    def _notify_reload(self) -> None:
        sink = self._reload_sink
        if sink is None:
            return
        try:
            sink.reload()
        except Exception as exc:
            logger.error(
                "%s Failed to reload auth sources (%s): %s",
                LOG_PREFIX,
                type(sink).__name__,
                exc,
            )

    # ------------------------------------------------------------------
    # Helpers (callers hold the lock)
    # ------------------------------------------------------------------

    def _transition(self, phase: SupervisorPhase) -> None:
        logger.debug("%s %s -> %s", LOG_PREFIX, self._phase.value, phase.value)
        self._phase = phase

    def _update(self, **changes: Any) -> None:
        self._state = self._state.model_copy(update=changes)

    def _child_environment(self, mode: CaptureMode, index: Optional[int]) -> dict[str, str]:
        env = dict(os.environ)
        env[ENV_LANG] = self._config.lang
        env[ENV_MODE] = mode.value
        env[ENV_TARGET_INDEX] = "" if index is None else str(index)
        env[ENV_AUTH_DIR] = str(self._store.directory.resolve())
        env["SystemRoot"] = os.environ.get("SystemRoot") or os.environ.get("WINDIR") or "C:\\Windows"
        env["PYTHONUNBUFFERED"] = "1"
        return env

    @staticmethod
    def _close_stdin(process: subprocess.Popen[str]) -> None:
        if process.stdin is None:
            return
        try:
            process.stdin.close()
        except (OSError, ValueError):
            # The child is gone; a pending newline may fail to flush.
            pass
