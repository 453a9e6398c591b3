"""Capture process logic -- the child side of the supervision protocol.

The process is started by :class:`~authcapture.supervisor.CaptureSupervisor`
as ``python -m authcapture.capture create`` or ``... relogin <index>``. Mode
and index fall back to ``AUTHCAPTURE_MODE`` / ``AUTHCAPTURE_TARGET_INDEX``
when the arguments are absent.

Protocol:

1. Validate the target (relogin only) and check the credential file exists.
2. Resolve the browser executable.
3. Open a browser session on the target page, print instructions on stdout.
4. Block until one line arrives on stdin (the continuation signal).
5. Read the session's cookies and origins and write them atomically to the
   credential file.
6. Exit 0, or print ``ERROR: <message>`` on stderr and exit with the
   error's code.
"""

from __future__ import annotations

import os
import sys
from collections.abc import Callable
from pathlib import Path
from typing import Any, ContextManager, Optional, TextIO

from authcapture.auth.credential_store import CredentialStore, auth_filename
from authcapture.capture.driver import resolve_driver_path
from authcapture.config import ENV_LANG, ENV_MODE, ENV_TARGET_INDEX, resolve_config
from authcapture.exceptions import (
    AuthCaptureError,
    CaptureError,
    CredentialNotFoundError,
    InvalidTargetError,
    InvalidUsageError,
)
from authcapture.exit_codes import EXIT_GENERIC_FAILURE, EXIT_SUCCESS
from authcapture.models import CaptureConfig, CaptureMode, CredentialArtifact

SessionFactory = Callable[..., ContextManager[Any]]
"""``factory(executable_path, storage_state=..., headless=...)`` -> context manager yielding a session."""


def _text(lang: str, zh: str, en: str) -> str:
    return en if lang == "en" else zh


def _say(message: str) -> None:
    print(message, flush=True)


def _default_session_factory() -> SessionFactory:
    from authcapture.capture.session import open_browser_session

    return open_browser_session


def parse_target_index(raw: Optional[str]) -> int:
    """Parse a relogin target index from its string form.

    Raises:
        InvalidTargetError: If *raw* is not a non-negative base-10 integer.
    """
    text = (raw or "").strip()
    # ASCII digits only: int() also takes "1_0" and non-ASCII digits.
    if not (text.isascii() and text.isdigit()):
        raise InvalidTargetError(f"Invalid account index: {raw!r}")
    return int(text, 10)


def wait_for_continue(stream: Optional[TextIO] = None) -> None:
    """Block until one line is read from *stream* (default stdin).

    Raises:
        CaptureError: If the stream reaches EOF first.
    """
    stream = stream or sys.stdin
    if stream.readline() == "":
        raise CaptureError("Input stream closed before the continue signal")


def apply_storage_state(artifact: CredentialArtifact, state: dict[str, Any]) -> CredentialArtifact:
    """Return a copy of *artifact* with ``cookies`` and ``origins`` taken from *state*.

    All other fields of *artifact* are preserved.
    """
    data = artifact.model_dump(mode="json")
    data["cookies"] = list(state.get("cookies") or [])
    data["origins"] = list(state.get("origins") or [])
    return CredentialArtifact.model_validate(data)


def _capture(
    config: CaptureConfig,
    driver: Path,
    seed: Optional[dict[str, Any]],
    session_factory: SessionFactory,
    wait: Callable[[], None],
    instructions: list[str],
) -> dict[str, Any]:
    with session_factory(driver, storage_state=seed, headless=config.headless) as session:
        session.open(config.target_url, config.navigation_timeout_ms)
        for line in instructions:
            _say(line)
        wait()
        return session.storage_state()


def run_relogin(
    config: CaptureConfig,
    index: int,
    session_factory: Optional[SessionFactory] = None,
    wait: Callable[[], None] = wait_for_continue,
) -> Path:
    """Refresh the cookies and origins of ``auth-<index>.json`` in place.

    Returns:
        The path of the rewritten credential file.

    Raises:
        InvalidTargetError: If *index* is negative.
        CredentialNotFoundError: If the credential file does not exist.
        DriverNotFoundError: If the browser executable is missing.
        CaptureError: If the browser session fails or stdin closes early.
    """
    lang = config.lang
    if index < 0:
        raise InvalidTargetError(_text(lang, "无效账号索引。", "Invalid account index."))

    store = CredentialStore(config.auth_dir)
    path = store.path_for(index)
    if not store.exists(index):
        raise CredentialNotFoundError(
            _text(lang, f"认证文件不存在: {path}", f"Auth file not found: {path}")
        )

    driver = resolve_driver_path(config)
    artifact = store.load(index)
    state = _capture(
        config,
        driver,
        artifact.storage_state(),
        session_factory or _default_session_factory(),
        wait,
        [
            _text(
                lang,
                f"[Relogin] 已打开账号 #{index}，请检查是否失效并完成登录。",
                f"[Relogin] Account #{index} is open. Please verify session and login if needed.",
            ),
            _text(
                lang,
                "[Relogin] 完成后点击“我已完成重新登录”继续。",
                "[Relogin] Click continue after you finish.",
            ),
        ],
    )
    store.save(index, apply_storage_state(artifact, state))
    _say(_text(lang, f"[Relogin] 已更新 {auth_filename(index)}", f"[Relogin] Updated {auth_filename(index)}"))
    return path


def run_create(
    config: CaptureConfig,
    session_factory: Optional[SessionFactory] = None,
    wait: Callable[[], None] = wait_for_continue,
) -> Path:
    """Capture a fresh session into the next free ``auth-<index>.json``.

    Returns:
        The path of the new credential file.

    Raises:
        DriverNotFoundError: If the browser executable is missing.
        CaptureError: If the browser session fails or stdin closes early.
    """
    lang = config.lang
    store = CredentialStore(config.auth_dir)
    driver = resolve_driver_path(config)
    state = _capture(
        config,
        driver,
        None,
        session_factory or _default_session_factory(),
        wait,
        [
            _text(
                lang,
                "[Setup] 浏览器已打开，请完成登录。",
                "[Setup] The browser is open. Please log in.",
            ),
            _text(
                lang,
                "[Setup] 完成后点击继续以保存认证信息。",
                "[Setup] Click continue to save the session.",
            ),
        ],
    )
    # Chosen at write time, not at launch.
    index = store.next_index()
    path = store.save(index, apply_storage_state(CredentialArtifact(), state))
    _say(_text(lang, f"[Setup] 已保存 {auth_filename(index)}", f"[Setup] Saved {auth_filename(index)}"))
    return path


def main(argv: Optional[list[str]] = None) -> int:
    """Run one capture and return the process exit code."""
    args = list(sys.argv[1:] if argv is None else argv)
    lang = (os.environ.get(ENV_LANG) or "zh").strip().lower()
    try:
        config = resolve_config()
        lang = config.lang

        mode_value = (args[0] if args else os.environ.get(ENV_MODE) or CaptureMode.CREATE.value)
        mode_value = mode_value.strip().lower()
        if mode_value == CaptureMode.RELOGIN.value:
            raw_index = args[1] if len(args) > 1 else os.environ.get(ENV_TARGET_INDEX)
            run_relogin(config, parse_target_index(raw_index))
        elif mode_value == CaptureMode.CREATE.value:
            run_create(config)
        else:
            raise InvalidUsageError(f"Unknown capture mode: {mode_value}")
    except AuthCaptureError as exc:
        print(_text(lang, "错误:", "ERROR:"), exc, file=sys.stderr, flush=True)
        return exc.exit_code
    except Exception as exc:
        print(_text(lang, "错误:", "ERROR:"), exc, file=sys.stderr, flush=True)
        return EXIT_GENERIC_FAILURE
    return EXIT_SUCCESS
