"""Capture process: the child side of the supervision protocol.

Run as ``python -m authcapture.capture create`` or
``python -m authcapture.capture relogin <index>``. Playwright is imported only
when a browser session is actually opened.

See Also:
    :mod:`authcapture.capture.runner` for the protocol steps.
    :class:`~authcapture.supervisor.CaptureSupervisor` for the parent side.
"""

from authcapture.capture.driver import resolve_driver_path
from authcapture.capture.runner import (
    apply_storage_state,
    main,
    parse_target_index,
    run_create,
    run_relogin,
    wait_for_continue,
)

__all__ = [
    "apply_storage_state",
    "main",
    "parse_target_index",
    "resolve_driver_path",
    "run_create",
    "run_relogin",
    "wait_for_continue",
]
