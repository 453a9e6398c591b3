"""Browser executable resolution for the capture process.

An explicit path (``AUTHCAPTURE_BROWSER_PATH`` or ``browser_path`` in the
project config) always wins. Otherwise a fixed per-platform location under
the project root is used:

=========  ====================================================
Windows    ``camoufox/camoufox.exe``
Linux      ``camoufox-linux/camoufox``
macOS      ``camoufox-macos/Camoufox.app/Contents/MacOS/camoufox``
=========  ====================================================
"""

from __future__ import annotations

import sys
from pathlib import Path
from typing import Optional

from authcapture.exceptions import DriverNotFoundError
from authcapture.models import CaptureConfig

_PLATFORM_PATHS: dict[str, tuple[str, ...]] = {
    "win32": ("camoufox", "camoufox.exe"),
    "linux": ("camoufox-linux", "camoufox"),
    "darwin": ("camoufox-macos", "Camoufox.app", "Contents", "MacOS", "camoufox"),
}


def default_driver_path(project_root: Path, platform: Optional[str] = None) -> Path:
    """Return the bundled browser location for *platform* (default ``sys.platform``).

    Raises:
        DriverNotFoundError: If the platform has no bundled browser.
    """
    platform = platform or sys.platform
    key = "linux" if platform.startswith("linux") else platform
    segments = _PLATFORM_PATHS.get(key)
    if segments is None:
        raise DriverNotFoundError(f"Unsupported platform: {platform}")
    return project_root.joinpath(*segments)


def resolve_driver_path(config: CaptureConfig, platform: Optional[str] = None) -> Path:
    """Return the browser executable to launch.

    Raises:
        DriverNotFoundError: If the resolved path does not exist.
    """
    if config.browser_path:
        path = Path(config.browser_path).expanduser()
    else:
        path = default_driver_path(config.project_root, platform)
    if not path.is_file():
        raise DriverNotFoundError(f"Browser executable not found: {path}")
    return path
