"""authcapture -- supervise browser-driven credential capture for numbered accounts.

An operator starts a capture run, finishes a manual login step in the browser
the capture process opened, and sends a continuation signal. The capture
process then writes the session's cookies and per-origin storage to a
numbered credential file, and the supervisor notifies a reload sink so the
consuming server picks up the new material.

Typical workflow::

    authcapture capture create        # provision a new auth-<n>.json
    authcapture capture relogin 3     # refresh auth-3.json in place
    authcapture store list            # show the credential store

Modules:
    app: Typer application factory and CLI entry point.
    supervisor: The single-process capture supervisor.
    models: Pydantic models shared across the package.
    config: Configuration resolution (CLI, env, project file, defaults).
    exceptions: Exception hierarchy with exit-code mapping.
    exit_codes: Numeric exit codes shared by the CLI and capture process.
    output: stdout/stderr formatting with Rich support.
"""

__version__ = "0.1.0"
