"""
lanproxy.supervisor
~~~~~~~~~~~~~~~~~~~
Run the proxy as a child process that shares our terminal, and relay Ctrl-C.
"""

from __future__ import annotations

import os
import signal
import subprocess
from typing import Sequence

SPAWN_FAILED = 1


def supervise(cmd: Sequence[str], cwd: str | None = None, grace: float = 5.0) -> int:
    """Return the exit code this process should finish with."""
    try:
        child = subprocess.Popen(list(cmd), cwd=cwd)
    except OSError as e:
        print(f"✖ Failed to start proxy server: {e}", flush=True)
        return SPAWN_FAILED

    try:
        print(f"▸ Proxy server started (PID: {child.pid})", flush=True)
        code = child.wait()
    except KeyboardInterrupt:
        # further Ctrl-C presses must not abandon the child mid-shutdown
        previous = signal.signal(signal.SIGINT, signal.SIG_IGN)
        try:
            print("\n▸ Stopping proxy server...", flush=True)
            _stop(child, grace)
        finally:
            signal.signal(signal.SIGINT, previous)
        return 0

    if code < 0:  # killed by a signal
        code = 128 - code
    print(f"Proxy server exited (exit code: {code})", flush=True)
    return code


def _stop(child: subprocess.Popen, grace: float) -> None:
    if child.poll() is None:
        if os.name == "nt":
            child.terminate()
        else:
            child.send_signal(signal.SIGINT)
    try:
        child.wait(timeout=grace)
    except subprocess.TimeoutExpired:
        child.kill()
        child.wait()
