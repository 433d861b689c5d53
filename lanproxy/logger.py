"""
lanproxy.logger
~~~~~~~~~~~~~~~
One-line console access log *and* JSON lines with daily rotation.
"""

from __future__ import annotations

import json
import logging
import logging.handlers
import sys
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Dict

_ISO = "%Y-%m-%dT%H:%M:%SZ"

def _now() -> str:  # RFC-3339 without microseconds
    return datetime.now(tz=timezone.utc).strftime(_ISO)


class _PlainFormatter(logging.Formatter):
    """ e.g. 2025-06-19T15:07:02Z 192.168.1.7 GET /api/items 200 327B 89 ms """

    def format(self, record):  # type: ignore[override]
        if not isinstance(record.msg, dict):
            return super().format(record)
        d: Dict[str, Any] = record.msg

        parts = [
            d.get("ts", _now()),
            d.get("ip", "-"),
            d.get("method", "-"),
            d.get("url", "-"),
        ]
        if d.get("event") == "upstream_error":
            parts.extend(["UPSTREAM", d.get("reason", "")])
        elif d.get("event") == "start":
            parts.append(d.get("ua", "") or "-")
        else:  # end
            parts.extend(
                [
                    str(d.get("status", "-")),
                    f'{d.get("bytes", 0):,}B',
                    f'{d.get("ms", 0)} ms',
                ]
            )
        return " ".join(parts)


class _JSONFormatter(logging.Formatter):
    def format(self, record):  # type: ignore[override]
        if isinstance(record.msg, dict):
            return json.dumps(record.msg, separators=(",", ":"))
        return json.dumps({"ts": _now(), "message": record.getMessage()})


class ProxyLogger:
    def __init__(self, basename: str | Path, console: bool = True):
        root = logging.getLogger("lanproxy")
        root.setLevel(logging.INFO)
        root.propagate = False

        for old in list(root.handlers):
            root.removeHandler(old)
            old.close()

        basename = Path(basename).with_suffix("")  # proxy
        jsonl_file = basename.with_suffix(".jsonl")

        # json lines
        h = logging.handlers.TimedRotatingFileHandler(
            jsonl_file, when="midnight", backupCount=7, encoding="utf-8"
        )
        h.setFormatter(_JSONFormatter())
        root.addHandler(h)

        if console:
            c = logging.StreamHandler(sys.stdout)
            c.setFormatter(_PlainFormatter())
            root.addHandler(c)

        self.log = root
        self.path = jsonl_file

    def start(self, ip: str, method: str, url: str, ua: str):
        self.log.info(
            {
                "event": "start",
                "ts": _now(),
                "ip": ip,
                "method": method,
                "url": url,
                "ua": ua,
            }
        )

    def end(
        self,
        ip: str,
        method: str,
        url: str,
        status: int,
        total_bytes: int,
        duration_ms: int,
    ):
        self.log.info(
            {
                "event": "end",
                "ts": _now(),
                "ip": ip,
                "method": method,
                "url": url,
                "status": status,
                "bytes": total_bytes,
                "ms": duration_ms,
            }
        )

    def upstream_error(self, ip: str, method: str, url: str, reason: str):
        self.log.warning(
            {
                "event": "upstream_error",
                "ts": _now(),
                "ip": ip,
                "method": method,
                "url": url,
                "reason": reason,
            }
        )

    def close(self) -> None:
        for h in list(self.log.handlers):
            self.log.removeHandler(h)
            h.close()
