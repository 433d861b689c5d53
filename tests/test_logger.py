import json
import logging

from lanproxy.logger import ProxyLogger, _PlainFormatter


def _record(msg, level=logging.INFO):
    return logging.LogRecord("lanproxy", level, __file__, 1, msg, None, None)


def test_plain_end_line():
    line = _PlainFormatter().format(
        _record(
            {
                "event": "end",
                "ts": "2025-06-19T15:07:02Z",
                "ip": "192.168.1.7",
                "method": "GET",
                "url": "/api/items",
                "status": 200,
                "bytes": 1327,
                "ms": 89,
            }
        )
    )
    assert line == "2025-06-19T15:07:02Z 192.168.1.7 GET /api/items 200 1,327B 89 ms"


def test_plain_upstream_error_line():
    line = _PlainFormatter().format(
        _record(
            {
                "event": "upstream_error",
                "ts": "2025-06-19T15:07:02Z",
                "ip": "192.168.1.7",
                "method": "GET",
                "url": "/",
                "reason": "Upstream connect failed",
            },
            logging.WARNING,
        )
    )
    assert line.endswith("GET / UPSTREAM Upstream connect failed")


def test_jsonl_file(tmp_path):
    log = ProxyLogger(tmp_path / "access.log", console=False)
    try:
        log.end("10.0.0.2", "POST", "/x", 201, 12, 3)
    finally:
        log.close()

    assert log.path == tmp_path / "access.jsonl"
    entry = json.loads(log.path.read_text())
    assert entry["event"] == "end"
    assert entry["status"] == 201
    assert entry["ip"] == "10.0.0.2"


def test_new_logger_replaces_handlers(tmp_path):
    ProxyLogger(tmp_path / "a.log", console=False)
    log = ProxyLogger(tmp_path / "b.log", console=True)
    try:
        assert len(log.log.handlers) == 2
    finally:
        log.close()
