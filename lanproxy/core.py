"""
lanproxy.core
~~~~~~~~~~~~~
Non-blocking HTTPS reverse proxy: terminates TLS and forwards every request
to one plaintext HTTP backend, rewriting ``Host`` to the backend's address.
"""

from __future__ import annotations

import asyncio
import ssl
import time
from contextlib import suppress
from pathlib import Path
from typing import List, Optional, Tuple

from .config import Config
from .logger import ProxyLogger
from .settings import Settings, SettingsError, load_settings
from .tls import server_ssl_context

CRLF = b"\r\n"
BUFFER = 65_536

Headers = List[Tuple[str, str]]


def run_proxy(config: Config) -> int:
    proxy = ProxyServer(config)
    try:
        asyncio.run(proxy.serve_forever())
    except KeyboardInterrupt:
        print("\n▸ Proxy shut down.")
    finally:
        proxy.logger.close()
    return 0


class ProxyServer:
    def __init__(self, cfg: Config, logger: Optional[ProxyLogger] = None) -> None:
        self.cfg = cfg
        self.logger = logger or ProxyLogger(cfg.log_path)
        self.settings: Optional[Settings] = None
        self.backend_host = f"{cfg.target_host}:{cfg.target_port}"

    async def start(self) -> Optional[asyncio.AbstractServer]:
        """Bind the TLS listener, or report why not and return None."""
        settings_path = Path(self.cfg.settings_path)
        try:
            settings = load_settings(settings_path)
            base = settings_path.parent
            ssl_ctx = server_ssl_context(
                settings.cert_path(base), settings.key_path(base)
            )
        except (SettingsError, FileNotFoundError, ssl.SSLError) as e:
            print(f"✖ Failed to start server: {e}")
            return None

        server = await asyncio.start_server(
            self._handle_client,
            host=self.cfg.listen_host,
            port=self.cfg.listen_port,
            ssl=ssl_ctx,
        )
        self.settings = settings

        port = server.sockets[0].getsockname()[1]
        print(f"▸ Requests will be forwarded to {self.cfg.target_url}")
        print(f"▸ HTTPS proxy running on https://{settings.local_ip}:{port}")
        return server

    async def serve_forever(self) -> None:
        server = await self.start()
        if server is None:
            return
        async with server:
            await server.serve_forever()

    async def _handle_client(
        self,
        reader: asyncio.StreamReader,
        writer: asyncio.StreamWriter,
    ) -> None:
        start_ts = time.time()
        peer = writer.get_extra_info("peername")
        peer_ip = peer[0] if peer else "-"
        method, target = "-", "-"

        try:
            req_line, headers = await _read_request_head(reader)
            method, target, _ = _parse_request_line(req_line)
            self.logger.start(peer_ip, method, target, _header(headers, "user-agent"))

            status, nbytes = await self._forward_http(
                reader, writer, req_line, headers
            )
            self.logger.end(
                peer_ip, method, target, status, nbytes, _elapsed_ms(start_ts)
            )

        except ProxyError as e:
            if e.status == 502:
                self.logger.upstream_error(peer_ip, method, target, e.msg)
            with suppress(ConnectionError):
                await _send_simple_response(writer, e.status, e.msg.encode())
            self.logger.end(peer_ip, method, target, e.status, 0, _elapsed_ms(start_ts))
        except ConnectionError:
            # client went away mid-transfer
            pass
        except Exception as e:  # noqa: BLE001
            self.logger.upstream_error(peer_ip, method, target, repr(e))
            with suppress(ConnectionError):
                await _send_simple_response(writer, 500, b"Internal Server Error")
            self.logger.end(peer_ip, method, target, 500, 0, _elapsed_ms(start_ts))
        finally:
            writer.close()
            with suppress(ConnectionError, ssl.SSLError):
                await writer.wait_closed()

    async def _forward_http(
        self,
        client_reader: asyncio.StreamReader,
        client_writer: asyncio.StreamWriter,
        req_line: bytes,
        headers: Headers,
    ) -> Tuple[int, int]:
        length = _content_length(headers)
        chunked = "chunked" in _header(headers, "transfer-encoding").lower()

        try:
            remote_reader, remote_writer = await asyncio.open_connection(
                self.cfg.target_host, self.cfg.target_port
            )
        except OSError as e:
            raise ProxyError(502, f"Upstream connect failed: {e}") from e

        upload: Optional[asyncio.Task] = None
        try:
            remote_writer.write(
                _rebuild_request_head(req_line, headers, self.backend_host)
            )
            await remote_writer.drain()

            if (length or chunked) and _expects_continue(headers):
                # Expect is not forwarded, so the interim reply comes from here
                client_writer.write(b"HTTP/1.1 100 Continue\r\n\r\n")
                await client_writer.drain()

            if length:
                await _copy_exact(client_reader, remote_writer, length)
            elif chunked:
                upload = asyncio.create_task(
                    _pipe_stream(client_reader, remote_writer)
                )

            status_line = await remote_reader.readline()
            if not status_line:
                raise ProxyError(502, "Upstream closed the connection without a response")
            status = _parse_status_line(status_line)

            client_writer.write(status_line)
            await client_writer.drain()
            nbytes = await _pipe_stream(remote_reader, client_writer)
            return status, len(status_line) + nbytes
        finally:
            if upload is not None:
                upload.cancel()
                with suppress(asyncio.CancelledError, ConnectionError):
                    await upload
            remote_writer.close()
            with suppress(ConnectionError):
                await remote_writer.wait_closed()


class ProxyError(Exception):
    def __init__(self, status: int, msg: str):
        self.status = status
        self.msg = msg
        super().__init__(f"{status} {msg}")


def _elapsed_ms(start_ts: float) -> int:
    return int((time.time() - start_ts) * 1000)


def _header(headers: Headers, name: str) -> str:
    for k, v in headers:
        if k.lower() == name:
            return v
    return ""


def _content_length(headers: Headers) -> int:
    raw = _header(headers, "content-length")
    if not raw:
        return 0
    try:
        length = int(raw)
    except ValueError:
        raise ProxyError(400, "Bad Request: invalid Content-Length") from None
    if length < 0:
        raise ProxyError(400, "Bad Request: invalid Content-Length")
    return length


def _expects_continue(headers: Headers) -> bool:
    return _header(headers, "expect").lower() == "100-continue"


async def _read_request_head(reader: asyncio.StreamReader) -> Tuple[bytes, Headers]:
    head = b""
    while True:
        line = await reader.readline()
        if not line:
            raise ProxyError(400, "Bad Request: EOF before headers complete")
        head += line
        if line == CRLF:
            break

    lines = head.split(CRLF)[:-2]
    if not lines:
        raise ProxyError(400, "Bad Request: empty head")

    req_line = lines[0]
    hdrs: Headers = []
    for raw in lines[1:]:
        if b":" in raw:
            k, v = raw.split(b":", 1)
            hdrs.append((k.decode("latin-1").strip(), v.decode("latin-1").strip()))
    return req_line, hdrs


def _parse_request_line(line: bytes) -> Tuple[str, str, str]:
    parts = line.decode("latin-1").strip().split()
    if len(parts) != 3:
        raise ProxyError(400, "Bad Request: malformed request-line")
    method, target, version = parts
    return method, target, version


def _parse_status_line(line: bytes) -> int:
    parts = line.decode("latin-1").split(None, 2)
    try:
        return int(parts[1])
    except (IndexError, ValueError):
        raise ProxyError(502, "Bad Gateway: malformed upstream status line") from None


_HOP_BY_HOP = {
    "proxy-authorization",
    "proxy-connection",
    "connection",
    "expect",
    "keep-alive",
    "te",
    "trailer",
    "upgrade",
}


def _rebuild_request_head(req_line: bytes, headers: Headers, host: str) -> bytes:
    """Request head for the backend: ``Host`` rewritten, one request per connection."""
    head = bytearray(req_line.rstrip() + CRLF)
    head.extend(f"Host: {host}".encode("latin-1") + CRLF)
    for k, v in headers:
        if k.lower() == "host" or k.lower() in _HOP_BY_HOP:
            continue
        head.extend(f"{k}: {v}".encode("latin-1") + CRLF)
    head.extend(b"Connection: close" + CRLF)
    head.extend(CRLF)
    return bytes(head)


async def _send_simple_response(writer: asyncio.StreamWriter, status: int, body: bytes = b"") -> None:
    reason = {400: "Bad Request", 500: "Internal Server Error",
              502: "Bad Gateway"}.get(status, "Error")
    head = f"HTTP/1.1 {status} {reason}\r\n"
    head += f"Content-Length: {len(body)}\r\nConnection: close\r\n\r\n"
    writer.write(head.encode() + body)
    await writer.drain()


async def _copy_exact(src: asyncio.StreamReader, dst: asyncio.StreamWriter, n: int) -> None:
    while n > 0:
        chunk = await src.read(min(BUFFER, n))
        if not chunk:
            raise ProxyError(400, "Bad Request: body shorter than Content-Length")
        dst.write(chunk)
        await dst.drain()
        n -= len(chunk)


async def _pipe_stream(src: asyncio.StreamReader, dst: asyncio.StreamWriter) -> int:
    """Copy *src* into *dst* until EOF; both ends stay open."""
    total = 0
    while not src.at_eof():
        chunk = await src.read(BUFFER)
        if not chunk:
            break
        dst.write(chunk)
        await dst.drain()
        total += len(chunk)
    return total
