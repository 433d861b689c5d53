"""
lanproxy.tls
~~~~~~~~~~~~
Server-side TLS context built from the mkcert leaf pair.
"""

from __future__ import annotations

import ssl
from pathlib import Path


def server_ssl_context(cert_path: str | Path, key_path: str | Path) -> ssl.SSLContext:
    for p in (Path(cert_path), Path(key_path)):
        if not p.is_file():
            raise FileNotFoundError(f"certificate file {p} does not exist")

    ctx = ssl.create_default_context(ssl.Purpose.CLIENT_AUTH)
    ctx.load_cert_chain(str(cert_path), str(key_path))
    return ctx
