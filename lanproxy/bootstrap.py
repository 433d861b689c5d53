"""
lanproxy.bootstrap
~~~~~~~~~~~~~~~~~~
One-shot setup: trust a local CA, mint a certificate for this machine's LAN
address, record it in the settings file, then launch the proxy.

Usage: python -m lanproxy.bootstrap
"""

from __future__ import annotations

import sys
from pathlib import Path

from .certs import CertTool, ProvisionError, find_mkcert
from .config import load_config
from .network import AddressSelectionError, get_network_ips, select_local_ip
from .settings import Settings, write_settings
from .supervisor import supervise

SERVE_CMD = [sys.executable, "-m", "lanproxy.serve"]


def provision(settings_path: str | Path = ".env", tool_dir: str | Path = ".") -> Settings:
    settings_path = Path(settings_path)

    print("▸ Looking for mkcert...")
    tool = CertTool(find_mkcert(tool_dir), cwd=settings_path.parent)
    print(f"✔ Found mkcert: {tool.path}")

    print("▸ Installing local root CA...")
    tool.install()
    ca_root = tool.ca_root()
    print(f"✔ Root CA directory: {ca_root}")

    print("▸ Detecting LAN address...")
    local_ip = select_local_ip(get_network_ips())
    print(f"✔ LAN address: {local_ip}")

    print("▸ Issuing certificate...")
    pair = tool.issue(local_ip)
    print(f"✔ Certificate: {pair.cert_file}")
    print(f"✔ Private key: {pair.key_file}")

    settings = Settings(
        local_ip=local_ip,
        cert_file=pair.cert_file,
        key_file=pair.key_file,
        ca_root=ca_root,
    )
    write_settings(settings, settings_path)
    print(f"✔ Settings written to {settings_path}")
    return settings


def main() -> int:
    config = load_config()
    try:
        settings = provision(config.settings_path)
    except (ProvisionError, AddressSelectionError) as e:
        print(f"✖ Setup failed: {e}")
        return 1

    print(f"▸ Server address: https://{settings.local_ip}:{config.listen_port}")
    print("Press Ctrl+C to stop the server\n", flush=True)
    return supervise(SERVE_CMD)


if __name__ == "__main__":
    sys.exit(main())
