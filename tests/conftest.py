import stat

import pytest
import trustme

from lanproxy.settings import Settings, write_settings

LAN_IP = "192.168.1.50"

FAKE_MKCERT = """#!/bin/sh
case "$1" in
  -install) echo "The local CA is now installed in the system trust store!" ;;
  -CAROOT) echo "/tmp/fake-caroot" ;;
  fail) echo "ERROR: boom" >&2; exit 1 ;;
  nofiles) echo "pretending" ;;
  *) echo cert > "$1.pem"; echo key > "$1-key.pem" ;;
esac
"""


@pytest.fixture
def fake_mkcert(tmp_path):
    path = tmp_path / "mkcert"
    path.write_text(FAKE_MKCERT)
    path.chmod(path.stat().st_mode | stat.S_IXUSR | stat.S_IXGRP | stat.S_IXOTH)
    return path


DOTENV_KEYS = (
    "PROXY_LISTEN_HOST",
    "PROXY_LISTEN_PORT",
    "PROXY_TARGET_HOST",
    "PROXY_TARGET_PORT",
    "PROXY_SETTINGS_PATH",
    "PROXY_LOG_PATH",
    "LOCAL_IP",
    "CERT_FILE",
    "KEY_FILE",
    "CA_ROOT",
)


@pytest.fixture
def clean_env(monkeypatch):
    """Unset every key a .env may load, and drop whatever load_dotenv sets."""
    for var in DOTENV_KEYS:
        monkeypatch.setenv(var, "")
        monkeypatch.delenv(var)


@pytest.fixture
def ca():
    return trustme.CA()


@pytest.fixture
def settings_path(tmp_path, ca):
    """A provisioned directory: leaf pair for LAN_IP plus its settings file."""
    leaf = ca.issue_cert(LAN_IP, "127.0.0.1")
    for i, blob in enumerate(leaf.cert_chain_pems):
        blob.write_to_path(str(tmp_path / f"{LAN_IP}.pem"), append=i > 0)
    leaf.private_key_pem.write_to_path(str(tmp_path / f"{LAN_IP}-key.pem"))

    return write_settings(
        Settings(
            local_ip=LAN_IP,
            cert_file=f"{LAN_IP}.pem",
            key_file=f"{LAN_IP}-key.pem",
            ca_root=str(tmp_path / "caroot"),
        ),
        tmp_path / ".env",
    )
