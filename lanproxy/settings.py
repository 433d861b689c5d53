"""
lanproxy.settings
~~~~~~~~~~~~~~~~~
The four-line ``KEY=VALUE`` file that provisioning writes and the proxy
reads back:

.env
----
# HTTPS proxy settings
LOCAL_IP=192.168.1.50
CERT_FILE=192.168.1.50.pem
KEY_FILE=192.168.1.50-key.pem
CA_ROOT=/home/me/.local/share/mkcert

The file doubles as the project .env, so runtime keys such as
PROXY_LISTEN_PORT may sit beside these four and survive a rewrite.
"""

from __future__ import annotations

import pathlib
from dataclasses import dataclass
from typing import Dict

from dotenv import set_key

HEADER = "# HTTPS proxy settings"

_FIELDS = {
    "LOCAL_IP": "local_ip",
    "CERT_FILE": "cert_file",
    "KEY_FILE": "key_file",
    "CA_ROOT": "ca_root",
}


class SettingsError(Exception):
    pass


@dataclass(frozen=True, slots=True)
class Settings:
    local_ip: str
    cert_file: str
    key_file: str
    ca_root: str

    def dumps(self) -> str:
        lines = [HEADER]
        lines.extend(f"{key}={getattr(self, attr)}" for key, attr in _FIELDS.items())
        return "\n".join(lines) + "\n"

    # Relative file names are resolved against the settings file's directory.
    def cert_path(self, base: str | pathlib.Path) -> pathlib.Path:
        return pathlib.Path(base) / self.cert_file

    def key_path(self, base: str | pathlib.Path) -> pathlib.Path:
        return pathlib.Path(base) / self.key_file


def parse_settings(text: str) -> Dict[str, str]:
    """Split each non-blank, non-comment line on its first ``=``."""
    values: Dict[str, str] = {}
    for ln in text.splitlines():
        ln = ln.strip()
        if not ln or ln.startswith("#"):
            continue
        key, sep, value = ln.partition("=")
        if not sep:
            continue
        values[key.strip()] = value.strip()
    return values


def write_settings(settings: Settings, path: str | pathlib.Path) -> pathlib.Path:
    """Write the four keys; any other lines already in *path* are kept."""
    path = pathlib.Path(path)
    if not path.exists():
        path.write_text(settings.dumps(), encoding="utf-8")
        return path
    for key, attr in _FIELDS.items():
        set_key(path, key, getattr(settings, attr), quote_mode="never")
    return path


def load_settings(path: str | pathlib.Path) -> Settings:
    path = pathlib.Path(path)
    try:
        text = path.read_text(encoding="utf-8")
    except FileNotFoundError:
        raise SettingsError(f"settings file {path} does not exist") from None

    values = parse_settings(text)
    missing = [key for key in _FIELDS if not values.get(key)]
    if missing:
        raise SettingsError(f"settings file {path} is missing {', '.join(missing)}")

    return Settings(**{attr: values[key] for key, attr in _FIELDS.items()})
