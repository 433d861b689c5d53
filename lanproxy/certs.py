"""
lanproxy.certs
~~~~~~~~~~~~~~
Thin wrapper around the ``mkcert`` binary shipped next to the project.
``mkcert`` does the real work: it installs a local root CA in the system
trust stores and signs leaf certificates with it.
"""

from __future__ import annotations

import pathlib
import subprocess
from dataclasses import dataclass
from typing import Sequence

TOOL_NAMES = ("mkcert", "mkcert.exe")


class ProvisionError(Exception):
    pass


class CertToolNotFound(ProvisionError):
    pass


class CertToolError(ProvisionError):
    def __init__(self, cmd: Sequence[str], output: str):
        self.cmd = list(cmd)
        self.output = output
        super().__init__(f"command failed: {' '.join(self.cmd)}\n{output}".rstrip())


class CertificateError(ProvisionError):
    pass


@dataclass(frozen=True, slots=True)
class CertificatePair:
    cert_file: str
    key_file: str


def find_mkcert(base_dir: str | pathlib.Path = ".") -> pathlib.Path:
    base_dir = pathlib.Path(base_dir)
    for name in TOOL_NAMES:
        candidate = base_dir / name
        if candidate.exists():
            return candidate.resolve()
    raise CertToolNotFound(
        f"mkcert executable not found in {base_dir.resolve()}; "
        "place mkcert (or mkcert.exe) in that directory"
    )


class CertTool:
    def __init__(self, path: str | pathlib.Path, cwd: str | pathlib.Path = "."):
        self.path = pathlib.Path(path)
        self.cwd = pathlib.Path(cwd)

    # ------------------------------------------------------------------ #
    # public
    # ------------------------------------------------------------------ #

    def install(self) -> str:
        """Create the local root CA if needed and trust it system-wide."""
        return self._run("-install")

    def ca_root(self) -> str:
        return self._run("-CAROOT")

    def issue(self, ip: str) -> CertificatePair:
        """Mint ``<ip>.pem`` and ``<ip>-key.pem`` in :attr:`cwd`."""
        self._run(ip)
        pair = CertificatePair(cert_file=f"{ip}.pem", key_file=f"{ip}-key.pem")
        if not all((self.cwd / f).exists() for f in (pair.cert_file, pair.key_file)):
            raise CertificateError("certificate files were not generated")
        return pair

    # ------------------------------------------------------------------ #
    # private
    # ------------------------------------------------------------------ #

    def _run(self, *args: str) -> str:
        cmd = [str(self.path), *args]
        try:
            result = subprocess.run(
                cmd,
                cwd=self.cwd,
                capture_output=True,
                text=True,
                check=True,
            )
        except subprocess.CalledProcessError as e:
            raise CertToolError(cmd, (e.stderr or e.stdout or "").strip()) from e
        return result.stdout.strip()
