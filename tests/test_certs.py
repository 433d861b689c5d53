import os

import pytest

from lanproxy.certs import (
    CertificateError,
    CertificatePair,
    CertTool,
    CertToolError,
    CertToolNotFound,
    find_mkcert,
)

posix_only = pytest.mark.skipif(os.name == "nt", reason="needs a POSIX shell")


def test_find_mkcert_missing(tmp_path):
    with pytest.raises(CertToolNotFound, match="mkcert"):
        find_mkcert(tmp_path)


def test_find_mkcert_prefers_plain_name(tmp_path):
    (tmp_path / "mkcert.exe").write_text("")
    (tmp_path / "mkcert").write_text("")
    assert find_mkcert(tmp_path).name == "mkcert"


def test_find_mkcert_windows_name(tmp_path):
    (tmp_path / "mkcert.exe").write_text("")
    assert find_mkcert(tmp_path).name == "mkcert.exe"


@posix_only
def test_install_and_ca_root(fake_mkcert, tmp_path):
    tool = CertTool(fake_mkcert, cwd=tmp_path)
    assert "installed" in tool.install()
    assert tool.ca_root() == "/tmp/fake-caroot"


@posix_only
def test_issue_writes_pair(fake_mkcert, tmp_path):
    pair = CertTool(fake_mkcert, cwd=tmp_path).issue("192.168.1.50")
    assert pair == CertificatePair("192.168.1.50.pem", "192.168.1.50-key.pem")
    assert (tmp_path / "192.168.1.50.pem").exists()
    assert (tmp_path / "192.168.1.50-key.pem").exists()


@posix_only
def test_tool_failure_carries_message(fake_mkcert, tmp_path):
    with pytest.raises(CertToolError, match="boom") as exc:
        CertTool(fake_mkcert, cwd=tmp_path).issue("fail")
    assert exc.value.cmd[-1] == "fail"


@posix_only
def test_missing_output_files(fake_mkcert, tmp_path):
    with pytest.raises(CertificateError, match="not generated"):
        CertTool(fake_mkcert, cwd=tmp_path).issue("nofiles")
