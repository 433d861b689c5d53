"""
lanproxy.network
~~~~~~~~~~~~~~~~
Find the LAN address the certificate is minted for.
"""

from __future__ import annotations

import ipaddress
import socket
from typing import Dict, Mapping

import psutil

PREFERRED_INTERFACES = ("ethernet", "wlan")


class AddressSelectionError(Exception):
    pass


def get_network_ips() -> Dict[str, str]:
    """Map lower-cased interface name -> IPv4 address, loopback excluded."""
    ips: Dict[str, str] = {}
    for name, addrs in psutil.net_if_addrs().items():
        for addr in addrs:
            if addr.family != socket.AF_INET:
                continue
            if ipaddress.ip_address(addr.address).is_loopback:
                continue
            ips[name.lower()] = addr.address
    return ips


def select_local_ip(ips: Mapping[str, str]) -> str:
    for name in PREFERRED_INTERFACES:
        if name in ips:
            return ips[name]
    seen = ", ".join(sorted(ips)) or "none"
    raise AddressSelectionError(
        f"no interface named {' or '.join(PREFERRED_INTERFACES)} "
        f"(found: {seen})"
    )
