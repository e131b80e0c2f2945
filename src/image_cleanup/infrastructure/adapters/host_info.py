"""PsutilHostInfo — hostname and IPv4 addresses of interfaces that are up."""

from __future__ import annotations

import ipaddress
import logging
import socket
from typing import TYPE_CHECKING

import psutil

from image_cleanup.domain.models import HostDescriptor

if TYPE_CHECKING:
    from image_cleanup.domain.ports import HostInfoPort

logger = logging.getLogger(__name__)


class PsutilHostInfo:
    """Describe the local host via socket and psutil.

    Satisfies the HostInfoPort protocol. Loopback interfaces, interfaces
    that are down, and non-IPv4 addresses are ignored.
    """

    if TYPE_CHECKING:
        _protocol_check: HostInfoPort

    def describe(self) -> HostDescriptor:
        """Return the host descriptor. Raises OSError if the hostname is unavailable."""
        hostname = socket.gethostname()
        if not hostname:
            raise OSError("Empty hostname")
        return HostDescriptor(hostname=hostname, ip_addresses=tuple(_ipv4_addresses()))


def _ipv4_addresses() -> list[str]:
    stats = psutil.net_if_stats()
    found: list[str] = []
    for name, addrs in psutil.net_if_addrs().items():
        stat = stats.get(name)
        if stat is None or not stat.isup:
            continue
        for addr in addrs:
            if addr.family != socket.AF_INET:
                continue
            try:
                ip = ipaddress.IPv4Address(addr.address)
            except ValueError:
                logger.debug("Ignoring unparseable address %r on %s", addr.address, name)
                continue
            if ip.is_loopback:
                continue
            found.append(str(ip))
    return found
