"""Network helpers used when reporting where the service listens."""

import ipaddress
import socket

ALL_INTERFACES = "0.0.0.0"


def is_all_interfaces(address: str) -> bool:
    """True when *address* means "bind every interface"."""
    return address in ("", "*", ALL_INTERFACES, "::")


def get_local_ips():
    """Return this host's non-loopback IPv4 addresses, in discovery order.

    Falls back to the loopback address when nothing else can be found
    (e.g. in a sandbox without a configured hostname).
    """
    found = []

    try:
        infos = socket.getaddrinfo(socket.gethostname(), None, socket.AF_INET)
    except OSError:
        infos = []
    for info in infos:
        _add_ip(found, info[4][0])

    # Route lookup for the default outbound interface; no packet is sent.
    try:
        with socket.socket(socket.AF_INET, socket.SOCK_DGRAM) as s:
            s.connect(("192.0.2.1", 80))
            _add_ip(found, s.getsockname()[0])
    except OSError:
        pass

    return found or ["127.0.0.1"]


def _add_ip(found, raw):
    try:
        ip = ipaddress.ip_address(raw)
    except ValueError:
        return
    if ip.is_loopback or ip.is_unspecified:
        return
    if str(ip) not in found:
        found.append(str(ip))
