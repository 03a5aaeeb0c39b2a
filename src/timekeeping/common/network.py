from __future__ import annotations

import ipaddress
from typing import Iterable, Optional


def ip_matches(address: str, allowed: str) -> bool:
    """True if ``address`` equals ``allowed`` or falls inside it as a CIDR block."""
    try:
        ip = ipaddress.ip_address(address.strip())
    except ValueError:
        return False

    allowed = allowed.strip()
    if "/" not in allowed:
        try:
            return ip == ipaddress.ip_address(allowed)
        except ValueError:
            return False

    try:
        network = ipaddress.ip_network(allowed, strict=False)
    except ValueError:
        return False
    return ip.version == network.version and ip in network


def ip_allowed(address: Optional[str], allowed_ips: Iterable[str]) -> bool:
    """Check an address against an allow-list. An empty list allows everything."""
    allowed_ips = [a for a in allowed_ips if a and a.strip()]
    if not allowed_ips:
        return True
    if not address:
        return False
    return any(ip_matches(address, allowed) for allowed in allowed_ips)
