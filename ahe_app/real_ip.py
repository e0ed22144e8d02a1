from __future__ import annotations

import ipaddress
from typing import Mapping, NamedTuple

CLIENT_IP_SOURCE_PEER = "peer_addr"
CLIENT_IP_SOURCE_HEADER = "header"
CLIENT_IP_SOURCE_HEADER_INVALID = "invalid_header"


class ClientIp(NamedTuple):
    ip: str | None
    source: str


def parse_forwarded_ip(value: str) -> str | None:
    first = value.split(",", 1)[0].strip()
    if not first:
        return None
    candidate = first.strip('"')
    if candidate.lower().startswith("for="):
        candidate = candidate[4:].strip().strip('"')
    try:
        return str(ipaddress.ip_address(candidate))
    except ValueError:
        return None


def resolve_client_ip(
    peer_ip: str | None,
    headers: Mapping[str, str],
    header_name: str | None,
) -> ClientIp:
    """Prefer the configured proxy header; fall back to the socket peer."""
    if not header_name:
        return ClientIp(peer_ip, CLIENT_IP_SOURCE_PEER)
    raw = headers.get(header_name)
    if raw is None:
        return ClientIp(peer_ip, CLIENT_IP_SOURCE_PEER)
    parsed = parse_forwarded_ip(raw)
    if parsed is None:
        return ClientIp(peer_ip, CLIENT_IP_SOURCE_HEADER_INVALID)
    return ClientIp(parsed, CLIENT_IP_SOURCE_HEADER)


__all__ = ["ClientIp", "parse_forwarded_ip", "resolve_client_ip"]
