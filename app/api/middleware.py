"""
Global middleware.

Restricts the API to an allowlist of client IPv4 addresses and CIDR ranges
when one is configured.
"""

from __future__ import annotations

import ipaddress
import logging
from http import HTTPStatus
from typing import Iterable, Optional

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse

from app.core.config import NetworkSettings

logger = logging.getLogger(__name__)

ALLOW_ALL = "0.0.0.0/0"


def normalize_ip(raw: Optional[str]) -> Optional[str]:
    """
    Reduce a peer address to a bare IPv4 string.

    IPv4-mapped IPv6 addresses (``::ffff:10.0.0.1``) are unwrapped. Pure
    IPv6 addresses are not supported and yield ``None``.
    """
    if not raw:
        return None
    candidate = raw.strip().split(",")[-1].strip()
    try:
        address = ipaddress.ip_address(candidate)
    except ValueError:
        return None
    if isinstance(address, ipaddress.IPv6Address):
        mapped = address.ipv4_mapped
        return str(mapped) if mapped else None
    return str(address)


def is_ip_allowed(ip: Optional[str], allowed_ranges: Iterable[str]) -> bool:
    """Return True when ``ip`` matches an exact entry or falls inside a CIDR range."""
    normalized = normalize_ip(ip)
    for entry in allowed_ranges:
        if entry == ALLOW_ALL:
            return True
        if normalized is None:
            continue
        if "/" not in entry:
            if normalize_ip(entry) == normalized:
                return True
            continue
        try:
            network = ipaddress.IPv4Network(entry, strict=False)
        except ValueError:
            logger.warning("Ignoring malformed allowlist entry %r", entry)
            continue
        if ipaddress.IPv4Address(normalized) in network:
            return True
    return False


def _client_ip(request: Request, trust_forwarded_for: bool) -> Optional[str]:
    if trust_forwarded_for:
        forwarded = request.headers.get("x-forwarded-for")
        if forwarded:
            return forwarded.split(",")[0].strip()
    return request.client.host if request.client else None


def register_middleware(app: FastAPI, network: NetworkSettings) -> None:
    """Attach the IP allowlist when ranges are configured."""
    allowed_ranges = tuple(network.allowed_ip_ranges)
    if not allowed_ranges:
        return

    @app.middleware("http")
    async def restrict_to_allowed_networks(request: Request, call_next):
        raw_ip = _client_ip(request, network.trust_forwarded_for)
        client_ip = normalize_ip(raw_ip) or raw_ip
        if not is_ip_allowed(raw_ip, allowed_ranges):
            logger.warning("Access denied for IP %s", client_ip)
            return JSONResponse(
                status_code=HTTPStatus.FORBIDDEN,
                content={
                    "error": "Access Denied",
                    "message": "This application is only available on the office network.",
                    "ip": client_ip,
                },
            )
        logger.debug("Client IP %s allowed", client_ip)
        return await call_next(request)


__all__ = ["is_ip_allowed", "normalize_ip", "register_middleware"]
