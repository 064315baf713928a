"""
Request metadata helpers used for audit records.
"""

from __future__ import annotations

from ipaddress import ip_address

from fastapi import Request


def _parse_ip(value: str | None) -> str | None:
    if not value:
        return None
    try:
        return str(ip_address(value.strip()))
    except ValueError:
        return None


def extract_client_ip(request: Request | None) -> str | None:
    if request is None:
        return None
    forwarded = request.headers.get("X-Forwarded-For")
    if forwarded:
        first = _parse_ip(forwarded.split(",")[0])
        if first:
            return first
    client = request.client
    return client.host if client else None
