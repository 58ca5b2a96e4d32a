"""Request metadata helpers."""
from __future__ import annotations

from typing import Mapping, Optional

import streamlit as st

_CLIENT_IP_HEADERS = ("X-Real-IP", "CF-Connecting-IP")


def client_ip_from_headers(headers: Mapping[str, str] | None) -> Optional[str]:
    if not headers:
        return None
    forwarded_for = headers.get("X-Forwarded-For")
    if forwarded_for:
        return forwarded_for.split(",")[0].strip() or None
    for header in _CLIENT_IP_HEADERS:
        candidate = headers.get(header)
        if candidate:
            return candidate.strip()
    return None


def get_client_ip() -> Optional[str]:
    """Best-effort client IP of the current Streamlit request, recorded in audit entries."""

    return client_ip_from_headers(st.context.headers)


__all__ = ["client_ip_from_headers", "get_client_ip"]
