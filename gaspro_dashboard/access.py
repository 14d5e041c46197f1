"""
Admin surface gate.

This only decides whether the admin navigation is shown. It is a UI
convenience, not an access-control boundary: anything behind it must not
rely on it for security.
"""

import logging

from .config import ALLOWED_ADMIN_IPS, LOCAL_HOSTS

logger = logging.getLogger(__name__)


def client_address(headers: dict | None) -> str | None:
    """First address in X-Forwarded-For, else X-Real-Ip, else None."""
    if not headers:
        return None
    lowered = {str(k).lower(): v for k, v in headers.items()}
    forwarded = lowered.get("x-forwarded-for")
    if forwarded:
        return str(forwarded).split(",")[0].strip() or None
    real_ip = lowered.get("x-real-ip")
    return str(real_ip).strip() if real_ip else None


def request_host(headers: dict | None) -> str | None:
    """Hostname from the Host header with any port removed."""
    if not headers:
        return None
    lowered = {str(k).lower(): v for k, v in headers.items()}
    host = lowered.get("host")
    if not host:
        return None
    host = str(host).strip()
    if host.startswith("["):
        return host[1:host.find("]")] if "]" in host else host
    return host.rsplit(":", 1)[0] if host.count(":") == 1 else host


def is_admin_allowed(
    address: str | None,
    host: str | None = None,
    allowed: set[str] = ALLOWED_ADMIN_IPS,
) -> bool:
    """Allow-listed address, or any local/loopback access."""
    if host in LOCAL_HOSTS or address in LOCAL_HOSTS:
        return True
    allowed_flag = address is not None and address in allowed
    if not allowed_flag:
        logger.debug("Admin surface hidden for address=%s host=%s", address, host)
    return allowed_flag
