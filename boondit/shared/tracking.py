"""Request fingerprinting for click, install and view tracking.

Visitors are identified by an anonymized IP plus a coarse device family;
no cookies are set for anonymous visitors.
"""

from __future__ import annotations

LOCAL_ADDRESSES = {"::1", "127.0.0.1", "localhost"}

# order matters: "mac" also appears in iPhone user agents
DEVICE_PATTERNS = (
    (("iphone", "ipad"), "iOS"),
    (("android",), "Android"),
    (("mac",), "macOS"),
    (("windows",), "Windows"),
    (("linux",), "Linux"),
    (("bot", "crawler", "spider"), "Bot"),
)


def client_ip(request) -> str:
    forwarded = request.headers.get("X-Forwarded-For")
    real_ip = request.headers.get("X-Real-IP")
    if forwarded:
        ip = forwarded.split(",")[0].strip()
    else:
        ip = real_ip or request.remote_addr or "localhost"
    if ip in LOCAL_ADDRESSES:
        return "local_dev"
    return ip


def anonymize_ip(ip: str) -> str:
    """Zero the last IPv4 octet; keep only the first three IPv6 groups."""
    parts = ip.split(".")
    if len(parts) == 4:
        parts[3] = "0"
        return ".".join(parts)
    return ":".join(ip.split(":")[:3]) + ":xxxx"


def detect_device(user_agent: str | None) -> str:
    ua = (user_agent or "").lower()
    for needles, device in DEVICE_PATTERNS:
        if any(n in ua for n in needles):
            return device
    return "Unknown"


def tracking_session_id(request) -> str:
    ip = anonymize_ip(client_ip(request))
    return f"{ip}_{detect_device(request.headers.get('User-Agent'))}"


def view_session_id(request, viewer=None) -> str:
    if viewer is not None:
        return f"user_{viewer.id}"
    return f"anon_{client_ip(request)}"
