# luckydraw/security.py
from fastapi import Request


def is_same_origin(request: Request) -> bool:
    """Reject browser requests whose Origin is not this host.

    No Origin header (curl, same-origin GET) passes.
    """
    origin = request.headers.get("origin")
    if not origin:
        return True

    host = request.headers.get("x-forwarded-host") or request.headers.get("host")
    if not host:
        return False

    protocol = request.headers.get("x-forwarded-proto") or request.url.scheme
    return origin == f"{protocol}://{host}"


def get_client_ip(request: Request) -> str:
    # best effort only: both headers are client controlled
    forwarded = request.headers.get("x-forwarded-for")
    if forwarded:
        return forwarded.split(",")[0].strip()

    real_ip = request.headers.get("x-real-ip")
    if real_ip:
        return real_ip.strip()

    return "unknown"
