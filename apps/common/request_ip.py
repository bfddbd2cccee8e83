"""
Secure client IP detection for the Storefront platform

Wraps django-ipware so that proxy headers are only honored when the direct
peer is listed in IPWARE_TRUSTED_PROXY_LIST. Used for webhook audit rows and
rate limiting keys.
"""

from django.conf import settings
from django.http import HttpRequest
from ipware import get_client_ip


def get_safe_client_ip(request: HttpRequest) -> str:
    """
    Get the real client IP address, respecting proxy trust configuration.

    Returns '127.0.0.1' when nothing usable is found.
    """
    trusted_proxies = list(getattr(settings, "IPWARE_TRUSTED_PROXY_LIST", []))
    remote_addr = request.META.get("REMOTE_ADDR", "127.0.0.1") or "127.0.0.1"

    # No trusted proxies configured: headers are ignored (prevents spoofing)
    if not trusted_proxies:
        return remote_addr

    client_ip, _routable = get_client_ip(request, proxy_trusted_ips=trusted_proxies)
    return client_ip or remote_addr
