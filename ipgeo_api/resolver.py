"""
Target address resolution for lookup requests
"""

import ipaddress
from typing import Optional, Sequence, Tuple

# IP addresses will never be longer than 46 characters
# IPv4 = 255.255.255.255 (slash + 15 characters)
# IPv6 = ABCD:ABCD:ABCD:ABCD:ABCD:ABCD:ABCD:ABCD (slash + 39 characters)
# IPv4-mapped IPv6 = ABCD:ABCD:ABCD:ABCD:ABCD:ABCD:192.168.158.190 (slash + 45 characters)
MAX_PATH_LENGTH = 46

SELF_TOKENS = ("", "self", "me")

REAL_IP_HEADER = "x-real-ip"

class AddressRejected(Exception):
    """The request does not name a usable address"""

    def __init__(self, status_code: int, message: str):
        super().__init__(message)
        self.status_code = status_code
        self.message = message

def defang_ip(addr: str) -> str:
    """Strip IPv6 brackets and the trailing ``:port`` from a remote address.

    Assumes exactly one trailing port segment; a bare IPv6 address loses
    its last group.
    """
    addr = addr.replace("[", "", 1)
    addr = addr.replace("]", "", 1)
    return ":".join(addr.split(":")[:-1])

def remote_addr(client: Optional[Tuple[str, int]]) -> str:
    """``host:port`` form of an ASGI client tuple, bracketing IPv6 hosts"""
    if not client:
        return ""
    host, port = client[0], client[1]
    if ":" in host:
        return f"[{host}]:{port}"
    return f"{host}:{port}"

def first_segment(path: str) -> str:
    parts = path.split("/")
    return parts[1] if len(parts) > 1 else ""

def canonical_ip(candidate: str) -> str:
    """Parse ``candidate`` as IPv4 or IPv6 and return its canonical text.

    Raises AddressRejected(422) when it is not an address.
    """
    try:
        ip = ipaddress.ip_address(candidate)
    except ValueError:
        raise AddressRejected(422, "Unprocessable Entity")

    if ip.version == 6:
        if ip.scope_id:
            raise AddressRejected(422, "Unprocessable Entity")
        if ip.ipv4_mapped is not None:
            ip = ip.ipv4_mapped
    return str(ip)

def resolve_address(path: str, real_ip: Sequence[str], remote: str) -> str:
    """Work out which address a request asks about.

    ``real_ip`` holds the values of the X-Real-Ip header, in order;
    ``remote`` is the transport address in ``host:port`` form.
    """
    if len(path) > MAX_PATH_LENGTH:
        raise AddressRejected(403, "Forbidden")

    candidate = first_segment(path)

    # Set the requested IP to the caller's own address if we got no address
    if candidate in SELF_TOKENS:
        if real_ip and real_ip[0]:
            # Most likely behind a reverse proxy
            candidate = real_ip[0]
        else:
            candidate = defang_ip(remote)

    return canonical_ip(candidate)
