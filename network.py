import ipaddress
import logging
import socket

from config import ServerConfig
from errors import AddressResolutionFailure

logger = logging.getLogger(__name__)

LOOPBACK = "127.0.0.1"
# Any routable address works; connect() on a UDP socket sends nothing.
PROBE_ADDRESS = ("8.8.8.8", 80)


def _query_local_ip() -> str:
    """Ask the OS which interface it would route outbound traffic through."""
    try:
        s = socket.socket(socket.AF_INET, socket.SOCK_DGRAM)
        try:
            s.connect(PROBE_ADDRESS)
            ip = s.getsockname()[0]
        finally:
            s.close()
        addr = ipaddress.ip_address(ip)
    except (OSError, ValueError, IndexError, TypeError) as e:
        raise AddressResolutionFailure(str(e)) from e
    if addr.is_unspecified:
        raise AddressResolutionFailure(f"no usable interface address ({ip})")
    return str(addr)


class AddressResolver:
    """Builds the base URL other devices use to reach this server."""

    def __init__(self, config: ServerConfig):
        self.config = config

    def local_ip(self) -> str:
        """Get the LAN address of this machine, or the loopback address."""
        try:
            return _query_local_ip()
        except AddressResolutionFailure as e:
            logger.debug("could not resolve LAN address, using %s: %s", LOOPBACK, e)
            return LOOPBACK

    def resolve(self) -> str:
        ip = self.local_ip()
        if ":" in ip:
            ip = f"[{ip}]"
        return f"{self.config.protocol}://{ip}:{self.config.port}"
