import ipaddress
import logging
import socket

logger = logging.getLogger(__name__)

IP_NOT_FOUND = "IP Not Found"


def _is_lan_ipv4(address):
    try:
        ip = ipaddress.ip_address(address)
    except ValueError:
        return False
    return ip.version == 4 and ip.is_private and not ip.is_loopback and not ip.is_link_local


def get_local_ip():
    """
    Find this machine's LAN IPv4 address for the phone to connect to.
    Returns "IP Not Found" when there is no private, non-loopback address.
    """
    candidates = []
    try:
        # connect() on a UDP socket only picks a route, nothing is sent
        with socket.socket(socket.AF_INET, socket.SOCK_DGRAM) as s:
            s.connect(("8.8.8.8", 80))
            candidates.append(s.getsockname()[0])
    except OSError as e:
        logger.debug("Route lookup failed: %s", e)
    try:
        candidates.extend(socket.gethostbyname_ex(socket.gethostname())[2])
    except OSError as e:
        logger.error("Error while finding IP address: %s", e)

    for address in candidates:
        if _is_lan_ipv4(address):
            return address
    return IP_NOT_FOUND
