"""Address and port decoding shared by the descriptor parser and the loader."""

import ipaddress
import socket

from wolpertinger.bridges.exceptions import AddressParseError

IPAddress = ipaddress.IPv4Address | ipaddress.IPv6Address

MAX_PORT = 65535


def split_host_port(hostport: str) -> tuple[str, str]:
    """
    Split ``host:port`` or ``[v6host]:port`` into host and port strings.

    Raises:
        AddressParseError: If the string has no port or an unbracketed IPv6 host
    """
    if hostport.startswith("["):
        end = hostport.find("]")
        if end < 0:
            raise AddressParseError(f"missing ']' in address {hostport!r}")
        host, rest = hostport[1:end], hostport[end + 1 :]
        if not rest.startswith(":"):
            raise AddressParseError(f"missing port in address {hostport!r}")
        return host, rest[1:]

    host, sep, port = hostport.rpartition(":")
    if not sep:
        raise AddressParseError(f"missing port in address {hostport!r}")
    if ":" in host:
        raise AddressParseError(f"too many colons in address {hostport!r}")
    return host, port


def resolve_address(host: str) -> IPAddress:
    """
    Decode an IP literal, resolving a host name if necessary.

    Raises:
        AddressParseError: If the host is empty or does not resolve
    """
    if not host:
        raise AddressParseError("empty host")
    try:
        return ipaddress.ip_address(host)
    except ValueError:
        pass

    try:
        infos = socket.getaddrinfo(host, None, proto=socket.IPPROTO_TCP)
    except (socket.gaierror, UnicodeError) as e:
        raise AddressParseError(f"cannot resolve host {host!r}: {e}") from e
    if not infos:
        raise AddressParseError(f"cannot resolve host {host!r}")
    return ipaddress.ip_address(infos[0][4][0])


def parse_port(value: str | int) -> int:
    """
    Decode a TCP/UDP port number in 0..65535.

    Raises:
        AddressParseError: If the value is not a number in range
    """
    if isinstance(value, bool):
        raise AddressParseError(f"invalid port {value!r}")
    if isinstance(value, int):
        port = value
    elif isinstance(value, str) and value.isascii() and value.isdigit():
        port = int(value)
    else:
        raise AddressParseError(f"invalid port {value!r}")
    if not 0 <= port <= MAX_PORT:
        raise AddressParseError(f"port {port} out of range")
    return port
