"""
Parser for the bridge authority's extra-info descriptor document.

Only two directives matter here::

    extra-info <nickname> <fingerprint>
    transport <name> <address>:<port> [key=value,key=value,...]

An ``extra-info`` line opens a new bridge block; ``transport`` lines that
follow it describe that bridge's pluggable transports. Every other line is
ignored so that new descriptor fields do not break the parser.
"""

from collections.abc import Iterable, Iterator
from pathlib import Path
from typing import TextIO

from wolpertinger.bridges.addresses import parse_port, resolve_address, split_host_port
from wolpertinger.bridges.exceptions import (
    AddressParseError,
    DescriptorParseError,
    MalformedArgumentError,
    MalformedHeaderError,
    MalformedTransportError,
    MissingBridgeContextError,
    SourceUnavailableError,
)
from wolpertinger.bridges.models import Bridge, Registry, Transport
from wolpertinger.core.logging import get_logger

logger = get_logger(__name__)

EXTRA_INFO_KEYWORD = "extra-info"
TRANSPORT_KEYWORD = "transport"
EXTRA_INFO_WORDS = 3
MIN_TRANSPORT_WORDS = 3
MAX_LINE_LENGTH = 64 * 1024


def parse_transport_arguments(field: str) -> dict[str, list[str]]:
    """
    Parse a comma-separated ``key=value`` list.

    Repeated keys accumulate values in order of appearance.

    Raises:
        MalformedArgumentError: If an entry does not contain exactly one '='
    """
    arguments: dict[str, list[str]] = {}
    for entry in field.split(","):
        kv = entry.split("=")
        if len(kv) != 2:
            raise MalformedArgumentError(f"key=value pair {entry!r} in {field!r} not separated by a single '='")
        key, value = kv
        arguments.setdefault(key, []).append(value)
    return arguments


def parse_transport_line(line: str, fingerprint: str) -> Transport:
    """
    Parse one ``transport`` line into a Transport owned by ``fingerprint``.

    Raises:
        MalformedTransportError: If the line has fewer than three fields
        AddressParseError: If the address or port cannot be decoded
        MalformedArgumentError: If the argument list is malformed
    """
    words = line.split()
    if not words or words[0] != TRANSPORT_KEYWORD:
        raise MalformedTransportError(f"no {TRANSPORT_KEYWORD!r} keyword in {line!r}")
    if len(words) < MIN_TRANSPORT_WORDS:
        raise MalformedTransportError(f"not enough fields in {TRANSPORT_KEYWORD!r} line {line!r}")

    host, port = split_host_port(words[2])
    arguments = parse_transport_arguments(words[3]) if len(words) > MIN_TRANSPORT_WORDS else {}

    return Transport(
        type=words[1],
        address=resolve_address(host),
        port=parse_port(port),
        fingerprint=fingerprint,
        arguments=arguments,
    )


def parse_extrainfo_doc(lines: Iterable[str]) -> Registry:
    """
    Parse an extra-info document into a registry of transport-only bridges.

    Args:
        lines: Lines of the document, e.g. an open text file

    Returns:
        Registry whose bridges carry fingerprints and transports only

    Raises:
        DescriptorParseError: On the first malformed directive; the whole
            document is rejected
    """
    bridges: dict[str, Bridge] = {}
    current: Bridge | None = None

    for line_number, raw_line in enumerate(lines, start=1):
        words = raw_line.split()
        if not words:
            continue
        keyword = words[0]

        if keyword == EXTRA_INFO_KEYWORD:
            if len(words) != EXTRA_INFO_WORDS:
                raise MalformedHeaderError(
                    f"incorrect number of words in {EXTRA_INFO_KEYWORD!r} line",
                    line_number,
                )
            fingerprint = words[2]
            current = bridges.setdefault(fingerprint, Bridge(fingerprint=fingerprint))

        elif keyword == TRANSPORT_KEYWORD:
            if current is None:
                raise MissingBridgeContextError(
                    f"{TRANSPORT_KEYWORD!r} line before any {EXTRA_INFO_KEYWORD!r} line",
                    line_number,
                )
            try:
                transport = parse_transport_line(raw_line, current.fingerprint)
            except (MalformedTransportError, MalformedArgumentError, AddressParseError) as e:
                raise type(e)(str(e), line_number) from e
            if not current.add_transport(transport):
                logger.debug(
                    "Ignoring duplicate transport",
                    extra={"line_number": line_number, "transport": str(transport)},
                )

    return Registry(bridges.values())


def iter_lines(stream: TextIO, max_length: int = MAX_LINE_LENGTH) -> Iterator[str]:
    """Yield lines from ``stream``, refusing any line longer than ``max_length``."""
    line_number = 0
    while True:
        line = stream.readline(max_length + 1)
        if not line:
            return
        line_number += 1
        if len(line) > max_length:
            raise DescriptorParseError(f"line longer than {max_length} characters", line_number)
        yield line


def read_extrainfo_file(path: str | Path) -> Registry:
    """
    Open, parse and close an extra-info document.

    Raises:
        SourceUnavailableError: If the file cannot be opened or read
        DescriptorParseError: If the document is malformed
    """
    try:
        stream = open(path, encoding="utf-8")
    except OSError as e:
        raise SourceUnavailableError(f"cannot open extra-info file {str(path)!r}: {e}") from e

    with stream:
        try:
            registry = parse_extrainfo_doc(iter_lines(stream))
        except UnicodeDecodeError as e:
            raise DescriptorParseError(f"extra-info file {str(path)!r} is not UTF-8: {e}") from e
        except OSError as e:
            raise SourceUnavailableError(f"cannot read extra-info file {str(path)!r}: {e}") from e

    logger.info(
        "Parsed extra-info document",
        extra={"path": str(path), "bridges": len(registry), "transports": registry.transport_count()},
    )
    return registry
