"""Exception types raised while building and serving the bridge registry."""


class WolpertingerError(Exception):
    """Base exception for all bridge registry errors."""

    pass


class DescriptorParseError(WolpertingerError):
    """An extra-info document could not be parsed."""

    def __init__(self, message: str, line_number: int | None = None):
        self.line_number = line_number
        if line_number is not None:
            message = f"line {line_number}: {message}"
        super().__init__(message)


class MalformedHeaderError(DescriptorParseError):
    """An 'extra-info' line does not have exactly three fields."""

    pass


class MalformedTransportError(DescriptorParseError):
    """A 'transport' line has fewer than three fields."""

    pass


class MalformedArgumentError(DescriptorParseError):
    """A transport argument is not a single key=value pair."""

    pass


class MissingBridgeContextError(DescriptorParseError):
    """A 'transport' line appeared before any 'extra-info' line."""

    pass


class AddressParseError(DescriptorParseError):
    """An address or port could not be decoded."""

    pass


class RowDecodeError(WolpertingerError):
    """A database row does not satisfy the bridge field constraints."""

    pass


class SourceUnavailableError(WolpertingerError):
    """The relational store or descriptor document could not be read."""

    pass
