class ParserError(Exception):
    """Base class for parsing failures."""


class DocumentDecodeError(ParserError):
    """Raised when the page text source cannot decode the document bytes."""


class UnsupportedFormatError(ParserError):
    """Raised when a format override names an unknown layout."""


class ConfigError(ParserError):
    """Raised when boilerplate rules cannot be loaded."""
