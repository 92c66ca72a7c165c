class CourtFinderError(Exception):
    """Base class for errors raised while computing court availability."""


class ParseError(CourtFinderError):
    """Malformed clock time or malformed reservation payload."""


class InvalidRangeError(CourtFinderError, ValueError):
    """An interval whose end is not after its start."""


class SourceUnavailableError(CourtFinderError):
    """The reservation data could not be fetched."""
