"""Exception types raised by VimeTileServices.

Dataset-level errors (MetadataFetchError, MetadataValidationError) make the
whole stack unusable.  Chunk-level errors (UnsupportedEncodingError,
TileFetchError, TileDecodeError) only affect the chunk being downloaded.
"""

class VimeError(Exception):
    pass


class MetadataFetchError(VimeError):
    """The stack info could not be retrieved from the server."""


class MetadataValidationError(VimeError):
    """
    The stack info descriptor is malformed.

    Attributes:
        field: Dotted path of the offending field, e.g. 'dimension.x'.
               An empty string refers to the descriptor itself.
    """
    def __init__(self, field, message):
        self.field = field
        if field:
            message = f"Invalid stack info field '{field}': {message}"
        else:
            message = f"Invalid stack info: {message}"
        super().__init__(message)


class UnsupportedEncodingError(VimeError):
    def __init__(self, encoding):
        self.encoding = encoding
        super().__init__(f"No tile decoder registered for encoding: {encoding}")


class TileFetchError(VimeError):
    pass


class TileDecodeError(VimeError):
    pass


class Cancelled(VimeError):
    """The operation was aborted through its cancellation token."""


class InvalidSourceUrlError(VimeError, ValueError):
    pass
