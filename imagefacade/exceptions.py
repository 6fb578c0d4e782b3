class ImageError(Exception):
    pass


class InvalidImageError(ImageError):
    """The source is missing, unreadable or cannot be decoded."""


class UnsupportedFormatError(ImageError, ValueError):
    """The requested output format cannot be written by the backend."""


class ImagePermissionError(ImageError, PermissionError):
    """The save target or its directory is not writable."""
