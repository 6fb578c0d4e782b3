from imagefacade.backend_base import ImageType
from imagefacade.exceptions import (
    ImageError,
    ImagePermissionError,
    InvalidImageError,
    UnsupportedFormatError,
)
from imagefacade.geometry import Flip, Offset, ResizeMode
from imagefacade.image import Image


__version__ = "0.1.0"

__all__ = [
    "Flip",
    "Image",
    "ImageError",
    "ImagePermissionError",
    "ImageType",
    "InvalidImageError",
    "Offset",
    "ResizeMode",
    "UnsupportedFormatError",
]
