"""Abstract base class for image processing backends."""

from abc import ABC, abstractmethod
from enum import Enum
from typing import BinaryIO


class ImageType(Enum):
    """Closed set of image formats known to the facade."""

    JPEG = "JPEG"
    PNG = "PNG"
    GIF = "GIF"
    WEBP = "WEBP"
    BMP = "BMP"
    UNKNOWN = "UNKNOWN"

    @property
    def extension(self) -> str:
        return FORMAT_EXTENSIONS.get(self, "")

    @property
    def mime(self) -> str:
        return FORMAT_MIME_TYPES.get(self, "application/octet-stream")

    @classmethod
    def from_format(cls, format_name):
        """Map a library format name ("JPEG", "png", ...) to an ImageType.

        Unknown or missing names map to ``ImageType.UNKNOWN``.
        """
        try:
            return cls((format_name or "").upper())
        except ValueError:
            return cls.UNKNOWN

    @classmethod
    def from_extension(cls, extension: str):
        """Map a file extension (with or without the dot) to an ImageType.

        Returns:
            ImageType, or None if the extension is not recognized
        """
        return EXTENSION_FORMATS.get(extension.lower().lstrip("."))


# Standard format to file extension mapping
FORMAT_EXTENSIONS = {
    ImageType.JPEG: "jpg",
    ImageType.PNG: "png",
    ImageType.GIF: "gif",
    ImageType.WEBP: "webp",
    ImageType.BMP: "bmp",
}

EXTENSION_FORMATS = {
    "jpg": ImageType.JPEG,
    "jpe": ImageType.JPEG,
    "jpeg": ImageType.JPEG,
    "png": ImageType.PNG,
    "gif": ImageType.GIF,
    "webp": ImageType.WEBP,
    "bmp": ImageType.BMP,
}

FORMAT_MIME_TYPES = {
    ImageType.JPEG: "image/jpeg",
    ImageType.PNG: "image/png",
    ImageType.GIF: "image/gif",
    ImageType.WEBP: "image/webp",
    ImageType.BMP: "image/bmp",
}


class ImageBackend(ABC):
    """Primitive operation set implemented against a native image library.

    Backends are stateless; every primitive receives the native image
    object (PIL.Image, pyvips.Image or wand.image.Image) and returns the
    resulting native image. A primitive may return the same object after
    mutating it in place or a new object, in which case the caller owns
    both and releases the old one.

    Parameters arrive fully resolved: the facade has already clamped,
    normalized and bounded them.
    """

    #: Native exception classes raised by the underlying library.
    errors: tuple = ()

    #: Formats the backend can decode.
    load_formats = frozenset()

    #: Formats the backend can encode.
    save_formats = frozenset()

    @property
    @abstractmethod
    def name(self) -> str:
        """Backend identifier.

        Returns:
            Backend name: 'pillow', 'vips' or 'wand'
        """

    @abstractmethod
    def open(self, file: str | bytes):
        """Decode an image and return the native image object.

        Args:
            file: File path or encoded bytes

        Returns:
            Native image object, orientation already applied

        Raises:
            One of ``self.errors`` if the data cannot be decoded
        """

    @abstractmethod
    def save(
        self, image, fp: BinaryIO, format: ImageType, quality: int, strip: bool
    ) -> None:
        """Encode native image object into file-like object.

        Args:
            image: Native image object
            fp: File-like object to write to
            format: One of ``self.save_formats``
            quality: Encoding quality, 1-100
            strip: Drop EXIF data and color profiles when True
        """

    @abstractmethod
    def size(self, image) -> tuple[int, int]:
        """Return ``(width, height)`` of the native image."""

    @abstractmethod
    def resize(self, image, width: int, height: int):
        """Resample to exactly ``width`` x ``height``."""

    @abstractmethod
    def crop(self, image, width: int, height: int, offset_x: int, offset_y: int):
        """Cut out a rectangle lying fully inside the image."""

    @abstractmethod
    def rotate(self, image, degrees: int):
        """Rotate clockwise by ``degrees`` in (-180, 180].

        Newly exposed canvas is transparent.
        """

    @abstractmethod
    def flip(self, image, horizontal: bool):
        """Mirror left/right when ``horizontal``, top/bottom otherwise."""

    @abstractmethod
    def sharpen(self, image, amount: int):
        """Sharpen by ``amount`` in 1-100, mapped to the library's units."""

    @abstractmethod
    def blur(self, image, sigma):
        """Gaussian blur, ``sigma`` passed through verbatim."""

    @abstractmethod
    def reflection(self, image, alphas: list[int]):
        """Append a mirrored copy below the image.

        Args:
            image: Native image object
            alphas: Alpha (0-255) for each reflection row, the first row
                being the one adjacent to the original image

        Returns:
            Native image ``len(alphas)`` pixels taller than ``image``
        """

    @abstractmethod
    def watermark(self, image, mark, offset_x: int, offset_y: int, opacity: int):
        """Composite ``mark`` over ``image`` at the given offset.

        The offset may be negative or place the mark partially outside
        the image; the visible part is composited.
        """

    @abstractmethod
    def background(self, image, r: int, g: int, b: int, opacity: int):
        """Composite ``image`` over a solid color with opacity 0-100."""

    @abstractmethod
    def blank(self, width: int, height: int, background: tuple[int, int, int]):
        """Create a new native image filled with an RGB color."""

    @abstractmethod
    def copy(self, image):
        """Return an independent native image with the same pixels."""

    def release(self, image) -> None:
        """Free native resources held by ``image``.

        Called exactly once per native image owned by a facade.
        """

    def get_extension(self, format: ImageType) -> str:
        """Get file extension for a format.

        Args:
            format: ImageType member

        Returns:
            File extension without dot (jpg, png, etc.)
        """
        return format.extension or format.value.lower()
