"""Backend independent image manipulation.

:class:`Image` turns loosely specified arguments (missing dimensions,
offsets measured from either edge, out of range opacities and angles)
into exact parameters and hands them to the primitives of an
:class:`~imagefacade.backend_base.ImageBackend`::

    image = Image("photo.jpg")
    image.resize(200, 200).crop(200, 200).sharpen(20)
    image.save("thumbnail.webp", quality=80)

Every editing method returns the image itself so calls can be chained.
"""

import io
import logging
import os
from collections.abc import Sequence

from PIL import Image as PILImage

from imagefacade.backend_base import ImageBackend, ImageType
from imagefacade.backends import get_backend, get_setting
from imagefacade.exceptions import (
    ImageError,
    ImagePermissionError,
    InvalidImageError,
    UnsupportedFormatError,
)
from imagefacade.geometry import (
    Flip,
    ResizeMode,
    clamp,
    normalize_degrees,
    parse_hex_color,
    reflection_alphas,
    resolve_crop,
    resolve_resize,
    resolve_watermark_offset,
)


logger = logging.getLogger(__name__)

DEFAULT_QUALITY = 100
WHITE = (255, 255, 255)


def inspect(file):
    """Read size and format from the image header without decoding pixels.

    Args:
        file: File path or bytes

    Returns:
        ``(width, height, ImageType)``

    Raises:
        InvalidImageError: If the data is not an image
    """
    source = io.BytesIO(file) if isinstance(file, bytes) else file
    try:
        with PILImage.open(source) as image:
            width, height = image.size
            return width, height, ImageType.from_format(image.format)
    except (OSError, ValueError) as e:
        name = "buffer" if isinstance(file, bytes) else file
        raise InvalidImageError(f"Not an image or invalid image: {name}") from e


def default_quality():
    return clamp(int(get_setting("IMAGEFACADE_QUALITY", DEFAULT_QUALITY)), 1, 100)


def _resolve_backend(backend):
    if isinstance(backend, ImageBackend):
        return backend
    return get_backend(backend)


class Image:
    """An image held in memory by one backend.

    Attributes:
        file: Absolute path of the source file, None for buffers and
            blank canvases
        width: Current width in pixels
        height: Current height in pixels
        type: Current ImageType
        quality: Encoding quality used by save and render, 1-100
        need_strip: Drop metadata on the next save or render
        backend: The ImageBackend doing the pixel work
    """

    def __init__(self, file, backend=None):
        """Load an image file.

        Raises:
            InvalidImageError: If the file does not exist, is not an image
                or its type cannot be decoded by the backend
        """
        backend = _resolve_backend(backend)
        realfile = os.path.realpath(file)

        if not os.path.isfile(realfile):
            raise InvalidImageError(f"Not an image or invalid image: {file}")

        _width, _height, image_type = inspect(realfile)

        if image_type not in backend.load_formats:
            extension = image_type.extension or os.path.splitext(realfile)[1]
            raise InvalidImageError(
                f"Installed {backend.name} does not support {extension} images"
            )

        try:
            handle = backend.open(realfile)
        except backend.errors as e:
            raise InvalidImageError(f"Not an image or invalid image: {file}") from e

        self._setup(backend, handle, realfile, image_type)

    def _setup(self, backend, handle, file, image_type):
        self.backend = backend
        self.file = file
        self.type = image_type
        self.quality = default_quality()
        self.need_strip = False
        self._handle = handle
        self.width, self.height = backend.size(handle)

    @classmethod
    def _wrap(cls, backend, handle, file=None, image_type=ImageType.UNKNOWN):
        image = cls.__new__(cls)
        image._setup(backend, handle, file, image_type)
        return image

    @classmethod
    def from_buffer(cls, data, backend=None):
        """Decode an image from encoded bytes.

        Raises:
            InvalidImageError: If the backend cannot decode the data
        """
        backend = _resolve_backend(backend)
        try:
            handle = backend.open(bytes(data))
        except backend.errors as e:
            raise InvalidImageError("Not an image or invalid image: buffer") from e

        try:
            image_type = inspect(bytes(data))[2]
        except InvalidImageError:
            image_type = ImageType.UNKNOWN
        return cls._wrap(backend, handle, image_type=image_type)

    @classmethod
    def new(cls, width, height, background=WHITE, backend=None):
        """Create a blank canvas filled with an RGB color.

        The canvas renders as PNG unless another type is requested.
        """
        backend = _resolve_backend(backend)
        try:
            handle = backend.blank(
                max(int(width), 1), max(int(height), 1), _rgb_or_white(background)
            )
        except backend.errors as e:
            raise ImageError(f"Could not create a {width}x{height} image") from e
        return cls._wrap(backend, handle, image_type=ImageType.PNG)

    def __repr__(self):
        return (
            f"<Image {self.width}x{self.height} {self.type.value}"
            f" backend={self.backend.name}>"
        )

    def __bytes__(self):
        """Render with the current settings; never raises."""
        try:
            return self.render()
        except Exception:
            logger.exception("Rendering %r failed", self)
            return b""

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc_value, traceback):
        self.close()

    def __del__(self):
        self.close()

    def close(self):
        """Release the native image. Safe to call more than once."""
        handle = getattr(self, "_handle", None)
        if handle is not None:
            self._handle = None
            self.backend.release(handle)

    @property
    def handle(self):
        """The native image object (PIL.Image, pyvips.Image or wand Image)."""
        if self._handle is None:
            raise ImageError("Image has been closed")
        return self._handle

    @property
    def mime(self):
        return self.type.mime

    def _swap(self, handle):
        if handle is not self._handle:
            old, self._handle = self._handle, handle
            self.backend.release(old)
        self.width, self.height = self.backend.size(handle)

    def _apply(self, operation, *args):
        """Run a primitive, leaving the image untouched if it fails."""
        primitive = getattr(self.backend, operation)
        try:
            handle = primitive(self.handle, *args)
        except self.backend.errors as e:
            logger.warning(
                "%s%r failed on %r, image left unchanged: %s", operation, args, self, e
            )
            return self
        self._swap(handle)
        return self

    def resize(self, width=None, height=None, mode=None, *, upscale=None, inverse=None):
        """Resize the image to the given size.

        Either the width or the height can be omitted and the image will be
        resized proportionally::

            # Fit inside 200x200, keeping the aspect ratio
            image.resize(200, 200)

            # Cover 200x200, keeping the aspect ratio
            image.resize(200, 200, ResizeMode.INVERSE)

            # 500 pixels wide, keeping the aspect ratio
            image.resize(500)

            # Exactly 200x500, ignoring the aspect ratio
            image.resize(200, 500, ResizeMode.NONE)

        Passing ``upscale`` or ``inverse`` selects the two-flag policy
        instead of ``mode``: the box is fitted (covered with ``inverse``)
        and, unless ``upscale`` is true, nothing happens when the result
        would not be smaller than the image on both axes.
        """
        if upscale is not None or inverse is not None:
            if mode is not None:
                raise ValueError("Pass either mode or upscale/inverse, not both")
            mode = ResizeMode.INVERSE if inverse else ResizeMode.AUTO
            size = resolve_resize(self.width, self.height, width, height, mode)
            if not upscale and not (
                size.width < self.width and size.height < self.height
            ):
                return self
        else:
            size = resolve_resize(self.width, self.height, width, height, mode)

        return self._apply("resize", size.width, size.height)

    def crop(self, width=None, height=None, offset_x=None, offset_y=None):
        """Crop the image to the given size.

        Offsets may be ``None`` (center), a non-negative int (from the
        left/top), a negative int (from the right/bottom) or an
        :class:`~imagefacade.geometry.Offset`::

            # 200x200 from the center
            image.crop(200, 200)

            # 200x200 from the bottom right corner
            image.crop(200, 200, Offset.flush(), Offset.flush())
        """
        box = resolve_crop(self.width, self.height, width, height, offset_x, offset_y)
        return self._apply("crop", box.width, box.height, box.left, box.top)

    def rotate(self, degrees):
        """Rotate clockwise; negative values rotate counter-clockwise."""
        return self._apply("rotate", normalize_degrees(degrees))

    def flip(self, direction):
        """Mirror left/right with Flip.HORIZONTAL, top/bottom otherwise."""
        if direction is not Flip.HORIZONTAL:
            direction = Flip.VERTICAL
        return self._apply("flip", direction is Flip.HORIZONTAL)

    def sharpen(self, amount):
        """Sharpen by ``amount`` percent, 1-100."""
        return self._apply("sharpen", clamp(int(amount), 1, 100))

    def blur(self, sigma):
        # TODO: sigma has no agreed range, bound it once backends agree on units
        return self._apply("blur", sigma)

    def reflection(self, height=None, opacity=100, fade_in=False):
        """Add a reflection below the image.

        The row next to the image is ``opacity`` percent opaque and the
        reflection fades out to full transparency, or the other way
        around with ``fade_in``::

            # 50 pixel reflection fading from 100% to 0% opacity
            image.reflection(50)

            # 50 pixel reflection fading from 0% to 60% opacity
            image.reflection(50, 60, fade_in=True)
        """
        if height is None or height > self.height:
            height = self.height
        height = int(height)
        if height <= 0:
            return self

        opacity = clamp(int(opacity), 0, 100)
        return self._apply("reflection", reflection_alphas(height, opacity, fade_in))

    def watermark(self, mark, offset_x=None, offset_y=None, opacity=100):
        """Composite another Image over this one.

        Offsets follow the :meth:`crop` conventions, measured against the
        space left around the mark::

            # Bottom right corner
            image.watermark(mark, Offset.flush(), Offset.flush())
        """
        offset_x, offset_y = resolve_watermark_offset(
            self.width, self.height, mark.width, mark.height, offset_x, offset_y
        )
        opacity = clamp(int(opacity), 1, 100)

        if mark.backend is self.backend:
            return self._apply("watermark", mark.handle, offset_x, offset_y, opacity)

        # Marks held by another backend are re-decoded by ours
        try:
            data = mark._encode(ImageType.PNG, update_type=False)
            overlay = self.backend.open(data)
        except (ImageError, *self.backend.errors) as e:
            logger.warning("Could not convert watermark %r: %s", mark, e)
            return self
        try:
            return self._apply("watermark", overlay, offset_x, offset_y, opacity)
        finally:
            self.backend.release(overlay)

    def background(self, color, opacity=100):
        """Composite the image over a solid color.

        Only visible on images with transparency::

            image.background("#000")
            image.background("ff8000", 50)
        """
        r, g, b = parse_hex_color(color)
        opacity = clamp(int(opacity), 0, 100)
        return self._apply("background", r, g, b, opacity)

    def blank(self, width, height, background=WHITE):
        """Replace the image by a canvas filled with an RGB color."""
        width, height = max(int(width), 1), max(int(height), 1)
        background = _rgb_or_white(background)
        try:
            handle = self.backend.blank(width, height, background)
        except self.backend.errors as e:
            logger.warning("blank failed on %r, image left unchanged: %s", self, e)
            return self
        self._swap(handle)
        return self

    def strip(self, enable=True):
        """Drop EXIF data and color profiles from the next save or render."""
        self.need_strip = bool(enable)
        return self

    def copy(self):
        """Return an independent Image with the same pixels and settings.

        The copy is not tied to the source file; :meth:`save` needs an
        explicit path.
        """
        try:
            handle = self.backend.copy(self.handle)
        except self.backend.errors as e:
            raise ImageError(f"Could not copy {self!r}") from e

        image = self._wrap(self.backend, handle, None, self.type)
        image.quality = self.quality
        image.need_strip = self.need_strip
        return image

    def set_quality(self, quality):
        self.quality = clamp(int(quality), 1, 100)
        return self

    def resolve_type(self, type=None):
        """Resolve an ImageType, format name or extension for writing.

        ``None`` or an empty string means the current type.

        Raises:
            UnsupportedFormatError: If the backend cannot write the format
        """
        if type is None or type == "":
            image_type = self.type
        elif isinstance(type, ImageType):
            image_type = type
        else:
            image_type = ImageType.from_extension(type)

        if image_type is None or image_type not in self.backend.save_formats:
            name = type if isinstance(type, str) else (image_type or self.type).value
            raise UnsupportedFormatError(
                f"Installed {self.backend.name} does not support saving"
                f" {name.lstrip('.').lower()} images"
            )
        return image_type

    def _encode(self, image_type, update_type=True):
        with io.BytesIO() as buf:
            try:
                self.backend.save(
                    self.handle, buf, image_type, self.quality, self.need_strip
                )
            except self.backend.errors as e:
                raise ImageError(
                    f"Could not encode {self!r} as {image_type.value}"
                ) from e
            data = buf.getvalue()
        if update_type:
            self.type = image_type
        return data

    def save(self, file=None, quality=None, type=None):
        """Save the image, overwriting the source file by default.

        The format is taken from ``type``, else from the file extension,
        else from the current type::

            image.save("saved/cool.png")
            image.save()

        Returns:
            True

        Raises:
            UnsupportedFormatError: If the format cannot be written
            ImagePermissionError: If the file, or the directory for a new
                file, is not writable
            ImageError: If encoding fails or there is no file to save to
        """
        if file is None:
            if not self.file:
                raise ImageError(f"No file to save {self!r} to")
            file = self.file
        file = os.path.abspath(os.fspath(file))

        if type is None:
            type = os.path.splitext(file)[1] or None
        image_type = self.resolve_type(type)

        if os.path.isfile(file):
            if not os.access(file, os.W_OK):
                raise ImagePermissionError(f"File must be writable: {file}")
        else:
            directory = os.path.dirname(file)
            if not os.path.isdir(directory) or not os.access(directory, os.W_OK):
                raise ImagePermissionError(f"Directory must be writable: {directory}")

        if quality is not None:
            self.set_quality(quality)

        data = self._encode(image_type)
        with open(file, "wb") as fp:
            fp.write(data)
        return True

    def render(self, type=None, quality=None):
        """Encode the image and return the bytes.

        ::

            # 50% quality
            data = image.render(quality=50)

            # As PNG
            data = image.render("png")
        """
        image_type = self.resolve_type(type)
        if quality is not None:
            self.set_quality(quality)
        return self._encode(image_type)


def _rgb_or_white(background):
    if (
        isinstance(background, Sequence)
        and not isinstance(background, str)
        and len(background) == 3
    ):
        return tuple(clamp(int(channel), 0, 255) for channel in background)
    return WHITE
