import io
import unittest
from importlib.util import find_spec

from PIL import Image as PILImage

from imagefacade.backend_base import ImageBackend, ImageType
from imagefacade.backends import get_backend


def image_bytes(size=(100, 100), format="PNG", color="red", mode="RGB"):
    """Encode a solid color Pillow image."""
    buf = io.BytesIO()
    PILImage.new(mode, size, color=color).save(buf, format=format)
    return buf.getvalue()


def backend_available(name):
    """True if the backend's library imports and finds its native library."""
    module = {"pillow": "PIL", "vips": "pyvips", "wand": "wand"}[name]
    if find_spec(module) is None:
        return False
    try:
        get_backend(name)
    except (ImportError, OSError):
        return False
    return True


def skip_unless_backend(name):
    return unittest.skipUnless(backend_available(name), f"{name} is not installed")


class FakeError(Exception):
    pass


class FakeImage:
    def __init__(self, width, height, tag="image"):
        self.width = width
        self.height = height
        self.tag = tag
        self.released = 0


class RecordingBackend(ImageBackend):
    """Backend recording the resolved primitive calls.

    Geometry follows what a real library would report; operations named
    in ``failing`` raise FakeError.
    """

    errors = (FakeError,)
    load_formats = frozenset({ImageType.JPEG, ImageType.PNG, ImageType.GIF})
    save_formats = frozenset({ImageType.JPEG, ImageType.PNG})

    def __init__(self, failing=()):
        self.calls = []
        self.failing = set(failing)
        self.images = []

    @property
    def name(self):
        return "recording"

    def _record(self, operation, *args):
        self.calls.append((operation, *args))
        if operation in self.failing:
            raise FakeError(operation)

    def _new(self, width, height, tag="image"):
        image = FakeImage(width, height, tag)
        self.images.append(image)
        return image

    def open(self, file):
        self._record("open", file)
        return self._new(100, 100)

    def save(self, image, fp, format, quality, strip):
        self._record("save", format, quality, strip)
        fp.write(f"{format.value}:{quality}:{strip}".encode())

    def size(self, image):
        return image.width, image.height

    def resize(self, image, width, height):
        self._record("resize", width, height)
        return self._new(width, height)

    def crop(self, image, width, height, offset_x, offset_y):
        self._record("crop", width, height, offset_x, offset_y)
        return self._new(width, height)

    def rotate(self, image, degrees):
        self._record("rotate", degrees)
        if degrees in (90, -90):
            return self._new(image.height, image.width)
        return self._new(image.width, image.height)

    def flip(self, image, horizontal):
        self._record("flip", horizontal)
        return image

    def sharpen(self, image, amount):
        self._record("sharpen", amount)
        return image

    def blur(self, image, sigma):
        self._record("blur", sigma)
        return image

    def reflection(self, image, alphas):
        self._record("reflection", alphas)
        return self._new(image.width, image.height + len(alphas))

    def watermark(self, image, mark, offset_x, offset_y, opacity):
        self._record("watermark", mark, offset_x, offset_y, opacity)
        return image

    def background(self, image, r, g, b, opacity):
        self._record("background", r, g, b, opacity)
        return self._new(image.width, image.height)

    def blank(self, width, height, background):
        self._record("blank", width, height, background)
        return self._new(width, height, tag="blank")

    def copy(self, image):
        self._record("copy")
        return self._new(image.width, image.height, tag="copy")

    def release(self, image):
        image.released += 1

    def operations(self):
        return [call[0] for call in self.calls]
