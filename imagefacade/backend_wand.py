"""Wand (ImageMagick) backend for django-imagefacade."""

from typing import BinaryIO

from wand.color import Color
from wand.exceptions import WandException
from wand.image import Image

from imagefacade.backend_base import ImageBackend, ImageType


class WandBackend(ImageBackend):
    """ImageMagick backend implementation using Wand.

    Wand images are mutable; primitives that only transform pixels modify
    the image in place and return it, primitives which need a bigger or
    differently composed canvas return a new image.
    """

    errors = (WandException,)

    load_formats = frozenset(
        {ImageType.JPEG, ImageType.PNG, ImageType.GIF, ImageType.WEBP, ImageType.BMP}
    )
    save_formats = load_formats

    @property
    def name(self) -> str:
        """Backend identifier."""
        return "wand"

    def open(self, file: str | bytes):
        """Open image using wand.image.Image.

        Args:
            file: File path or bytes

        Returns:
            wand.image.Image object with EXIF orientation applied

        Raises:
            WandException: If image cannot be opened or is invalid
        """
        if isinstance(file, str):
            image = Image(filename=file)
        else:
            image = Image(blob=file)
        image.auto_orient()
        return image

    def save(
        self, image, fp: BinaryIO, format: ImageType, quality: int, strip: bool
    ) -> None:
        """Encode a clone so that the held image keeps its format and data."""
        with image.clone() as output:
            if format is ImageType.JPEG and output.alpha_channel:
                output.background_color = Color("white")
                output.alpha_channel = "remove"
            if strip:
                output.strip()
            output.format = self.get_extension(format)
            output.compression_quality = quality
            fp.write(output.make_blob())

    def size(self, image) -> tuple[int, int]:
        return image.width, image.height

    def resize(self, image, width, height):
        image.resize(width, height, filter="lanczos")
        return image

    def crop(self, image, width, height, offset_x, offset_y):
        image.crop(left=offset_x, top=offset_y, width=width, height=height)
        image.reset_coords()
        return image

    def rotate(self, image, degrees):
        image.rotate(degrees, background=Color("transparent"))
        return image

    def flip(self, image, horizontal):
        if horizontal:
            image.flop()
        else:
            image.flip()
        return image

    def sharpen(self, image, amount):
        # IM does not sharpen visibly below 0.15
        amount = max(amount, 5)
        image.sharpen(radius=0, sigma=amount * 3.0 / 100)
        return image

    def blur(self, image, sigma):
        image.blur(radius=1, sigma=sigma)
        return image

    def reflection(self, image, alphas):
        height = len(alphas)

        with image.clone() as reflected, Image(width=1, height=height) as fade:
            reflected.flip()
            reflected.crop(left=0, top=0, width=image.width, height=height)
            reflected.reset_coords()
            reflected.alpha_channel = "set"

            # Gray levels become the alpha of the fade, stretched to full width
            fade.import_pixels(
                width=1,
                height=height,
                channel_map="RGB",
                storage="char",
                data=[level for alpha in alphas for level in (alpha, alpha, alpha)],
            )
            fade.sample(image.width, height)
            fade.alpha_channel = "copy"

            # Multiplies the reflection alpha with the fade alpha
            reflected.composite(fade, left=0, top=0, operator="dst_in")

            result = Image(
                width=image.width,
                height=image.height + height,
                background=Color("transparent"),
            )
            result.composite(image, left=0, top=0)
            result.composite(reflected, left=0, top=image.height)
        return result

    def watermark(self, image, mark, offset_x, offset_y, opacity):
        with mark.clone() as overlay:
            if opacity < 100:
                if not overlay.alpha_channel:
                    overlay.alpha_channel = "set"
                overlay.evaluate(operator="multiply", value=opacity / 100, channel="alpha")
            if image.colorspace == "gray":
                image.transform_colorspace("srgb")
            image.composite(overlay, left=offset_x, top=offset_y)
        return image

    def background(self, image, r, g, b, opacity):
        color = Color(f"rgba({r}, {g}, {b}, {opacity / 100:.2f})")
        result = Image(width=image.width, height=image.height, background=color)
        result.composite(image, left=0, top=0)
        return result

    def blank(self, width, height, background):
        color = Color("rgb({}, {}, {})".format(*background))
        return Image(width=width, height=height, background=color)

    def copy(self, image):
        return image.clone()

    def release(self, image) -> None:
        image.close()
