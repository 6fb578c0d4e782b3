"""Pillow backend for django-imagefacade."""

import io
from typing import BinaryIO

from PIL import Image, ImageChops, ImageFile, ImageFilter, ImageOps

from imagefacade.backend_base import ImageBackend, ImageType


# Exact quarter turns map to lossless transposes; Pillow's rotations
# are counter-clockwise
QUARTER_TURNS = {
    90: Image.Transpose.ROTATE_270,
    180: Image.Transpose.ROTATE_180,
    -90: Image.Transpose.ROTATE_90,
}

# image.info entries dropped when stripping
METADATA_KEYS = ("icc_profile", "exif", "xmp", "XML:com.adobe.xmp")


class PillowBackend(ImageBackend):
    """Pillow (PIL) backend implementation.

    Default backend. Pillow returns new images from almost every
    operation, so primitives hand back new objects and leave their input
    untouched.
    """

    errors = (OSError, ValueError)

    load_formats = frozenset(
        {ImageType.JPEG, ImageType.PNG, ImageType.GIF, ImageType.WEBP, ImageType.BMP}
    )
    save_formats = load_formats

    @property
    def name(self) -> str:
        """Backend identifier."""
        return "pillow"

    def open(self, file: str | bytes):
        """Open and fully decode image using PIL.Image.open.

        Applies the EXIF orientation and converts palette and bilevel
        images so that filters and compositing work on them.

        Args:
            file: File path or bytes

        Returns:
            PIL.Image.Image object

        Raises:
            IOError: If image cannot be opened or is invalid
        """
        if isinstance(file, bytes):
            file = io.BytesIO(file)

        with Image.open(file) as source:
            source.load()
            image = ImageOps.exif_transpose(source)

        if image.mode not in ("RGB", "RGBA", "L"):
            has_alpha = image.mode in ("LA", "PA", "RGBa", "La") or (
                "transparency" in image.info
            )
            image = image.convert("RGBA" if has_alpha else "RGB")
        return image

    def save(
        self, image, fp: BinaryIO, format: ImageType, quality: int, strip: bool
    ) -> None:
        """Save PIL image to file-like object with MAXBLOCK workaround.

        Implements workaround for large images by temporarily increasing
        MAXBLOCK if initial save fails. See:
        https://github.com/python-imaging/Pillow/issues/148
        """
        kwargs = {}

        if format is ImageType.JPEG:
            kwargs["quality"] = quality
            if strip:
                kwargs["optimize"] = True
            if image.mode == "RGBA":
                image = self._flatten(image)
            elif image.mode != "RGB":
                image = image.convert("RGB")
        elif format is ImageType.PNG:
            # Compression level does not affect quality
            kwargs["compress_level"] = 9
        elif format is ImageType.WEBP:
            kwargs["quality"] = quality

        if strip:
            # Some writers (PNG) fall back to image.info for the profile
            if any(key in image.info for key in METADATA_KEYS):
                info = {
                    key: value
                    for key, value in image.info.items()
                    if key not in METADATA_KEYS
                }
                image = image.copy()
                image.info = info
        elif format in (ImageType.JPEG, ImageType.PNG, ImageType.WEBP):
            for key in ("icc_profile", "exif"):
                if image.info.get(key):
                    kwargs[key] = image.info[key]

        original = ImageFile.MAXBLOCK

        try:
            try:
                image.save(fp, format=format.value, **kwargs)
            except OSError:
                # Increase MAXBLOCK temporarily and try again.
                # See https://github.com/python-imaging/Pillow/issues/148
                ImageFile.MAXBLOCK *= 16
                image.save(fp, format=format.value, **kwargs)
        finally:
            ImageFile.MAXBLOCK = original

    def _flatten(self, image):
        """Composite over white, dropping the alpha channel."""
        flat = Image.new("RGB", image.size, (255, 255, 255))
        flat.paste(image, (0, 0), image)
        flat.info = dict(image.info)
        return flat

    def size(self, image) -> tuple[int, int]:
        return image.size

    def resize(self, image, width, height):
        return image.resize((width, height), Image.Resampling.LANCZOS)

    def crop(self, image, width, height, offset_x, offset_y):
        # PIL crop uses (left, top, right, bottom) format
        return image.crop((offset_x, offset_y, offset_x + width, offset_y + height))

    def rotate(self, image, degrees):
        if degrees == 0:
            return image.copy()
        if degrees in QUARTER_TURNS:
            return image.transpose(QUARTER_TURNS[degrees])
        return image.convert("RGBA").rotate(
            -degrees,
            resample=Image.Resampling.BICUBIC,
            expand=True,
            fillcolor=(0, 0, 0, 0),
        )

    def flip(self, image, horizontal):
        if horizontal:
            return image.transpose(Image.Transpose.FLIP_LEFT_RIGHT)
        return image.transpose(Image.Transpose.FLIP_TOP_BOTTOM)

    def sharpen(self, image, amount):
        # Center weight runs from 17.92 (amount 1) down to 10 (amount 100)
        center = round(abs(-18 + (amount * 0.08)), 2)
        kernel = ImageFilter.Kernel(
            (3, 3), [-1, -1, -1, -1, center, -1, -1, -1, -1], scale=center - 8
        )
        return image.filter(kernel)

    def blur(self, image, sigma):
        return image.filter(ImageFilter.GaussianBlur(radius=sigma))

    def reflection(self, image, alphas):
        width, height = image.size
        base = image.convert("RGBA")

        reflected = base.transpose(Image.Transpose.FLIP_TOP_BOTTOM).crop(
            (0, 0, width, len(alphas))
        )
        mask = Image.new("L", (1, len(alphas)))
        mask.putdata(alphas)
        mask = mask.resize((width, len(alphas)), Image.Resampling.NEAREST)
        reflected.putalpha(ImageChops.multiply(reflected.getchannel("A"), mask))

        result = Image.new("RGBA", (width, height + len(alphas)), (0, 0, 0, 0))
        result.paste(base, (0, 0))
        result.paste(reflected, (0, height))
        return result

    def watermark(self, image, mark, offset_x, offset_y, opacity):
        overlay = mark.convert("RGBA")
        if opacity < 100:
            overlay.putalpha(
                overlay.getchannel("A").point(lambda value: value * opacity // 100)
            )

        if image.mode in ("RGB", "RGBA"):
            result = image.copy()
        else:
            # Pasting onto a greyscale host would drop the mark's colors
            result = image.convert("RGBA" if "A" in image.getbands() else "RGB")
        result.paste(overlay, (offset_x, offset_y), overlay)
        return result

    def background(self, image, r, g, b, opacity):
        alpha = round(opacity * 255 / 100)
        result = Image.new("RGBA", image.size, (r, g, b, alpha))
        result.alpha_composite(image.convert("RGBA"))
        return result

    def blank(self, width, height, background):
        return Image.new("RGB", (width, height), tuple(background))

    def copy(self, image):
        return image.copy()

    def release(self, image) -> None:
        image.close()
