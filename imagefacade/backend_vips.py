"""pyvips backend for django-imagefacade."""

from typing import BinaryIO

import pyvips

from imagefacade.backend_base import ImageBackend, ImageType


class VipsBackend(ImageBackend):
    """pyvips backend implementation.

    Provides faster and more memory-efficient image processing using libvips.
    Optional backend that requires pyvips to be installed. vips images are
    immutable, so every primitive returns a new image.
    """

    errors = (pyvips.Error,)

    load_formats = frozenset(
        {ImageType.JPEG, ImageType.PNG, ImageType.GIF, ImageType.WEBP}
    )
    save_formats = frozenset({ImageType.JPEG, ImageType.PNG, ImageType.WEBP})

    @property
    def name(self) -> str:
        """Backend identifier."""
        return "vips"

    def open(self, file: str | bytes):
        """Open image using pyvips.

        Args:
            file: File path or bytes

        Returns:
            pyvips.Image object, autorotated and in sRGB (or grey)

        Raises:
            pyvips.Error: If image cannot be opened or is invalid
        """
        if isinstance(file, str):
            image = pyvips.Image.new_from_file(file)
        else:
            image = pyvips.Image.new_from_buffer(file, "")

        image = image.autorot()
        if image.interpretation not in ("srgb", "b-w", "grey16"):
            image = image.colourspace("srgb")
        return image

    def save(
        self, image, fp: BinaryIO, format: ImageType, quality: int, strip: bool
    ) -> None:
        """Save vips image to file-like object.

        Maps facade save parameters to pyvips equivalents.
        """
        # vips uses file extensions to determine output format
        suffix = f".{self.get_extension(format)}"

        vips_kwargs = {}
        if strip:
            vips_kwargs["strip"] = True

        if format is ImageType.JPEG:
            vips_kwargs["Q"] = quality
            if strip:
                vips_kwargs["optimize_coding"] = True
            if image.hasalpha():
                image = image.flatten(background=[255, 255, 255])
        elif format is ImageType.PNG:
            # Use a compression level of 9 (does not affect quality!)
            vips_kwargs["compression"] = 9
        elif format is ImageType.WEBP:
            vips_kwargs["Q"] = quality

        data = image.write_to_buffer(suffix, **vips_kwargs)
        fp.write(data)

    def size(self, image) -> tuple[int, int]:
        return image.width, image.height

    def _with_alpha(self, image):
        """Return an sRGB image with an alpha band."""
        if image.bands < 3:
            image = image.colourspace("srgb")
        if not image.hasalpha():
            image = image.addalpha()
        return image

    def resize(self, image, width, height):
        # "force" breaks the aspect ratio; the target is already resolved
        return image.thumbnail_image(width, height=height, size="force")

    def crop(self, image, width, height, offset_x, offset_y):
        return image.crop(offset_x, offset_y, width, height)

    def rotate(self, image, degrees):
        if degrees == 90:
            return image.rot90()
        if degrees == 180:
            return image.rot180()
        if degrees == -90:
            return image.rot270()
        if degrees == 0:
            return image.copy()
        image = self._with_alpha(image)
        return image.rotate(degrees, background=[0] * image.bands)

    def flip(self, image, horizontal):
        if horizontal:
            return image.fliphor()
        return image.flipver()

    def sharpen(self, image, amount):
        # vips does not sharpen visibly below 0.15
        amount = max(amount, 5)
        return image.sharpen(sigma=amount * 3.0 / 100)

    def blur(self, image, sigma):
        return image.gaussblur(sigma)

    def reflection(self, image, alphas):
        image = self._with_alpha(image)
        bands = image.bands

        reflected = image.flipver().crop(0, 0, image.width, len(alphas))

        # One column of per-row alphas, stretched to the full width
        mask = pyvips.Image.new_from_list([[alpha] for alpha in alphas])
        mask = mask.embed(0, 0, image.width, len(alphas), extend="copy")

        alpha = (reflected.extract_band(bands - 1) * mask / 255).cast(
            reflected.format
        )
        reflected = reflected.extract_band(0, n=bands - 1).bandjoin(alpha)

        return image.join(reflected, "vertical")

    def watermark(self, image, mark, offset_x, offset_y, opacity):
        mark = self._with_alpha(mark)
        if opacity < 100:
            bands = mark.bands
            alpha = (mark.extract_band(bands - 1) * (opacity / 100)).cast(mark.format)
            mark = mark.extract_band(0, n=bands - 1).bandjoin(alpha)

        return self._with_alpha(image).composite2(
            mark, "over", x=offset_x, y=offset_y
        )

    def background(self, image, r, g, b, opacity):
        image = self._with_alpha(image)
        color = image.new_from_image([r, g, b, round(opacity * 255 / 100)])
        return color.composite2(image, "over")

    def blank(self, width, height, background):
        return (
            pyvips.Image.black(width, height)
            .new_from_image(list(background))
            .cast("uchar")
            .copy(interpretation="srgb")
        )

    def copy(self, image):
        return image.copy()
