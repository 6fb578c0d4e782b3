"""Resolution of loose user arguments into backend-ready parameters.

Everything in here is pure: no native image is touched, so the rules
can be exercised without any imaging library installed.
"""

import math
from enum import Enum
from typing import NamedTuple


class ResizeMode(Enum):
    """Master dimension selection for :func:`resolve_resize`."""

    NONE = "none"
    WIDTH = "width"
    HEIGHT = "height"
    AUTO = "auto"
    INVERSE = "inverse"
    PRECISE = "precise"


class Flip(Enum):
    HORIZONTAL = "horizontal"
    VERTICAL = "vertical"


class Size(NamedTuple):
    width: int
    height: int


class CropBox(NamedTuple):
    """Crop rectangle fully contained in the source image."""

    left: int
    top: int
    width: int
    height: int


class OffsetKind(Enum):
    CENTER = "center"
    FLUSH = "flush"
    NEAR = "near"
    FAR = "far"


class Offset(NamedTuple):
    """Position of a window along one axis.

    ``Offset.center()`` centers the window, ``Offset.flush()`` puts it
    against the right/bottom edge, ``Offset.near(n)`` puts it ``n`` pixels
    from the left/top edge and ``Offset.far(n)`` leaves ``n`` pixels
    between the window and the right/bottom edge.
    """

    kind: OffsetKind
    distance: int = 0

    @classmethod
    def center(cls):
        return cls(OffsetKind.CENTER)

    @classmethod
    def flush(cls):
        return cls(OffsetKind.FLUSH)

    @classmethod
    def near(cls, distance):
        return cls(OffsetKind.NEAR, int(distance))

    @classmethod
    def far(cls, distance):
        return cls(OffsetKind.FAR, int(distance))

    @classmethod
    def coerce(cls, value):
        """Accept ``None``, an int or an :class:`Offset`.

        ``None`` centers, a non-negative int is measured from the near edge
        and a negative int ``-k`` leaves ``k`` pixels to the far edge.
        """
        if value is None:
            return cls.center()
        if isinstance(value, cls):
            return value
        if isinstance(value, bool) or not isinstance(value, int):
            raise TypeError(
                f"Offset must be None, an int or an Offset, got {value!r}. "
                "Use Offset.flush() to align with the far edge."
            )
        if value < 0:
            return cls.far(-value)
        return cls.near(value)

    def resolve(self, slack):
        """Return the offset for a window leaving ``slack`` free pixels."""
        if self.kind is OffsetKind.CENTER:
            return round_half_up(slack / 2)
        if self.kind is OffsetKind.FLUSH:
            return slack
        if self.kind is OffsetKind.FAR:
            return slack - self.distance
        return self.distance


def round_half_up(value):
    """Round half away from zero, unlike the builtin ``round``."""
    return int(math.copysign(math.floor(abs(value) + 0.5), value))


def clamp(value, minimum, maximum):
    return min(max(value, minimum), maximum)


def resolve_resize(current_width, current_height, width, height, mode=None):
    """Compute the exact target size for a resize.

    Args:
        current_width: Current image width (>= 1)
        current_height: Current image height (>= 1)
        width: Requested width; ``None`` or <= 0 means unset
        height: Requested height; ``None`` or <= 0 means unset
        mode: ResizeMode, defaults to ``ResizeMode.AUTO``

    Returns:
        Size with both dimensions rounded and at least 1
    """
    width = width if width and width > 0 else None
    height = height if height and height > 0 else None

    if mode is None:
        mode = ResizeMode.AUTO
    # WIDTH and HEIGHT are kept for old callers: they mean "AUTO with the
    # other dimension unset"
    elif mode is ResizeMode.WIDTH and width:
        mode = ResizeMode.AUTO
        height = None
    elif mode is ResizeMode.HEIGHT and height:
        mode = ResizeMode.AUTO
        width = None

    if width is None and height is None and mode is not ResizeMode.NONE:
        return Size(current_width, current_height)

    if width is None:
        if mode is ResizeMode.NONE:
            width = current_width
        else:
            mode = ResizeMode.HEIGHT

    if height is None:
        if mode is ResizeMode.NONE:
            height = current_height
        else:
            mode = ResizeMode.WIDTH

    if mode is ResizeMode.AUTO:
        # The axis needing the greatest reduction wins
        if current_width / width > current_height / height:
            mode = ResizeMode.WIDTH
        else:
            mode = ResizeMode.HEIGHT
    elif mode is ResizeMode.INVERSE:
        if current_width / width > current_height / height:
            mode = ResizeMode.HEIGHT
        else:
            mode = ResizeMode.WIDTH

    if mode is ResizeMode.WIDTH:
        height = current_height * width / current_width
    elif mode is ResizeMode.HEIGHT:
        width = current_width * height / current_height
    elif mode is ResizeMode.PRECISE:
        if width / height > current_width / current_height:
            height = current_height * width / current_width
        else:
            width = current_width * height / current_height

    return Size(max(round_half_up(width), 1), max(round_half_up(height), 1))


def resolve_crop(current_width, current_height, width, height, offset_x, offset_y):
    """Resolve a crop request into a rectangle inside the image.

    Args:
        current_width: Current image width
        current_height: Current image height
        width: Requested width, ``None`` for the current width
        height: Requested height, ``None`` for the current height
        offset_x: Anything :meth:`Offset.coerce` accepts
        offset_y: Anything :meth:`Offset.coerce` accepts

    Returns:
        CropBox with left, top, width, height
    """
    width = current_width if width is None else clamp(width, 1, current_width)
    height = current_height if height is None else clamp(height, 1, current_height)

    left = Offset.coerce(offset_x).resolve(current_width - width)
    top = Offset.coerce(offset_y).resolve(current_height - height)

    # Offsets past either edge would put the window outside the image
    left = clamp(left, 0, current_width - 1)
    top = clamp(top, 0, current_height - 1)

    # Shrink the window to what is left after the offset
    width = min(width, current_width - left)
    height = min(height, current_height - top)

    return CropBox(left, top, width, height)


def resolve_watermark_offset(
    host_width, host_height, mark_width, mark_height, offset_x, offset_y
):
    """Position of a mark on its host, following the crop offset rules.

    The result is not clamped: a mark larger than its host gets a negative
    offset and is clipped by the backend.
    """
    return (
        Offset.coerce(offset_x).resolve(host_width - mark_width),
        Offset.coerce(offset_y).resolve(host_height - mark_height),
    )


def normalize_degrees(degrees):
    """Bring an angle into (-180, 180]."""
    degrees = int(degrees)
    while degrees > 180:
        degrees -= 360
    while degrees <= -180:
        degrees += 360
    return degrees


def parse_hex_color(color):
    """Parse ``#rgb``/``#rrggbb`` (pound optional) into an RGB tuple.

    Raises:
        ValueError: If the string is not a 3 or 6 digit hex color
    """
    value = color[1:] if color.startswith("#") else color
    if len(value) == 3:
        value = "".join(digit * 2 for digit in value)
    if len(value) != 6:
        raise ValueError(f"Invalid hex color: {color!r}")
    return tuple(int(value[i : i + 2], 16) for i in (0, 2, 4))


def reflection_alphas(height, opacity, fade_in=False):
    """Per-row alpha values (0-255) for a reflection ``height`` rows tall.

    Row 0 is adjacent to the original image. Without ``fade_in`` it is the
    most opaque row, at ``opacity`` percent, and the rows fade linearly to
    fully transparent; ``fade_in`` reverses the direction.
    """
    if height <= 0:
        return []

    # Transparency: 0 is opaque, 255 fully transparent
    transparency = round_half_up(abs(opacity * 255 / 100 - 255))
    if transparency < 255:
        stepping = (255 - transparency) / height
    else:
        stepping = 255 / height

    alphas = []
    for offset in range(height):
        if fade_in:
            value = transparency + stepping * (height - offset)
        else:
            value = transparency + stepping * offset
        alphas.append(255 - clamp(round_half_up(value), 0, 255))
    return alphas
