"""Tests for parameter resolution."""

from django.test import SimpleTestCase

from imagefacade.geometry import (
    CropBox,
    Offset,
    OffsetKind,
    ResizeMode,
    Size,
    normalize_degrees,
    parse_hex_color,
    reflection_alphas,
    resolve_crop,
    resolve_resize,
    resolve_watermark_offset,
    round_half_up,
)


class ResizeResolutionTestCase(SimpleTestCase):
    def test_auto_fits_inside_box(self):
        """AUTO keeps the aspect ratio and stays inside the box."""
        cases = [
            (400, 300, 200, 200),
            (300, 400, 200, 200),
            (1920, 1080, 640, 640),
            (100, 50, 300, 10),
            (37, 91, 13, 50),
            (10, 10, 500, 700),
        ]
        for orig_w, orig_h, req_w, req_h in cases:
            with self.subTest(orig=(orig_w, orig_h), req=(req_w, req_h)):
                width, height = resolve_resize(
                    orig_w, orig_h, req_w, req_h, ResizeMode.AUTO
                )
                self.assertLessEqual(width, req_w)
                self.assertLessEqual(height, req_h)
                self.assertTrue(width == req_w or height == req_h)
                self.assertLessEqual(abs(width * orig_h / orig_w - height), 1)

    def test_inverse_covers_box(self):
        cases = [
            (400, 300, 200, 200),
            (300, 400, 200, 200),
            (1920, 1080, 640, 640),
            (37, 91, 13, 50),
        ]
        for orig_w, orig_h, req_w, req_h in cases:
            with self.subTest(orig=(orig_w, orig_h), req=(req_w, req_h)):
                width, height = resolve_resize(
                    orig_w, orig_h, req_w, req_h, ResizeMode.INVERSE
                )
                self.assertGreaterEqual(width + 1, req_w)
                self.assertGreaterEqual(height + 1, req_h)
                self.assertLessEqual(abs(width * orig_h / orig_w - height), 1)

    def test_default_mode_is_auto(self):
        self.assertEqual(resolve_resize(400, 300, 200, 200), Size(200, 150))

    def test_concrete_sizes(self):
        self.assertEqual(
            resolve_resize(400, 300, 200, 200, ResizeMode.AUTO), (200, 150)
        )
        self.assertEqual(
            resolve_resize(400, 300, 200, 200, ResizeMode.INVERSE), (267, 200)
        )
        self.assertEqual(
            resolve_resize(400, 300, 200, 500, ResizeMode.NONE), (200, 500)
        )

    def test_precise(self):
        # Box wider than the image: width is honored
        self.assertEqual(
            resolve_resize(400, 300, 200, 100, ResizeMode.PRECISE), (200, 150)
        )
        # Box taller than the image: height is honored
        self.assertEqual(
            resolve_resize(400, 300, 100, 200, ResizeMode.PRECISE), (267, 200)
        )

    def test_single_dimension_is_proportional(self):
        self.assertEqual(resolve_resize(400, 300, 200, None), (200, 150))
        self.assertEqual(resolve_resize(400, 300, None, 150), (200, 150))
        self.assertEqual(
            resolve_resize(400, 300, None, 150, ResizeMode.INVERSE), (200, 150)
        )

    def test_non_positive_dimension_counts_as_unset(self):
        self.assertEqual(resolve_resize(400, 300, 200, 0), (200, 150))
        self.assertEqual(resolve_resize(400, 300, -5, 150), (200, 150))

    def test_none_mode_keeps_missing_axis(self):
        self.assertEqual(
            resolve_resize(400, 300, 200, None, ResizeMode.NONE), (200, 300)
        )
        self.assertEqual(
            resolve_resize(400, 300, None, 100, ResizeMode.NONE), (400, 100)
        )

    def test_legacy_master_modes(self):
        # WIDTH with a width ignores the height
        self.assertEqual(
            resolve_resize(400, 300, 200, 999, ResizeMode.WIDTH), (200, 150)
        )
        self.assertEqual(
            resolve_resize(400, 300, 999, 150, ResizeMode.HEIGHT), (200, 150)
        )

    def test_nothing_requested_keeps_size(self):
        self.assertEqual(resolve_resize(400, 300, None, None), (400, 300))

    def test_minimum_one_pixel(self):
        self.assertEqual(resolve_resize(1000, 10, 10, None), (10, 1))
        self.assertEqual(resolve_resize(10, 1000, None, 10), (1, 10))


class OffsetTestCase(SimpleTestCase):
    def test_coerce(self):
        self.assertEqual(Offset.coerce(None).kind, OffsetKind.CENTER)
        self.assertEqual(Offset.coerce(5), Offset.near(5))
        self.assertEqual(Offset.coerce(0), Offset.near(0))
        self.assertEqual(Offset.coerce(-10), Offset.far(10))
        self.assertEqual(Offset.coerce(Offset.flush()), Offset.flush())

    def test_booleans_are_rejected(self):
        with self.assertRaises(TypeError):
            Offset.coerce(True)
        with self.assertRaises(TypeError):
            Offset.coerce("10")

    def test_resolve(self):
        self.assertEqual(Offset.center().resolve(40), 20)
        self.assertEqual(Offset.center().resolve(41), 21)
        self.assertEqual(Offset.flush().resolve(40), 40)
        self.assertEqual(Offset.far(10).resolve(40), 30)
        self.assertEqual(Offset.near(7).resolve(40), 7)

    def test_round_half_up(self):
        self.assertEqual(round_half_up(0.5), 1)
        self.assertEqual(round_half_up(2.5), 3)
        self.assertEqual(round_half_up(-2.5), -3)
        self.assertEqual(round_half_up(2.4), 2)


class CropResolutionTestCase(SimpleTestCase):
    def test_center_by_default(self):
        self.assertEqual(
            resolve_crop(100, 100, 60, 60, None, None), CropBox(20, 20, 60, 60)
        )

    def test_negative_offset_from_far_edge(self):
        box = resolve_crop(100, 100, 60, 60, -10, -10)
        self.assertEqual((box.left, box.top), (30, 30))

    def test_flush(self):
        box = resolve_crop(100, 80, 60, 60, Offset.flush(), Offset.flush())
        self.assertEqual(box, CropBox(40, 20, 60, 60))

    def test_oversized_request_is_clamped(self):
        self.assertEqual(
            resolve_crop(100, 80, 300, 300, None, None), CropBox(0, 0, 100, 80)
        )

    def test_window_shrinks_to_fit_after_offset(self):
        self.assertEqual(
            resolve_crop(100, 100, 60, 60, 70, 90), CropBox(70, 90, 30, 10)
        )

    def test_missing_dimension_uses_current(self):
        self.assertEqual(
            resolve_crop(100, 80, None, 40, 0, None), CropBox(0, 20, 100, 40)
        )

    def test_box_never_leaves_image(self):
        for offset in (None, 0, 5, 99, 150, -1, -99, -150, Offset.flush()):
            with self.subTest(offset=offset):
                box = resolve_crop(100, 100, 60, 60, offset, offset)
                self.assertGreaterEqual(box.left, 0)
                self.assertGreaterEqual(box.width, 1)
                self.assertLessEqual(box.left + box.width, 100)
                self.assertLessEqual(box.top + box.height, 100)


class WatermarkOffsetTestCase(SimpleTestCase):
    def test_offsets(self):
        self.assertEqual(resolve_watermark_offset(200, 100, 50, 20, None, None), (75, 40))
        self.assertEqual(
            resolve_watermark_offset(
                200, 100, 50, 20, Offset.flush(), Offset.flush()
            ),
            (150, 80),
        )
        self.assertEqual(resolve_watermark_offset(200, 100, 50, 20, -10, -5), (140, 75))
        self.assertEqual(resolve_watermark_offset(200, 100, 50, 20, 3, 4), (3, 4))

    def test_mark_larger_than_host(self):
        self.assertEqual(resolve_watermark_offset(50, 50, 100, 60, None, None), (-25, -5))


class RotationTestCase(SimpleTestCase):
    def test_normalize(self):
        self.assertEqual(normalize_degrees(540), 180)
        self.assertEqual(normalize_degrees(-540), 180)
        self.assertEqual(normalize_degrees(200), -160)
        self.assertEqual(normalize_degrees(-180), 180)
        self.assertEqual(normalize_degrees(180), 180)
        self.assertEqual(normalize_degrees(-90), -90)
        self.assertEqual(normalize_degrees(720), 0)

    def test_range(self):
        for degrees in range(-1000, 1000, 7):
            with self.subTest(degrees=degrees):
                normalized = normalize_degrees(degrees)
                self.assertGreater(normalized, -180)
                self.assertLessEqual(normalized, 180)
                self.assertEqual((normalized - degrees) % 360, 0)


class ColorTestCase(SimpleTestCase):
    def test_parse(self):
        self.assertEqual(parse_hex_color("#abc"), (0xAA, 0xBB, 0xCC))
        self.assertEqual(parse_hex_color("000"), (0, 0, 0))
        self.assertEqual(parse_hex_color("#FF8000"), (255, 128, 0))
        self.assertEqual(parse_hex_color("102030"), (16, 32, 48))

    def test_invalid(self):
        for color in ("", "#", "#abcd", "zzz"):
            with self.subTest(color=color), self.assertRaises(ValueError):
                parse_hex_color(color)


class ReflectionTestCase(SimpleTestCase):
    def test_fade_out(self):
        alphas = reflection_alphas(4, 100)
        self.assertEqual(len(alphas), 4)
        self.assertEqual(alphas[0], 255)
        self.assertEqual(alphas, sorted(alphas, reverse=True))

    def test_fade_in(self):
        alphas = reflection_alphas(4, 100, fade_in=True)
        self.assertEqual(alphas[0], 0)
        self.assertEqual(alphas, sorted(alphas))

    def test_opacity_caps_most_opaque_row(self):
        alphas = reflection_alphas(10, 60)
        self.assertEqual(alphas[0], 153)
        self.assertTrue(all(0 <= alpha <= 153 for alpha in alphas))

    def test_zero_opacity(self):
        self.assertEqual(reflection_alphas(5, 0), [0, 0, 0, 0, 0])

    def test_zero_height(self):
        self.assertEqual(reflection_alphas(0, 100), [])
