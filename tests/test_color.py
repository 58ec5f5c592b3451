import math

import pytest

from live_spectrograph import color


def _channels(rgba: color.Rgba) -> tuple[float, float, float, float]:
    return rgba.r, rgba.g, rgba.b, rgba.alpha


def test_boundary_vectors() -> None:
    vectors = [
        (379, (0.0, 0.0, 0.0, 0.0)),
        (380, (100.0, 0.0, 100.0, 0.0)),
        (420, (100.0 / 3.0, 0.0, 100.0, 1.0)),
        (440, (0.0, 0.0, 100.0, 1.0)),
        (490, (0.0, 100.0, 100.0, 1.0)),
        (510, (0.0, 100.0, 0.0, 1.0)),
        (580, (100.0, 100.0, 0.0, 1.0)),
        (645, (100.0, 0.0, 0.0, 1.0)),
        (700, (100.0, 0.0, 0.0, 1.0)),
        (780, (100.0, 0.0, 0.0, 0.0)),
        (781, (0.0, 0.0, 0.0, 0.0)),
    ]
    for wl, expected in vectors:
        assert _channels(color.color_for(wl)) == pytest.approx(expected), wl


def test_mid_range_ramps() -> None:
    assert _channels(color.color_for(410)) == pytest.approx((50.0, 0.0, 100.0, 0.75))
    assert _channels(color.color_for(465)) == pytest.approx((0.0, 50.0, 100.0, 1.0))
    assert _channels(color.color_for(500)) == pytest.approx((0.0, 100.0, 50.0, 1.0))
    assert _channels(color.color_for(545)) == pytest.approx((50.0, 100.0, 0.0, 1.0))
    assert _channels(color.color_for(612.5)) == pytest.approx((100.0, 50.0, 0.0, 1.0))
    assert _channels(color.color_for(740)) == pytest.approx((100.0, 0.0, 0.0, 0.5))


def test_continuity_at_breakpoints() -> None:
    eps = 1e-9
    for bp in (440, 490, 510, 580, 645):
        left = _channels(color.color_for(bp - eps))
        right = _channels(color.color_for(bp))
        assert left == pytest.approx(right, abs=1e-5), bp
    for bp in (420, 700):
        assert color.color_for(bp - eps).alpha == pytest.approx(color.color_for(bp + eps).alpha, abs=1e-5)


def test_tag_and_near_ir_are_constant() -> None:
    assert color.color_for("clear") == color.TAG_COLOR
    assert color.color_for("nir") == color.TAG_COLOR
    assert color.color_for(None) == color.TAG_COLOR
    assert color.color_for(True) == color.TAG_COLOR
    assert color.color_for(float("nan")) == color.TAG_COLOR
    assert color.color_for(901) == color.NEAR_IR_COLOR
    assert color.color_for(950) == color.NEAR_IR_COLOR
    assert color.color_for(910) == color.color_for(2500)

    visible = [color.color_for(wl) for wl in range(380, 781, 5)]
    assert color.TAG_COLOR not in visible
    assert color.NEAR_IR_COLOR not in visible


def test_between_visible_and_near_ir_is_invisible() -> None:
    assert _channels(color.color_for(850)) == (0.0, 0.0, 0.0, 0.0)
    assert _channels(color.color_for(900)) == (0.0, 0.0, 0.0, 0.0)


def test_numeric_strings_are_wavelengths() -> None:
    assert color.color_for("555") == color.color_for(555)
    assert color.as_wavelength(" 415 ") == 415.0
    assert color.as_wavelength("clear") is None


def test_output_formats() -> None:
    green = color.color_for(555)
    assert green.to_css() == "rgba(64.2857%,100%,0%, 1)"
    assert color.NEAR_IR_COLOR.to_hex() == "#770000"
    assert color.TAG_COLOR.to_hex() == "#000000"
    assert color.color_for(440).to_rgba8() == (0, 0, 255, 255)
    assert color.color_for(380).to_rgba8()[3] == 0


def test_color_table_follows_band_order() -> None:
    table = color.build_color_table([415, 555, "clear"])
    assert table == (color.color_for(415), color.color_for(555), color.TAG_COLOR)
    assert all(not math.isnan(c.alpha) for c in table)
