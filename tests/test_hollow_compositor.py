"""
Tests for silhouette rendering and hollow region punching
"""

import numpy as np
import pytest

from garment.models import HollowRegionRequest, MaskPolygon
from garment.style_hints import NecklineStyle, SleeveConfiguration, StyleHints
from mask.hollow_compositor import HollowRegionCompositor, rasterize

from conftest import rectangle


def neckline(keep_hollow=True):
    return HollowRegionRequest("neckline", keep_hollow=keep_hollow)


class TestNeckline:

    def test_v_neck_template(self, canvas_garment):
        hints = StyleHints(neckline_style=NecklineStyle.V_NECK)

        result = rasterize([canvas_garment], [neckline()], hints)
        alpha = result.image.alpha()

        assert result.image.width == result.image.height == 512
        assert alpha[90, 256] == 0
        assert alpha[80, 200] == 255
        assert result.hollow_region_count == 1
        assert result.processed_regions == ["neckline"]
        assert result.sources == {"neckline": "procedural"}
        assert result.templates == {"neckline": "v_neck"}

    def test_neck_polygon_wins_over_template(self, canvas_garment):
        neck = MaskPolygon("neck", rectangle(200, 60, 312, 120), is_hole=True)

        result = rasterize([canvas_garment, neck], [neckline()], StyleHints(neckline_style=NecklineStyle.V_NECK))

        assert result.sources == {"neckline": "polygon"}
        assert result.outcomes[0].polygon_names == ["neck"]
        assert result.templates == {}
        assert np.all(result.image.alpha()[60:121, 200:313] == 0)

    def test_keep_hollow_false_stays_solid(self, canvas_garment):
        result = rasterize([canvas_garment], [neckline(keep_hollow=False)])

        assert result.hollow_region_count == 0
        assert result.solid_regions == ["neckline"]
        assert result.image.alpha()[80, 256] == 255

    def test_unknown_style_uses_default_geometry(self, canvas_garment):
        result = rasterize([canvas_garment], [neckline()], StyleHints(neckline_style=NecklineStyle.UNKNOWN))

        assert result.sources == {"neckline": "default"}
        assert result.templates == {"neckline": "default_neckline"}
        assert result.image.alpha()[80, 310] == 0

    def test_crew_is_the_default_style(self, canvas_garment):
        result = rasterize([canvas_garment], [neckline()])
        assert result.templates == {"neckline": "crew"}
        assert result.image.alpha()[80, 256] == 0
        assert result.image.alpha()[80, 300] == 255


class TestOtherRegions:

    def test_sleeveless_punches_nothing(self, canvas_garment):
        hints = StyleHints(sleeve_configuration=SleeveConfiguration.SLEEVELESS)

        result = rasterize([canvas_garment], [HollowRegionRequest("sleeves")], hints)

        assert result.hollow_region_count == 0
        assert not result.outcomes[0].applied
        assert result.outcomes[0].template == "sleeveless"
        assert result.image.opaque_pixel_count() == 413 * 413

    def test_short_sleeve_template(self, canvas_garment):
        hints = StyleHints(sleeve_configuration=SleeveConfiguration.SHORT)
        result = rasterize([canvas_garment], [HollowRegionRequest("sleeves")], hints)
        assert result.templates == {"sleeves": "short"}
        assert result.image.alpha()[200, 150] == 0
        assert result.image.alpha()[200, 362] == 0

    def test_armholes_from_sleeve_polygons(self, canvas_garment):
        sleeve = MaskPolygon("sleeve_l", rectangle(60, 150, 90, 200))
        result = rasterize([canvas_garment, sleeve], [HollowRegionRequest("armholes")])
        assert result.sources == {"armholes": "polygon"}
        assert result.image.alpha()[170, 75] == 0

    def test_armholes_default_geometry(self, canvas_garment):
        result = rasterize([canvas_garment], [HollowRegionRequest("armholes")])
        assert result.templates == {"armholes": "default_armholes"}
        assert result.image.alpha()[160, 120] == 0

    def test_front_opening_needs_polygons(self, canvas_garment):
        request = HollowRegionRequest("front_opening")
        assert rasterize([canvas_garment], [request]).hollow_region_count == 0

        placket = MaskPolygon("placket", rectangle(250, 150, 262, 400))
        result = rasterize([canvas_garment, placket], [request])
        assert result.sources == {"front_opening": "polygon"}
        assert result.image.alpha()[300, 256] == 0

    @pytest.mark.parametrize("description,template", [
        ("Front pocket lining", "pocket"),
        ("hem facing", "hem_opening"),
        ("inner tag", "custom"),
    ])
    def test_custom_regions(self, canvas_garment, description, template):
        request = HollowRegionRequest("other", inner_visible=True, inner_description=description)
        result = rasterize([canvas_garment], [request])
        assert result.templates == {"other": template}

    def test_pocket_rectangle_bounds(self, canvas_garment):
        request = HollowRegionRequest("other", inner_description="pocket")
        alpha = rasterize([canvas_garment], [request]).image.alpha()
        assert alpha[300, 225] == 0
        assert alpha[279, 225] == 255
        assert alpha[319, 225] == 0
        assert alpha[320, 225] == 255

    def test_other_without_description_stays_solid(self, canvas_garment):
        result = rasterize([canvas_garment], [HollowRegionRequest("other")])
        assert result.hollow_region_count == 0


class TestCompositing:

    def test_preserve_zone_pixels_are_restored(self, canvas_garment):
        preserve = MaskPolygon("preserve_label", rectangle(240, 70, 272, 90))

        result = rasterize([canvas_garment, preserve], [neckline()])
        alpha = result.image.alpha()

        assert alpha[80, 256] == 255
        assert alpha[80, 230] == 0
        assert result.protected_pixels_restored > 0

    def test_alpha_is_binary(self, canvas_garment):
        hints = StyleHints(neckline_style=NecklineStyle.SCOOP, sleeve_configuration=SleeveConfiguration.CAP)
        requests = [neckline(), HollowRegionRequest("sleeves"), HollowRegionRequest("armholes")]

        pixels = rasterize([canvas_garment], requests, hints).image.pixels

        assert set(np.unique(pixels[:, :, 3])) <= {0, 255}
        cut = pixels[:, :, 3] == 0
        assert np.all(pixels[cut] == 0)

    def test_normalized_coordinates_are_scaled(self):
        garment = MaskPolygon("garment", rectangle(0.1, 0.1, 0.9, 0.9))
        neck = MaskPolygon("neck", rectangle(0.45, 0.1, 0.55, 0.2), is_hole=True)

        result = rasterize([garment, neck], [neckline()])
        alpha = result.image.alpha()

        assert alpha[256, 256] == 255
        assert alpha[20, 20] == 0
        assert alpha[80, 256] == 0
        assert result.sources == {"neckline": "polygon"}

    def test_smaller_canvas_scales_templates(self):
        garment = MaskPolygon("garment", rectangle(25, 25, 231, 231))

        result = HollowRegionCompositor(canvas_size=256).rasterize([garment], [neckline()])
        alpha = result.image.alpha()

        assert alpha.shape == (256, 256)
        assert alpha[40, 128] == 0
        assert alpha[40, 100] == 255

    def test_inputs_are_not_modified(self, canvas_garment):
        polygons = [canvas_garment, MaskPolygon("neck", rectangle(200, 60, 312, 120), is_hole=True)]
        before = [p.copy() for p in polygons]
        rasterize(polygons, [neckline()])
        assert polygons == before
