"""Tests for pipeline configuration and presets."""

import pytest

from legcast.config import DEFAULT_CONFIG, PipelineConfig


class TestPresets:
    def test_standard_matches_defaults(self):
        assert PipelineConfig.standard() == PipelineConfig()
        assert DEFAULT_CONFIG == PipelineConfig()

    def test_preview_is_coarser(self):
        preview = PipelineConfig.preview()
        assert preview.voxel_size > DEFAULT_CONFIG.voxel_size
        assert preview.target_slices < DEFAULT_CONFIG.target_slices

    def test_production_is_finer(self):
        production = PipelineConfig.production()
        assert production.voxel_size < DEFAULT_CONFIG.voxel_size
        assert production.enable_smoothing

    def test_from_preset(self):
        assert PipelineConfig.from_preset('preview') == PipelineConfig.preview()
        with pytest.raises(ValueError, match="Unknown preset"):
            PipelineConfig.from_preset('ultra')


class TestDefaults:
    def test_documented_defaults(self):
        c = PipelineConfig()
        assert c.cast_thickness == 3.0
        assert c.ruler_length_mm == 300.0
        assert c.enable_smoothing is False
        assert c.target_slices == 12
        assert c.max_points == 10000
        assert c.default_mm_per_pixel == 0.5

    def test_voxel_tiers(self):
        assert PipelineConfig(voxel_size=2.0).voxel_tiers == (
            ('base', 2.0), ('large', 5.0), ('extreme', 10.0),
        )


class TestOverrides:
    def test_with_overrides(self):
        c = PipelineConfig.preview().with_overrides(cast_thickness=4.0)
        assert c.cast_thickness == 4.0
        assert c.voxel_size == PipelineConfig.preview().voxel_size

    def test_overrides_validated(self):
        with pytest.raises(ValueError):
            PipelineConfig().with_overrides(voxel_size=-1)

    def test_ruler_unit_conversion(self):
        assert PipelineConfig(ruler_length=30, ruler_unit='cm').ruler_length_mm == pytest.approx(300.0)
        assert PipelineConfig(ruler_length=12, ruler_unit='in').ruler_length_mm == pytest.approx(304.8)


class TestValidation:
    @pytest.mark.parametrize("kwargs", [
        {'cast_thickness': -1},
        {'ruler_length': 0},
        {'ruler_unit': 'ft'},
        {'voxel_size': 0},
        {'max_points': 2},
        {'voxel_escalation': (0.5, 2.0)},
        {'target_slices': 1},
        {'min_slice_height': 0},
        {'workers': 0},
        {'measurement_unit': 'yd'},
    ])
    def test_rejects(self, kwargs):
        with pytest.raises(ValueError):
            PipelineConfig(**kwargs)


class TestDisplay:
    def test_format_measurement(self):
        assert PipelineConfig().format_measurement(254.0) == "254.0 mm"
        assert PipelineConfig(measurement_unit='cm').format_measurement(254.0) == "25.4 cm"
        assert PipelineConfig(measurement_unit='in').format_measurement(254.0) == "10.0 in"

    def test_describe(self):
        text = PipelineConfig().describe()
        assert text.startswith("Pipeline Configuration:")
        assert "Thickness:" in text
