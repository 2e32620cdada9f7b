"""
Tests for configuration merging, validation and persistence
"""

import json
import os

import pytest

from core.refinement_config import (
    DEFAULT_REFINEMENT_CONFIG,
    ConfigManager,
    merge_config,
)
from utils.errors import ConfigError


def test_defaults_are_valid_and_copied():
    config = merge_config()
    assert config == DEFAULT_REFINEMENT_CONFIG
    config["hole_filling"]["max_size"] = 99
    assert DEFAULT_REFINEMENT_CONFIG["hole_filling"]["max_size"] == 30


def test_overrides_merge_per_section():
    config = merge_config({"hole_filling": {"max_size": 50}, "edge_refinement": {"smoothing_intensity": "low"}})
    assert config["hole_filling"]["max_size"] == 50
    assert config["hole_filling"]["connectivity"] == 8
    assert config["edge_refinement"]["smoothing_intensity"] == "low"
    assert config["edge_erosion"]["enabled"] is False


@pytest.mark.parametrize("overrides", [
    {"unknown": {}},
    {"hole_filling": {"diameter": 3}},
    {"symmetry_correction": {"bilateral_regions": ["sleeve_l"]}},
    {"quality_assurance": {"anatomical_validation": False}},
    {"hole_filling": 5},
    {"hole_filling": {"connectivity": 6}},
    {"hole_filling": {"min_size": 40}},
    {"hole_filling": {"max_size": -1}},
    {"edge_refinement": {"smoothing_intensity": "extreme"}},
    {"edge_erosion": {"erosion_pixels": 0}},
    {"edge_erosion": {"kernel_shape": "hexagon"}},
    {"proportion_validation": {"tolerance": -0.5}},
    {"compositing": {"canvas_size": 0}},
    {"quality_assurance": {"confidence_threshold": 1.5}},
])
def test_invalid_overrides_raise(overrides):
    with pytest.raises(ConfigError):
        merge_config(overrides)


def test_circular_kernel_alias_is_accepted():
    assert merge_config({"edge_erosion": {"kernel_shape": "circular"}})["edge_erosion"]["kernel_shape"] == "circular"


class TestConfigManager:

    def test_missing_file_loads_defaults(self, tmp_path):
        manager = ConfigManager(str(tmp_path / "settings"))
        assert manager.load_overrides() == {}
        assert manager.load_config() == DEFAULT_REFINEMENT_CONFIG

    def test_save_and_load_round_trip(self, tmp_path):
        manager = ConfigManager(str(tmp_path / "settings"))
        overrides = {"hole_filling": {"max_size": 45}}

        assert manager.save_overrides(overrides)
        assert os.path.exists(manager.config_file)
        assert manager.load_overrides() == overrides
        config = manager.load_config({"compositing": {"canvas_size": 256}})
        assert config["hole_filling"]["max_size"] == 45
        assert config["compositing"]["canvas_size"] == 256

    def test_invalid_overrides_are_not_saved(self, tmp_path):
        manager = ConfigManager(str(tmp_path))
        with pytest.raises(ConfigError):
            manager.save_overrides({"hole_filling": {"connectivity": 5}})
        assert not os.path.exists(manager.config_file)

    @pytest.mark.parametrize("content", ["{not json", json.dumps([1, 2, 3])])
    def test_unreadable_file_is_ignored(self, tmp_path, content):
        manager = ConfigManager(str(tmp_path))
        with open(manager.config_file, "w") as f:
            f.write(content)
        assert manager.load_overrides() == {}
