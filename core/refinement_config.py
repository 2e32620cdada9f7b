# refinement_config.py - v1.1760900000
# Updated: Wednesday, October 14, 2026
# Changes in this version:
# - Settings are nested per stage and validated when merged
# - Overrides persist as JSON in the per-user config directory
# - Edge erosion defaults come from the erosion module

"""
Configuration management for the mask refinement engine.
Handles default settings, validation of overrides, and saving/loading them.
"""

import copy
import json
import os

import appdirs

from mask.edge_erosion import DEFAULT_EROSION_CONFIG
from mask.mask_enhancement import SMOOTHING_PRESETS
from mask.mask_operations import KERNEL_SHAPES
from utils.errors import ConfigError

APP_NAME = "GhostMaskRefiner"

DEFAULT_REFINEMENT_CONFIG = {
    "proportion_validation": {
        "enabled": True,
        "strict_mode": False,
        "tolerance": 0.1,
        "correct_shoulder_width": False,
        "max_adjustment": 0.1,
    },
    "symmetry_correction": {
        "enabled": True,
        "asymmetry_threshold": 0.05,
    },
    "edge_refinement": {
        "enabled": True,
        "smoothing_intensity": "medium",
        "fabric_aware_smoothing": True,
        "preserve_details": ["label", "logo", "trim", "button", "zipper"],
    },
    "hole_filling": {
        "enabled": True,
        "min_size": 1,
        "max_size": 30,
        "connectivity": 8,
        "whiten": False,
    },
    "edge_erosion": dict(copy.deepcopy(DEFAULT_EROSION_CONFIG), enabled=False),
    "compositing": {
        "canvas_size": 512,
    },
    "quality_assurance": {
        "enabled": True,
        "confidence_threshold": 0.85,
    },
}


def _deep_merge(base, overrides, path=""):
    for key, value in overrides.items():
        name = f"{path}.{key}" if path else key
        if key not in base:
            raise ConfigError(f"Unknown configuration setting: {name}")
        if isinstance(base[key], dict):
            if not isinstance(value, dict):
                raise ConfigError(f"Configuration section {name} must be a dictionary")
            _deep_merge(base[key], value, name)
        else:
            base[key] = copy.deepcopy(value)


def _require_fraction(name, value):
    if isinstance(value, bool) or not isinstance(value, (int, float)) or not 0.0 <= value <= 1.0:
        raise ConfigError(f"{name} must be a number in [0, 1], got {value!r}")


def validate_config(config):
    """
    Check every value of a complete configuration

    Raises:
        ConfigError: On the first invalid value, naming the setting
    """
    proportion = config["proportion_validation"]
    if isinstance(proportion["tolerance"], bool) or not isinstance(proportion["tolerance"], (int, float)) \
            or proportion["tolerance"] < 0:
        raise ConfigError(f"proportion_validation.tolerance must be >= 0, got {proportion['tolerance']!r}")
    _require_fraction("proportion_validation.max_adjustment", proportion["max_adjustment"])

    _require_fraction("symmetry_correction.asymmetry_threshold",
                      config["symmetry_correction"]["asymmetry_threshold"])

    intensity = config["edge_refinement"]["smoothing_intensity"]
    if intensity not in SMOOTHING_PRESETS:
        raise ConfigError(f"edge_refinement.smoothing_intensity must be one of "
                          f"{sorted(SMOOTHING_PRESETS)}, got {intensity!r}")

    holes = config["hole_filling"]
    if holes["connectivity"] not in (4, 8) or isinstance(holes["connectivity"], bool):
        raise ConfigError(f"hole_filling.connectivity must be 4 or 8, got {holes['connectivity']!r}")
    for key in ("min_size", "max_size"):
        if isinstance(holes[key], bool) or not isinstance(holes[key], int) or holes[key] < 0:
            raise ConfigError(f"hole_filling.{key} must be a non-negative integer, got {holes[key]!r}")
    if holes["min_size"] > holes["max_size"]:
        raise ConfigError("hole_filling.min_size must not exceed hole_filling.max_size")

    erosion = config["edge_erosion"]
    if isinstance(erosion["erosion_pixels"], bool) or not isinstance(erosion["erosion_pixels"], (int, float)) \
            or erosion["erosion_pixels"] <= 0:
        raise ConfigError(f"edge_erosion.erosion_pixels must be positive, got {erosion['erosion_pixels']!r}")
    if isinstance(erosion["iterations"], bool) or not isinstance(erosion["iterations"], int) \
            or erosion["iterations"] < 1:
        raise ConfigError(f"edge_erosion.iterations must be a positive integer, got {erosion['iterations']!r}")
    if erosion["kernel_shape"] not in KERNEL_SHAPES + ("circular",):
        raise ConfigError(f"edge_erosion.kernel_shape must be one of {KERNEL_SHAPES}, "
                          f"got {erosion['kernel_shape']!r}")

    canvas_size = config["compositing"]["canvas_size"]
    if isinstance(canvas_size, bool) or not isinstance(canvas_size, int) or canvas_size <= 0:
        raise ConfigError(f"compositing.canvas_size must be a positive integer, got {canvas_size!r}")

    _require_fraction("quality_assurance.confidence_threshold",
                      config["quality_assurance"]["confidence_threshold"])


def merge_config(overrides=None):
    """
    Build a complete configuration from the defaults and optional overrides

    Args:
        overrides: Nested dictionary with a subset of DEFAULT_REFINEMENT_CONFIG keys

    Returns:
        dict: New configuration; the defaults are never modified

    Raises:
        ConfigError: On unknown keys or invalid values
    """
    config = copy.deepcopy(DEFAULT_REFINEMENT_CONFIG)
    if overrides:
        if not isinstance(overrides, dict):
            raise ConfigError("Configuration overrides must be a dictionary")
        _deep_merge(config, overrides)
    validate_config(config)
    return config


class ConfigManager:
    """Manages saving and loading of refinement setting overrides"""

    def __init__(self, config_dir=None):
        """
        Initialize the configuration manager

        Args:
            config_dir: Directory for settings.json; defaults to the per-user config directory
        """
        self.config_dir = config_dir or appdirs.user_config_dir(APP_NAME)
        self.config_file = os.path.join(self.config_dir, "settings.json")

    def save_overrides(self, overrides):
        """
        Validate and save setting overrides

        Args:
            overrides: Nested dictionary of settings to persist

        Returns:
            bool: True if the file was written
        """
        merge_config(overrides)
        try:
            os.makedirs(self.config_dir, exist_ok=True)
            with open(self.config_file, 'w') as f:
                json.dump(overrides, f, indent=2)
            print(f"Settings saved to {self.config_file}")
            return True
        except OSError as e:
            print(f"Error saving settings: {str(e)}")
            return False

    def load_overrides(self):
        """
        Load saved setting overrides

        Returns:
            dict: Saved overrides, empty if none exist or the file is unreadable
        """
        if not os.path.exists(self.config_file):
            return {}
        try:
            with open(self.config_file, 'r') as f:
                overrides = json.load(f)
        except (OSError, ValueError) as e:
            print(f"Error loading settings: {str(e)}")
            return {}
        if not isinstance(overrides, dict):
            print(f"Ignoring settings in {self.config_file}: expected a JSON object")
            return {}
        return overrides

    def load_config(self, overrides=None):
        """
        Complete configuration: defaults, then saved overrides, then call overrides
        """
        config = merge_config(self.load_overrides())
        if overrides:
            _deep_merge(config, overrides)
            validate_config(config)
        return config
