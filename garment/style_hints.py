"""
# style_hints.py - v1.1760100000
# Created: Tuesday, October 6, 2026
Closed vocabularies for the garment style descriptors produced by the
upstream vision analysis. Free-form strings are normalized into enum members;
anything unrecognized becomes UNKNOWN so template matching stays exhaustive.
"""

from dataclasses import dataclass
from enum import Enum
from typing import Any, Dict, Optional


def _normalize_token(value) -> str:
    return str(value).strip().lower().replace("-", "_").replace(" ", "_")


class NecklineStyle(Enum):
    V_NECK = "v_neck"
    SCOOP = "scoop"
    BOAT = "boat"
    HIGH_NECK = "high_neck"
    OFF_SHOULDER = "off_shoulder"
    CREW = "crew"
    UNKNOWN = "unknown"

    @classmethod
    def parse(cls, value: Optional[str]) -> "NecklineStyle":
        if value is None:
            return cls.CREW
        if isinstance(value, cls):
            return value
        token = _normalize_token(value)
        aliases = {"vneck": "v_neck", "bateau": "boat", "crew_neck": "crew", "crewneck": "crew",
                   "turtleneck": "high_neck", "mock_neck": "high_neck"}
        token = aliases.get(token, token)
        for member in cls:
            if member.value == token:
                return member
        return cls.UNKNOWN


class SleeveConfiguration(Enum):
    SHORT = "short"
    LONG = "long"
    THREE_QUARTER = "3_quarter"
    CAP = "cap"
    SLEEVELESS = "sleeveless"
    UNKNOWN = "unknown"

    @classmethod
    def parse(cls, value: Optional[str]) -> "SleeveConfiguration":
        if value is None:
            return cls.LONG
        if isinstance(value, cls):
            return value
        token = _normalize_token(value)
        aliases = {"three_quarter": "3_quarter", "tank": "sleeveless", "none": "sleeveless"}
        token = aliases.get(token, token)
        for member in cls:
            if member.value == token:
                return member
        return cls.UNKNOWN


@dataclass(frozen=True)
class StyleHints:
    """Style descriptors used by the proportion templates and the compositor"""

    category_generic: str = "top"
    neckline_style: NecklineStyle = NecklineStyle.CREW
    sleeve_configuration: SleeveConfiguration = SleeveConfiguration.LONG
    closure_type: str = "none"
    silhouette: str = "fitted"

    @classmethod
    def from_analysis(cls, analysis: Optional[Dict[str, Any]]) -> "StyleHints":
        """
        Build hints from the consolidated garment analysis dictionary

        Args:
            analysis: Dictionary with optional keys category_generic,
                neckline_style, sleeve_configuration, closure_type, silhouette

        Returns:
            StyleHints with defaults for every missing key
        """
        analysis = analysis or {}
        return cls(
            category_generic=str(analysis.get("category_generic") or "top").lower(),
            neckline_style=NecklineStyle.parse(analysis.get("neckline_style")),
            sleeve_configuration=SleeveConfiguration.parse(analysis.get("sleeve_configuration")),
            closure_type=str(analysis.get("closure_type") or "none").lower(),
            silhouette=str(analysis.get("silhouette") or "fitted").lower(),
        )
