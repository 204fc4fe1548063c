"""Viewport context: the environment media queries are evaluated against."""

from __future__ import annotations

from fractions import Fraction
from typing import Any, Literal

from pydantic import BaseModel, ConfigDict, Field

from ..config import DEFAULT_FONT_SIZE, DEFAULT_HEIGHT, DEFAULT_WIDTH

MediaType = Literal["screen", "print", "speech"]
Hover = Literal["none", "hover"]
Pointer = Literal["none", "coarse", "fine"]


class Viewport(BaseModel):
    """A snapshot of device and user-preference characteristics.

    Sizes are in CSS px. ``device_width``/``device_height`` default to the
    viewport size when not given.
    """

    model_config = ConfigDict(frozen=True, extra="forbid", allow_inf_nan=False)

    width: float = Field(default=DEFAULT_WIDTH, gt=0)
    height: float = Field(default=DEFAULT_HEIGHT, gt=0)
    device_pixel_ratio: float = Field(default=1.0, gt=0)
    media_type: MediaType = "screen"
    hover: Hover = "hover"
    any_hover: Hover = "hover"
    pointer: Pointer = "fine"
    any_pointer: Pointer = "fine"
    prefers_color_scheme: Literal["light", "dark"] = "light"
    prefers_reduced_motion: Literal["no-preference", "reduce"] = "no-preference"
    prefers_contrast: Literal["no-preference", "more", "less", "custom"] = "no-preference"
    forced_colors: Literal["none", "active"] = "none"
    inverted_colors: Literal["none", "inverted"] = "none"
    color: int = Field(default=8, ge=0)
    color_index: int = Field(default=0, ge=0)
    monochrome: int = Field(default=0, ge=0)
    grid: bool = False
    update: Literal["none", "slow", "fast"] = "fast"
    scan: Literal["interlace", "progressive"] = "progressive"
    display_mode: Literal["browser", "minimal-ui", "standalone", "fullscreen", "picture-in-picture"] = "browser"
    font_size: float = Field(default=DEFAULT_FONT_SIZE, gt=0)
    device_width: float | None = Field(default=None, gt=0)
    device_height: float | None = Field(default=None, gt=0)

    @property
    def orientation(self) -> str:
        return "portrait" if self.height >= self.width else "landscape"

    @property
    def aspect_ratio(self) -> Fraction:
        return Fraction(str(self.width)) / Fraction(str(self.height))

    @property
    def device_aspect_ratio(self) -> Fraction:
        return Fraction(str(self.screen_width)) / Fraction(str(self.screen_height))

    @property
    def resolution(self) -> float:
        """Resolution in dppx."""
        return self.device_pixel_ratio

    @property
    def screen_width(self) -> float:
        return self.device_width if self.device_width is not None else self.width

    @property
    def screen_height(self) -> float:
        return self.device_height if self.device_height is not None else self.height

    @property
    def overflow_block(self) -> str:
        if self.media_type == "print":
            return "paged"
        return "none" if self.media_type == "speech" else "scroll"

    @property
    def overflow_inline(self) -> str:
        return "scroll" if self.media_type == "screen" else "none"

    def with_changes(self, **changes: Any) -> "Viewport":
        """Return a copy with some characteristics replaced (validated)."""
        data = self.model_dump()
        data.update(changes)
        return Viewport(**data)

    def describe(self) -> str:
        """Short human-readable summary."""
        parts = [
            f"{self.media_type} {self.width:g}x{self.height:g}",
            f"@{self.device_pixel_ratio:g}x",
            self.orientation,
            f"pointer:{self.pointer}",
            f"hover:{self.hover}",
        ]
        if self.prefers_color_scheme != "light":
            parts.append(f"scheme:{self.prefers_color_scheme}")
        if self.prefers_reduced_motion != "no-preference":
            parts.append("reduced-motion")
        return " ".join(parts)

    @classmethod
    def preset(cls, name: str, **overrides: Any) -> "Viewport":
        """Build a viewport from a named preset.

        Raises:
            ValueError: If the preset name is unknown
        """
        key = name.lower().replace("_", "-")
        if key not in PRESETS:
            known = ", ".join(sorted(PRESETS))
            raise ValueError(f"Unknown viewport preset {name!r} (known: {known})")
        data = dict(PRESETS[key])
        data.update(overrides)
        return cls(**data)


_TOUCH: dict[str, Any] = {"hover": "none", "any_hover": "none", "pointer": "coarse", "any_pointer": "coarse"}

PRESETS: dict[str, dict[str, Any]] = {
    "mobile-small": {"width": 320, "height": 568, "device_pixel_ratio": 2, **_TOUCH},
    "mobile": {"width": 375, "height": 667, "device_pixel_ratio": 2, **_TOUCH},
    "mobile-large": {"width": 414, "height": 896, "device_pixel_ratio": 3, **_TOUCH},
    "mobile-landscape": {"width": 667, "height": 375, "device_pixel_ratio": 2, **_TOUCH},
    "tablet": {"width": 768, "height": 1024, "device_pixel_ratio": 2, **_TOUCH},
    "tablet-landscape": {"width": 1024, "height": 768, "device_pixel_ratio": 2, **_TOUCH},
    "laptop": {"width": 1366, "height": 768},
    "desktop": {"width": 1920, "height": 1080},
    "desktop-hidpi": {"width": 1440, "height": 900, "device_pixel_ratio": 2},
    "print": {"width": 816, "height": 1056, "media_type": "print", "hover": "none", "any_hover": "none",
              "pointer": "none", "any_pointer": "none", "update": "none"},
}
