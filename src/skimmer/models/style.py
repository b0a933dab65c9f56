from __future__ import annotations

import re
from typing import Any

import structlog
from pydantic import BaseModel, ConfigDict, Field, model_validator

log = structlog.get_logger()

_NAMED_COLORS: dict[str, tuple[int, int, int]] = {
    "black": (0, 0, 0),
    "red": (208, 84, 84),
    "green": (88, 204, 84),
    "yellow": (208, 204, 84),
    "blue": (88, 84, 204),
    "magenta": (208, 84, 204),
    "cyan": (128, 204, 204),
    "white": (255, 255, 255),
    "gray": (208, 204, 204),
    "darkgray": (88, 84, 84),
    "lightred": (255, 84, 80),
    "lightgreen": (88, 252, 84),
    "lightyellow": (255, 255, 85),
    "lightblue": (88, 84, 252),
    "lightmagenta": (255, 84, 252),
    "lightcyan": (88, 252, 252),
}

_HEX_RE = re.compile(r"^#([0-9a-fA-F]{2})([0-9a-fA-F]{2})([0-9a-fA-F]{2})$")
_RGB_RE = re.compile(r"^rgb\((.*)\)$")


def parse_color(value: str) -> tuple[int, int, int] | None:
    """Parse a colour name, ``#rrggbb`` or ``rgb(r, g, b)``. Returns None if invalid."""
    text = value.strip().lower()
    if text in _NAMED_COLORS:
        return _NAMED_COLORS[text]

    match = _HEX_RE.match(text)
    if match:
        r, g, b = (int(part, 16) for part in match.groups())
        return r, g, b

    match = _RGB_RE.match(text)
    if match:
        parts = [part.strip() for part in match.group(1).split(",")]
        if len(parts) != 3 or not all(part.isdigit() for part in parts):
            return None
        channels = [int(part) for part in parts]
        if any(channel > 255 for channel in channels):
            return None
        return channels[0], channels[1], channels[2]

    return None


class Color(BaseModel):
    model_config = ConfigDict(frozen=True)

    r: int = Field(ge=0, le=255)
    g: int = Field(ge=0, le=255)
    b: int = Field(ge=0, le=255)

    @model_validator(mode="before")
    @classmethod
    def _from_string(cls, data: Any) -> Any:
        if isinstance(data, str):
            rgb = parse_color(data)
            if rgb is None:
                raise ValueError(f"Invalid color: {data}")
            return {"r": rgb[0], "g": rgb[1], "b": rgb[2]}
        return data

    @classmethod
    def rgb(cls, r: int, g: int, b: int) -> Color:
        return cls(r=r, g=g, b=b)

    @property
    def hex(self) -> str:
        return f"#{self.r:02x}{self.g:02x}{self.b:02x}"


class Style(BaseModel):
    """Terminal text style. Every attribute is optional so styles can be layered."""

    model_config = ConfigDict(frozen=True)

    fg: Color | None = None
    bg: Color | None = None
    bold: bool | None = None
    italic: bool | None = None
    underlined: bool | None = None
    crossed_out: bool | None = None
    dim: bool | None = None

    def patch(self, other: Style | None) -> Style:
        """Return a copy where every attribute set on ``other`` wins."""
        if other is None:
            return self
        return Style(
            fg=other.fg if other.fg is not None else self.fg,
            bg=other.bg if other.bg is not None else self.bg,
            bold=other.bold if other.bold is not None else self.bold,
            italic=other.italic if other.italic is not None else self.italic,
            underlined=other.underlined if other.underlined is not None else self.underlined,
            crossed_out=other.crossed_out if other.crossed_out is not None else self.crossed_out,
            dim=other.dim if other.dim is not None else self.dim,
        )

    @property
    def modifiers(self) -> frozenset[str]:
        flags = {
            "bold": self.bold,
            "italic": self.italic,
            "underline": self.underlined,
            "strikethrough": self.crossed_out,
            "dim": self.dim,
        }
        return frozenset(name for name, enabled in flags.items() if enabled)

    @classmethod
    def parse(cls, text: str) -> Style:
        """Parse ``"fg=blue; bg=black; bold"`` style strings.

        Unknown keys are logged and skipped, invalid colours are dropped and a
        bare flag name means ``true``.
        """
        values: dict[str, Any] = {}
        for pair in text.split(";"):
            key, _, raw_value = pair.partition("=")
            key = key.strip().lower()
            value = raw_value.strip() if raw_value else None
            if not key:
                continue
            if key in ("fg", "bg"):
                rgb = parse_color(value) if value else None
                values[key] = Color.rgb(*rgb) if rgb else None
            elif key in ("bold", "italic", "underlined", "crossed_out", "dim"):
                values[key] = _parse_flag(value)
            else:
                log.error("style_key_unrecognized", key=key)
        return cls(**values)


def _parse_flag(value: str | None) -> bool | None:
    if value is None or value == "true":
        return True
    if value == "false":
        return False
    return None
