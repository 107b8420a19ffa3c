"""RGB color value shared by the extraction strategies and quantizers."""

from typing import NamedTuple


class Color(NamedTuple):
    r: int
    g: int
    b: int

    @property
    def hex(self) -> str:
        return f"#{self.r:02x}{self.g:02x}{self.b:02x}"


def parse_hex_color(value: str) -> Color:
    """Parse '#rrggbb' or 'rrggbb' (also the 3-digit short form)."""
    text = value.strip().lstrip('#')
    if len(text) == 3:
        text = ''.join(c * 2 for c in text)
    if len(text) != 6:
        raise ValueError(f"Invalid hex color: {value!r}")
    try:
        return Color(int(text[0:2], 16), int(text[2:4], 16), int(text[4:6], 16))
    except ValueError:
        raise ValueError(f"Invalid hex color: {value!r}")
