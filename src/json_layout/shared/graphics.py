"""Value types for frames, colors, fonts and bitmaps used by layout nodes."""

from dataclasses import dataclass
from typing import ClassVar, Dict, Optional, Tuple

HEX_DIGITS = "0123456789abcdefABCDEF"


@dataclass(frozen=True)
class Rect:
    """Axis-aligned rectangle in display coordinates (x, y, width, height)."""

    x: int = 0
    y: int = 0
    w: int = 0
    h: int = 0

    ZERO: ClassVar["Rect"]

    @property
    def is_zero(self) -> bool:
        return self == Rect.ZERO

    @property
    def origin(self) -> Tuple[int, int]:
        return (self.x, self.y)

    @property
    def size(self) -> Tuple[int, int]:
        return (self.w, self.h)

    def to_list(self) -> list:
        return [self.x, self.y, self.w, self.h]


Rect.ZERO = Rect()


@dataclass(frozen=True)
class Color:
    """24-bit RGB color with an alpha flag; CLEAR is fully transparent."""

    r: int = 0
    g: int = 0
    b: int = 0
    a: int = 255

    CLEAR: ClassVar["Color"]
    BLACK: ClassVar["Color"]
    WHITE: ClassVar["Color"]

    def __post_init__(self) -> None:
        for channel in (self.r, self.g, self.b, self.a):
            if not (0 <= channel <= 255):
                raise ValueError("Color channels must be between 0 and 255")

    @classmethod
    def from_hex(cls, value: int) -> "Color":
        """Build an opaque color from a 0xRRGGBB integer."""
        value &= 0xFFFFFF
        return cls((value >> 16) & 0xFF, (value >> 8) & 0xFF, value & 0xFF)

    @property
    def is_clear(self) -> bool:
        return self.a == 0

    def to_hex(self) -> str:
        if self.is_clear:
            return "clear"
        return f"#{self.r:02X}{self.g:02X}{self.b:02X}"


Color.CLEAR = Color(0, 0, 0, 0)
Color.BLACK = Color(0, 0, 0)
Color.WHITE = Color(255, 255, 255)


def parse_hex_prefix(text: str) -> Tuple[Optional[int], bool]:
    """Parse leading hexadecimal digits the way C ``strtoul(s, NULL, 16)`` does.

    An optional leading ``#`` is skipped first.

    Returns:
        Tuple of (value, clean) where value is None when no digit was read and
        clean is False when characters were left over or nothing was read.
    """
    body = text[1:] if text.startswith("#") else text
    digits = []
    for char in body:
        if char not in HEX_DIGITS:
            break
        digits.append(char)
    if not digits:
        return None, False
    return int("".join(digits), 16), len(digits) == len(body)


@dataclass(frozen=True)
class Font:
    """Named font handle resolved from a layout's font registry."""

    key: str
    height: int = 0
    bold: bool = False


@dataclass(eq=False)
class Bitmap:
    """Image loaded from an application resource; owned by the node showing it."""

    resource_id: int
    released: bool = False

    def release(self) -> None:
        self.released = True


# System font keys and their nominal pixel heights.
SYSTEM_FONTS: Dict[str, Font] = {
    key: Font(key, height, "BOLD" in key)
    for key, height in (
        ("GOTHIC_09", 9),
        ("GOTHIC_14", 14),
        ("GOTHIC_14_BOLD", 14),
        ("GOTHIC_18", 18),
        ("GOTHIC_18_BOLD", 18),
        ("GOTHIC_24", 24),
        ("GOTHIC_24_BOLD", 24),
        ("GOTHIC_28", 28),
        ("GOTHIC_28_BOLD", 28),
        ("BITHAM_18_LIGHT_SUBSET", 18),
        ("BITHAM_30_BLACK", 30),
        ("BITHAM_34_LIGHT_SUBSET", 34),
        ("BITHAM_34_MEDIUM_NUMBERS", 34),
        ("BITHAM_42_BOLD", 42),
        ("BITHAM_42_LIGHT", 42),
        ("BITHAM_42_MEDIUM_NUMBERS", 42),
        ("ROBOTO_CONDENSED_21", 21),
        ("ROBOTO_BOLD_SUBSET_49", 49),
        ("DROID_SERIF_28_BOLD", 28),
        ("LECO_20_BOLD_NUMBERS", 20),
        ("LECO_26_BOLD_NUMBERS_AM_PM", 26),
        ("LECO_28_LIGHT_NUMBERS", 28),
        ("LECO_32_BOLD_NUMBERS", 32),
        ("LECO_36_BOLD_NUMBERS", 36),
        ("LECO_38_BOLD_NUMBERS", 38),
        ("LECO_42_NUMBERS", 42),
    )
}
