"""
Deterministic polity colors.

A canonical key hashes to a hue; saturation and lightness are fixed so every
polity gets a readable pastel. Hash arithmetic follows the browser client
(xor on signed 32-bit ints, multiply in double precision, truncate to
unsigned 32-bit) so both sides compute the same color for a key.
"""

import math

FNV_OFFSET_BASIS = 2166136261
FNV_PRIME = 16777619

SATURATION = 55
LIGHTNESS = 62

_UINT32 = 0x100000000


def _utf16_units(text: str):
    data = text.encode("utf-16-le", "surrogatepass")
    for i in range(0, len(data), 2):
        yield data[i] | (data[i + 1] << 8)


def _to_int32(value: int) -> int:
    value %= _UINT32
    return value - _UINT32 if value >= 0x80000000 else value


def fnv1a_hash(key: str) -> int:
    """32-bit FNV-1a style hash over UTF-16 code units."""
    h = FNV_OFFSET_BASIS
    for unit in _utf16_units(key):
        mixed = _to_int32(h ^ unit)
        h = int(float(mixed) * float(FNV_PRIME)) % _UINT32
    return h


def hsl_to_hex(hue: float, saturation: float, lightness: float) -> str:
    """Convert HSL (degrees, percent, percent) to a #rrggbb string."""
    s = saturation / 100
    l = lightness / 100
    a = s * min(l, 1 - l)

    def channel(n: int) -> str:
        k = (n + hue / 30) % 12
        value = l - a * max(-1, min(k - 3, min(9 - k, 1)))
        return f"{math.floor(255 * value + 0.5):02x}"

    return f"#{channel(0)}{channel(8)}{channel(4)}"


def color_from_key(key: str) -> str:
    """Stable #rrggbb color for a canonical key."""
    return hsl_to_hex(fnv1a_hash(key) % 360, SATURATION, LIGHTNESS)
