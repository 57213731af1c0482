"""
Persistent identifier resolution.

Every library object carries a 64-bit persistent id that the provider
hands out as two 32-bit halves. The combined value is the canonical
filename stem of a converted track, so it must be stable across runs.
"""

from tune_sync.library.models import LibraryTrack, Playlist
from tune_sync.library.provider import LibraryProvider


_UINT32_MASK = 0xFFFFFFFF


def combine_parts(high: int, low: int) -> int:
    """
    Combine two 32-bit halves into one unsigned 64-bit value.

    Providers backed by signed APIs may return negative halves; they are
    reinterpreted as unsigned 32-bit values first.

    Examples:
        combine_parts(0, 100)            # 100
        combine_parts(1, 0)              # 4294967296
        combine_parts(-1, -1)            # 18446744073709551615
    """
    return ((high & _UINT32_MASK) << 32) + (low & _UINT32_MASK)


def split_hex_id(hex_id: str) -> tuple[int, int]:
    """
    Split a 16-digit hex persistent id into its (high, low) 32-bit halves.

    Raises:
        ValueError: If hex_id is not a hexadecimal string of at most 16 digits.
    """
    value = int(hex_id, 16)
    if value < 0 or value > 0xFFFFFFFFFFFFFFFF:
        raise ValueError(f"Persistent id out of range: {hex_id!r}")
    return value >> 32, value & _UINT32_MASK


def resolve(provider: LibraryProvider, obj: LibraryTrack | Playlist) -> int:
    """Return the 64-bit persistent identifier of a track or playlist."""
    high, low = provider.persistent_id_parts(obj)
    return combine_parts(high, low)
