"""Test persistent identifier resolution"""

import pytest

from tune_sync.library.identifiers import combine_parts, resolve, split_hex_id

from conftest import make_track


class TestCombineParts:
    """Test joining 32-bit halves"""

    def test_low_only(self):
        """Test a value that fits in the low half"""
        assert combine_parts(0, 100) == 100

    def test_high_shifted(self):
        """Test the high half lands in the upper 32 bits"""
        assert combine_parts(1, 0) == 1 << 32
        assert combine_parts(0x12345678, 0x9ABCDEF0) == 0x123456789ABCDEF0

    def test_signed_parts_are_unsigned(self):
        """Test negative halves from signed APIs"""
        assert combine_parts(-1, -1) == 0xFFFFFFFFFFFFFFFF
        assert combine_parts(0, -1) == 0xFFFFFFFF


class TestSplitHexId:
    """Test parsing library persistent ids"""

    def test_split(self):
        """Test a full 16 digit id"""
        assert split_hex_id("123456789ABCDEF0") == (0x12345678, 0x9ABCDEF0)

    def test_round_trip_with_combine(self):
        """Test split then combine gives back the value"""
        assert combine_parts(*split_hex_id("00000000000000C8")) == 200

    def test_invalid(self):
        """Test non-hex input"""
        with pytest.raises(ValueError):
            split_hex_id("not-hex")

    def test_too_large(self):
        """Test ids wider than 64 bits"""
        with pytest.raises(ValueError):
            split_hex_id("1" + "0" * 16)


class TestResolve:
    """Test resolving through a provider"""

    def test_resolve_track(self, sample_library):
        """Test tracks resolve to their identifiers"""
        tracks = list(sample_library.tracks())
        assert [resolve(sample_library, t) for t in tracks] == [100, 200, 300]

    def test_unique_ids_give_unique_values(self, sample_library):
        """Test distinct persistent ids never collide"""
        values = {resolve(sample_library, make_track(i, i * 7919)) for i in range(1, 200)}
        assert len(values) == 199
