"""
Tests for cache keys and records.
"""

from __future__ import annotations

from datetime import timezone

from respcache.types import CacheKey, CacheKeyLike, CacheRecord, utc_now


class TestCacheKey:
    """Test key canonical form and hashing."""

    def test_canonical_form_without_headers(self) -> None:
        """Test that a key with no header values ends with a dash."""
        key = CacheKey("https://example.com/api/items")
        assert str(key) == "https://example.com/api/items-"

    def test_canonical_form_with_headers(self) -> None:
        """Test that header values are appended in order."""
        key = CacheKey("https://example.com/api/items", ("application/json", "en"))
        assert str(key) == "https://example.com/api/items-application/json-en"

    def test_hash_is_sha1_of_canonical_form(self) -> None:
        """Test the hash against a known SHA-1 digest."""
        key = CacheKey("https://example.com/api/items")
        assert key.hash.hex() == "a62c3b69f84ec9d3afc36d3d7cda90a6f211b5db"
        assert len(key.hash) == 20

    def test_hash_base64_known_values(self) -> None:
        """Test base64 primary keys against known values."""
        assert CacheKey("https://example.com/api/items").hash_base64 == (
            "piw7afhOydOvw209fNqQpvIRtds="
        )
        assert CacheKey(
            "https://example.com/api/items", ["application/json", "en"]
        ).hash_base64 == "z/cjbhEXrdopX0YdQAlQR9kwcBE="

    def test_header_values_change_the_hash(self) -> None:
        """Test that varying header values produce distinct keys."""
        plain = CacheKey("https://example.com/")
        json_key = CacheKey("https://example.com/", ("application/json",))
        xml_key = CacheKey("https://example.com/", ("application/xml",))

        assert len({plain.hash_base64, json_key.hash_base64, xml_key.hash_base64}) == 3

    def test_equality_and_hashability(self) -> None:
        """Test that equal keys compare equal and collapse in sets."""
        a = CacheKey("https://example.com/", ["gzip"])
        b = CacheKey("https://example.com/", ("gzip",))

        assert a == b
        assert len({a, b}) == 1
        assert a.header_values == ("gzip",)

    def test_satisfies_key_protocol(self) -> None:
        """Test that CacheKey is usable wherever CacheKeyLike is expected."""
        assert isinstance(CacheKey("https://example.com/"), CacheKeyLike)


class TestCacheRecord:
    """Test record construction."""

    def test_for_key_stamps_fields(self) -> None:
        """Test that for_key derives id, key string and timestamp."""
        key = CacheKey("https://example.com/api/items")
        before = utc_now()

        record = CacheRecord.for_key(key, b"\x01\x02\x03")

        assert record.id == key.hash_base64
        assert record.cache_key == "https://example.com/api/items-"
        assert record.data == b"\x01\x02\x03"
        assert record.size == 3
        assert record.modification_date >= before
        assert record.modification_date.tzinfo == timezone.utc
