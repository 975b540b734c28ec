"""
Unit tests for utils/listing_cache.py
"""

from datetime import timedelta

from utils.listing_cache import DEFAULT_LISTING_TTL, ListingCache


class TestGetPut:

    def test_put_then_get_returns_data(self, listing_cache):
        listing_cache.put("k", {"categories": []})

        assert listing_cache.get("k") == {"categories": []}

    def test_missing_key_returns_none(self, listing_cache):
        assert listing_cache.get("nope") is None

    def test_default_ttl_is_fifteen_minutes(self):
        assert DEFAULT_LISTING_TTL == timedelta(minutes=15)
        assert ListingCache().ttl == timedelta(minutes=15)

    def test_entry_expires_after_ttl_and_is_removed(self, listing_cache, clock):
        listing_cache.put("k", "v")

        clock.advance(minutes=14, seconds=59)
        assert listing_cache.get("k") == "v"

        clock.advance(seconds=1)
        assert listing_cache.get("k") is None
        assert len(listing_cache) == 0

    def test_put_overwrites_and_restarts_ttl(self, listing_cache, clock):
        listing_cache.put("k", "old")
        clock.advance(minutes=10)
        listing_cache.put("k", "new")
        clock.advance(minutes=10)

        assert listing_cache.get("k") == "new"


class TestKey:

    def test_equal_inputs_give_equal_keys(self):
        a = ListingCache.key("public/files/", "", "", 1, 50, False)
        b = ListingCache.key("public/files/", "", "", 1, 50, False)

        assert a == b

    def test_any_field_changes_key(self):
        base = ("public/files/a/", "a", "x", 1, 50, False)
        variants = [
            ("public/files/b/", "a", "x", 1, 50, False),
            ("public/files/a/", "b", "x", 1, 50, False),
            ("public/files/a/", "a", "y", 1, 50, False),
            ("public/files/a/", "a", "x", 2, 50, False),
            ("public/files/a/", "a", "x", 1, 20, False),
            ("public/files/a/", "a", "x", 1, 50, True),
        ]
        keys = {ListingCache.key(*base)} | {ListingCache.key(*v) for v in variants}

        assert len(keys) == len(variants) + 1

    def test_key_starts_with_prefix(self):
        assert ListingCache.key("public/files/x/", "x", "", 1, 50, True).startswith("public/files/x/")


class TestInvalidate:

    def test_prefix_invalidation_removes_only_matching(self, listing_cache):
        listing_cache.put("public/files/a/:a::1:50:false", 1)
        listing_cache.put("public/files/a/sub/:a/sub::1:50:false", 2)
        listing_cache.put("public/files/b/:b::1:50:false", 3)

        removed = listing_cache.invalidate("public/files/a/")

        assert removed == 2
        assert listing_cache.get("public/files/b/:b::1:50:false") == 3
        assert listing_cache.get("public/files/a/:a::1:50:false") is None

    def test_no_prefix_clears_everything(self, listing_cache):
        listing_cache.put("a", 1)
        listing_cache.put("b", 2)

        assert listing_cache.invalidate() == 2
        assert len(listing_cache) == 0

    def test_stats_counts_live_entries(self, listing_cache, clock):
        listing_cache.put("a", 1)
        clock.advance(minutes=20)
        listing_cache.put("b", 2)

        assert listing_cache.stats() == {"entries": 1}
