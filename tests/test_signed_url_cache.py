"""
Unit tests for utils/signed_url_cache.py
"""

import asyncio

from utils.signed_url_cache import SIGNED_URL_CACHE_TTL, SIGNED_URL_VALIDITY


class TestSignedUrlCache:

    def test_cache_expiry_is_shorter_than_url_validity(self):
        assert SIGNED_URL_CACHE_TTL < SIGNED_URL_VALIDITY

    def test_second_request_reuses_cached_url(self, url_cache, storage):
        first = asyncio.run(url_cache.get_signed_url("public/files/a.jpg"))
        second = asyncio.run(url_cache.get_signed_url("public/files/a.jpg"))

        assert first.url == second.url
        assert first.signed and not first.cached
        assert second.cached
        assert storage.sign_calls == ["public/files/a.jpg"]

    def test_url_is_regenerated_after_cache_expiry(self, url_cache, storage, clock):
        first = asyncio.run(url_cache.get_signed_url("public/files/a.jpg"))

        clock.advance(hours=22, minutes=59)
        assert asyncio.run(url_cache.get_signed_url("public/files/a.jpg")).url == first.url

        clock.advance(minutes=1)
        third = asyncio.run(url_cache.get_signed_url("public/files/a.jpg"))

        assert third.url != first.url
        assert len(storage.sign_calls) == 2

    def test_signing_failure_falls_back_to_public_url(self, url_cache, storage):
        storage.fail_signing = True

        result = asyncio.run(url_cache.get_signed_url("public/files/a.jpg"))

        assert result.is_fallback
        assert result.url == "https://storage.googleapis.com/test-bucket/public/files/a.jpg"

    def test_fallback_is_not_cached(self, url_cache, storage):
        storage.fail_signing = True
        asyncio.run(url_cache.get_signed_url("public/files/a.jpg"))
        storage.fail_signing = False

        result = asyncio.run(url_cache.get_signed_url("public/files/a.jpg"))

        assert result.signed
        assert len(storage.sign_calls) == 2

    def test_keys_are_scoped_by_signer_bucket(self, url_cache):
        assert url_cache.cache_key("a.jpg") == "signed:test-bucket:a.jpg"

    def test_get_many_resolves_every_key(self, url_cache):
        keys = [f"public/files/cat/{i}.jpg" for i in range(5)]

        results = asyncio.run(url_cache.get_many(keys))

        assert list(results) == keys
        assert all(result.signed for result in results.values())

    def test_purge_expired(self, url_cache, clock):
        asyncio.run(url_cache.get_signed_url("a.jpg"))
        clock.advance(hours=24)

        assert url_cache.purge_expired() == 1
        assert url_cache.stats() == {"entries": 0}

    def test_lookup_sweeps_every_expired_entry(self, url_cache, clock):
        for i in range(5):
            asyncio.run(url_cache.get_signed_url(f"public/files/old/{i}.jpg"))
        clock.advance(hours=24)

        asyncio.run(url_cache.get_signed_url("public/files/new.jpg"))

        assert len(url_cache) == 1
