"""Tests for HttpFetcher (file reads, cache/network race, revalidation)."""

import asyncio
import logging

import pytest

from netimport.adapters.content_cache import ContentCache
from netimport.core.errors import FetchError, UnsupportedSchemeError

URL = "https://cdn.example/mod.py"


def fetch_once(fetcher, url):
    async def run():
        try:
            return await fetcher.fetch(url)
        finally:
            await fetcher.aclose()

    return asyncio.run(run())


class TestFileScheme:
    """file: URLs are read directly and never cached."""

    def test_reads_local_file(self, make_fetcher, tmp_path, cache_dir, origin):
        source = tmp_path / "local.py"
        source.write_text("VALUE = 42\n", encoding="utf-8")

        text = fetch_once(make_fetcher(), source.as_uri())

        assert text == "VALUE = 42\n"
        assert origin.requests == []
        assert list(ContentCache(cache_dir).entries()) == []

    def test_missing_file_raises_fetch_error(self, make_fetcher, tmp_path):
        url = (tmp_path / "missing.py").as_uri()
        with pytest.raises(FetchError) as excinfo:
            fetch_once(make_fetcher(), url)
        assert excinfo.value.url == url


class TestNetwork:
    """http(s) URLs race the cache against the network."""

    def test_round_trip_served_from_cache_when_offline(self, make_fetcher, origin):
        origin.add(URL, "BODY = 'b'\n", headers={"etag": '"v1"'})
        assert fetch_once(make_fetcher(), URL) == "BODY = 'b'\n"

        origin.offline = True
        assert fetch_once(make_fetcher(), URL) == "BODY = 'b'\n"

    def test_revalidation_sends_if_none_match(self, make_fetcher, origin):
        origin.add(URL, "x = 1", headers={"etag": '"v1"'})
        fetch_once(make_fetcher(), URL)
        assert "if-none-match" not in origin.requests[0].headers

        fetch_once(make_fetcher(), URL)

        assert len(origin.requests) == 2
        assert origin.requests[1].headers["if-none-match"] == '"v1"'

    def test_revalidation_sends_if_modified_since(self, make_fetcher, origin):
        stamp = "Wed, 21 Oct 2015 07:28:00 GMT"
        origin.add(URL, "x = 1", headers={"last-modified": stamp})
        fetch_once(make_fetcher(), URL)
        fetch_once(make_fetcher(), URL)

        assert origin.requests[1].headers["if-modified-since"] == stamp

    def test_not_modified_refreshes_timestamp_only(self, make_fetcher, origin, cache_dir):
        origin.add(URL, "x = 1", headers={"etag": '"v1"'})
        fetch_once(make_fetcher(), URL)
        cache = ContentCache(cache_dir)
        before = cache.lookup(URL)

        assert fetch_once(make_fetcher(), URL) == "x = 1"

        after = cache.lookup(URL)
        assert after.headers == before.headers
        assert after.file == before.file
        assert after.checked_at >= before.checked_at
        assert cache.read(URL) == "x = 1"

    def test_background_refresh_updates_cache(self, make_fetcher, origin, cache_dir):
        origin.add(URL, "x = 1")
        fetch_once(make_fetcher(), URL)
        origin.add(URL, "x = 2")

        # The stale copy answers; the network result lands in the cache.
        assert fetch_once(make_fetcher(), URL) == "x = 1"
        assert ContentCache(cache_dir).read(URL) == "x = 2"

    def test_not_modified_without_body_retries_unconditionally(self, make_fetcher, origin, cache_dir):
        origin.add(URL, "x = 1", headers={"etag": '"v1"'})
        fetch_once(make_fetcher(), URL)
        ContentCache(cache_dir).body_path(URL).unlink()

        assert fetch_once(make_fetcher(), URL) == "x = 1"

        assert origin.requests[1].headers["if-none-match"] == '"v1"'
        assert "if-none-match" not in origin.requests[2].headers

    def test_error_status_raises_fetch_error(self, make_fetcher, origin):
        origin.add(URL, "gone", status=500)
        with pytest.raises(FetchError) as excinfo:
            fetch_once(make_fetcher(), URL)
        assert excinfo.value.url == URL
        assert "500" in excinfo.value.reason

    def test_missing_route_raises_not_found(self, make_fetcher):
        with pytest.raises(FetchError, match="404 Not Found"):
            fetch_once(make_fetcher(), "https://cdn.example/nothing.py")

    def test_transport_error_without_cache(self, make_fetcher, origin):
        origin.offline = True
        with pytest.raises(FetchError, match="network disabled"):
            fetch_once(make_fetcher(), URL)

    def test_error_response_is_not_cached(self, make_fetcher, origin, cache_dir):
        origin.add(URL, "oops", status=404)
        with pytest.raises(FetchError):
            fetch_once(make_fetcher(), URL)
        assert ContentCache(cache_dir).lookup(URL) is None

    def test_unwritable_cache_still_returns_body(self, make_fetcher, origin, settings, tmp_path):
        blocker = tmp_path / "not-a-directory"
        blocker.write_text("", encoding="utf-8")
        origin.add(URL, "x = 1")
        blocked = settings.model_copy(update={"cache_dir": blocker})

        assert fetch_once(make_fetcher(blocked), URL) == "x = 1"

    def test_failed_revalidation_write_is_logged(self, make_fetcher, origin, monkeypatch, caplog):
        origin.add(URL, "x = 1", headers={"etag": '"v1"'})
        fetch_once(make_fetcher(), URL)

        def refuse(self, metadata):
            raise PermissionError("read-only cache")

        monkeypatch.setattr(ContentCache, "touch", refuse)
        caplog.set_level(logging.DEBUG, logger="netimport")

        assert fetch_once(make_fetcher(), URL) == "x = 1"
        assert any("cache write for" in r.getMessage() for r in caplog.records)

    def test_unsupported_scheme(self, make_fetcher):
        with pytest.raises(UnsupportedSchemeError):
            fetch_once(make_fetcher(), "ftp://host/mod.py")


class TestVerbose:
    """Verbose fetches log URL, status class, length and timing."""

    def test_logs_each_fetch(self, make_fetcher, origin, settings, caplog):
        caplog.set_level(logging.INFO, logger="netimport")
        origin.add(URL, "x = 1")
        verbose = settings.model_copy(update={"verbose": True})

        fetch_once(make_fetcher(verbose), URL)
        fetch_once(make_fetcher(verbose), URL)

        messages = [r.getMessage() for r in caplog.records if r.name == "netimport.adapters.fetcher"]
        assert messages[0].startswith(f"{URL} 200 5 ")
        assert messages[1].startswith(f"{URL} (cache) 5 ")
        assert messages[1].endswith("ms")

    def test_quiet_by_default(self, make_fetcher, origin, caplog):
        caplog.set_level(logging.INFO, logger="netimport")
        origin.add(URL, "x = 1")
        fetch_once(make_fetcher(), URL)
        assert not [r for r in caplog.records if r.name == "netimport.adapters.fetcher"]
