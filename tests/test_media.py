"""Tests for media formats, fetch strategies and MediaFetcher."""

import asyncio
import base64

import httpx
import pytest
import respx

from social_archiver.domain.entities import MediaFormat
from social_archiver.domain.exceptions import FetchFailure, FetchFailureKind
from social_archiver.infrastructure.media.formats import (
    decode_data_url,
    detect_format,
    encode_data_url,
    format_from_url,
)
from social_archiver.infrastructure.media.media_fetcher import MediaFetcher
from social_archiver.infrastructure.media.strategies import (
    DirectFetchStrategy,
    FetchedPayload,
    RelayFetchStrategy,
)
from tests.conftest import FakeStrategy, cors_blocked, network_failure

URL = "https://cdn.example.com/a.jpg"
JPEG = FetchedPayload(b"\xff\xd8\xff", "image/jpeg")


class TestFormats:
    """Tests for media format detection."""

    def test_extension_wins_over_content_type(self):
        assert detect_format("https://x/photo.PNG?w=100", "image/jpeg") is MediaFormat.PNG

    def test_content_type_fallback(self):
        assert detect_format("https://x/media/12345", "video/mp4; codecs=avc1") is MediaFormat.MP4

    def test_unknown_is_none(self):
        assert detect_format("https://x/media/12345", "application/octet-stream") is None
        assert format_from_url("https://x/file.tar.gz") is None

    def test_data_url_roundtrip_base64(self):
        data, mime = decode_data_url(encode_data_url(b"\x89PNG", "image/png"))
        assert data == b"\x89PNG"
        assert mime == "image/png"

    def test_data_url_percent_encoded(self):
        assert decode_data_url("data:text/plain,hello%20world") == (b"hello world", "text/plain")

    def test_malformed_data_url(self):
        with pytest.raises(ValueError):
            decode_data_url("data:image/png;base64")


class TestDirectFetchStrategy:
    """Tests for DirectFetchStrategy error classification."""

    @pytest.mark.asyncio
    @respx.mock
    async def test_success(self):
        respx.get(URL).mock(
            return_value=httpx.Response(200, content=b"img", headers={"content-type": "image/jpeg"})
        )
        strategy = DirectFetchStrategy()
        try:
            payload = await strategy.fetch(URL, timeout=5)
        finally:
            await strategy.aclose()

        assert payload.data == b"img"
        assert payload.content_type == "image/jpeg"

    @pytest.mark.asyncio
    @respx.mock
    async def test_http_error_status(self):
        respx.get(URL).mock(return_value=httpx.Response(404))
        strategy = DirectFetchStrategy()
        with pytest.raises(FetchFailure) as exc_info:
            await strategy.fetch(URL, timeout=5)
        await strategy.aclose()

        assert exc_info.value.kind is FetchFailureKind.HTTP_STATUS
        assert exc_info.value.status_code == 404

    @pytest.mark.asyncio
    @respx.mock
    async def test_timeout(self):
        respx.get(URL).mock(side_effect=httpx.ReadTimeout("slow"))
        strategy = DirectFetchStrategy()
        with pytest.raises(FetchFailure) as exc_info:
            await strategy.fetch(URL, timeout=5)
        await strategy.aclose()

        assert exc_info.value.kind is FetchFailureKind.TIMEOUT

    @pytest.mark.asyncio
    @respx.mock
    async def test_connect_error_is_relay_candidate(self):
        respx.get(URL).mock(side_effect=httpx.ConnectError("refused"))
        strategy = DirectFetchStrategy()
        with pytest.raises(FetchFailure) as exc_info:
            await strategy.fetch(URL, timeout=5)
        await strategy.aclose()

        assert exc_info.value.kind is FetchFailureKind.CORS_BLOCKED


class FakeRelay:
    def __init__(self, result):
        self.result = result
        self.calls = []

    async def fetch_as_data_url(self, url, timeout):
        self.calls.append(url)
        if isinstance(self.result, Exception):
            raise self.result
        return self.result


class TestRelayFetchStrategy:
    """Tests for RelayFetchStrategy."""

    @pytest.mark.asyncio
    async def test_decodes_data_url(self):
        relay = FakeRelay("data:image/webp;base64," + base64.b64encode(b"webp").decode())
        payload = await RelayFetchStrategy(relay).fetch(URL, timeout=5)

        assert payload.data == b"webp"
        assert payload.content_type == "image/webp"

    @pytest.mark.asyncio
    async def test_relay_errors_become_network_failures(self):
        relay = FakeRelay(RuntimeError("tab closed"))
        with pytest.raises(FetchFailure) as exc_info:
            await RelayFetchStrategy(relay).fetch(URL, timeout=5)
        assert exc_info.value.kind is FetchFailureKind.NETWORK

    @pytest.mark.asyncio
    async def test_relay_fetch_failure_passes_through(self):
        relay = FakeRelay(FetchFailure(FetchFailureKind.HTTP_STATUS, URL, "HTTP 403", 403))
        with pytest.raises(FetchFailure) as exc_info:
            await RelayFetchStrategy(relay).fetch(URL, timeout=5)
        assert exc_info.value.status_code == 403


class TestMediaFetcher:
    """Tests for MediaFetcher retry and fallback behavior."""

    @pytest.mark.asyncio
    async def test_success_first_attempt(self, sleep_recorder):
        direct = FakeStrategy("direct", [JPEG])
        fetcher = MediaFetcher([direct], sleep=sleep_recorder)

        result = await fetcher.fetch_one(URL)

        assert result.success
        assert result.data == JPEG.data
        assert result.format is MediaFormat.JPEG
        assert result.attempts == 1
        assert result.strategy == "direct"
        assert sleep_recorder.delays == []

    @pytest.mark.asyncio
    async def test_exponential_backoff_until_exhausted(self, sleep_recorder):
        """Three failed attempts sleep 1s then 2s and report the last failure."""
        direct = FakeStrategy("direct", [network_failure()])
        fetcher = MediaFetcher([direct], max_attempts=3, base_delay=1.0, sleep=sleep_recorder)

        result = await fetcher.fetch_one(URL)

        assert not result.success
        assert result.attempts == 3
        assert result.failure.kind is FetchFailureKind.NETWORK
        assert len(direct.calls) == 3
        assert sleep_recorder.delays == [1.0, 2.0]

    @pytest.mark.asyncio
    async def test_recovers_on_retry(self, sleep_recorder):
        direct = FakeStrategy("direct", [network_failure(), JPEG])
        fetcher = MediaFetcher([direct], sleep=sleep_recorder)

        result = await fetcher.fetch_one(URL)

        assert result.success
        assert result.attempts == 2
        assert sleep_recorder.delays == [1.0]

    @pytest.mark.asyncio
    async def test_succeeds_on_third_attempt(self, sleep_recorder):
        """Two failures then success: delays 1s, 2s and exactly three calls."""
        direct = FakeStrategy("direct", [network_failure(), network_failure(), JPEG])
        fetcher = MediaFetcher([direct], max_attempts=3, base_delay=1.0, sleep=sleep_recorder)

        result = await fetcher.fetch_one(URL)

        assert result.success
        assert result.data == JPEG.data
        assert result.attempts == 3
        assert len(direct.calls) == 3
        assert sleep_recorder.delays == [1.0, 2.0]

    @pytest.mark.asyncio
    async def test_blocked_request_falls_back_to_relay(self, sleep_recorder):
        direct = FakeStrategy("direct", [cors_blocked()])
        relay = FakeStrategy("relay", [FetchedPayload(b"png", "image/png")])
        fetcher = MediaFetcher([direct, relay], sleep=sleep_recorder)

        result = await fetcher.fetch_one(URL)

        assert result.success
        assert result.strategy == "relay"
        assert result.attempts == 1
        assert result.format is MediaFormat.JPEG  # URL extension wins
        assert sleep_recorder.delays == []

    @pytest.mark.asyncio
    async def test_http_status_does_not_fall_back(self, sleep_recorder):
        direct = FakeStrategy("direct", [FetchFailure(FetchFailureKind.HTTP_STATUS, URL, "HTTP 404", 404)])
        relay = FakeStrategy("relay", [JPEG])
        fetcher = MediaFetcher([direct, relay], max_attempts=2, sleep=sleep_recorder)

        result = await fetcher.fetch_one(URL)

        assert not result.success
        assert result.failure.kind is FetchFailureKind.HTTP_STATUS
        assert relay.calls == []

    @pytest.mark.asyncio
    async def test_all_strategies_blocked(self, sleep_recorder):
        direct = FakeStrategy("direct", [cors_blocked()])
        relay = FakeStrategy("relay", [cors_blocked()])
        fetcher = MediaFetcher([direct, relay], max_attempts=1, sleep=sleep_recorder)

        result = await fetcher.fetch_one(URL)

        assert result.failure.kind is FetchFailureKind.CORS_BLOCKED
        assert len(relay.calls) == 1

    @pytest.mark.asyncio
    async def test_per_attempt_timeout(self, sleep_recorder):
        class SlowStrategy:
            name = "direct"

            async def fetch(self, url, timeout):
                await asyncio.sleep(5)

        fetcher = MediaFetcher([SlowStrategy()], max_attempts=1, timeout=0.01, sleep=sleep_recorder)

        result = await fetcher.fetch_one(URL)

        assert result.failure.kind is FetchFailureKind.TIMEOUT

    @pytest.mark.asyncio
    async def test_data_url_is_decoded_without_network(self, sleep_recorder):
        direct = FakeStrategy("direct", [JPEG])
        fetcher = MediaFetcher([direct], sleep=sleep_recorder)

        result = await fetcher.fetch_one("data:image/png;base64,iVBORw0KGgo=")

        assert result.success
        assert result.strategy == "inline"
        assert result.format is MediaFormat.PNG
        assert result.data.startswith(b"\x89PNG")
        assert direct.calls == []

    def test_requires_strategy(self):
        with pytest.raises(ValueError):
            MediaFetcher([])

    def test_backoff_delay(self):
        fetcher = MediaFetcher([FakeStrategy("direct", [JPEG])], base_delay=0.5)
        assert [fetcher.backoff_delay(n) for n in (1, 2, 3)] == [0.5, 1.0, 2.0]


class TestFetchBatch:
    """Tests for MediaFetcher.fetch_batch."""

    @pytest.mark.asyncio
    async def test_partial_failure_and_callback(self, sleep_recorder):
        bad = "https://cdn.example.com/bad.jpg"

        def outcome(url):
            return network_failure(url) if url == bad else JPEG

        direct = FakeStrategy("direct", [outcome])
        fetcher = MediaFetcher([direct], max_attempts=1, sleep=sleep_recorder)
        urls = [f"https://cdn.example.com/{i}.jpg" for i in range(3)] + [bad, "https://cdn.example.com/0.jpg"]
        completed = []

        batch = await fetcher.fetch_batch(
            urls, concurrency=2, on_item_complete=lambda url, result: completed.append(url)
        )

        assert len(batch.results) == 4
        assert batch.success_count == 3
        assert batch.failure_count == 1
        assert not batch.is_complete
        assert not batch.results[bad].success
        assert sorted(completed) == sorted(set(urls))
        assert len(direct.calls) == 4
