from datetime import datetime, timedelta

import pytest

from conftest import LIST_URL, REFERENCE, FakeHTTPClient, FakeScraper, detail_body
from core.pipeline import AggregationPipeline
from core.registry import SourceRegistry, UnknownSourceError
from core.summarizer import NO_CONTENT
from core.timeutil import CANONICAL_TZ, to_millis


def make_pipeline(scraper, http, clock, batch_size=5):
    return AggregationPipeline(SourceRegistry([scraper]), http, clock=clock, batch_size=batch_size)


def url(n):
    return f"https://example.com/news/{n}"


@pytest.mark.asyncio
async def test_dedupe_then_normalize_relative_times(clock):
    scraper = FakeScraper(needs_detail=False)
    http = FakeHTTPClient({LIST_URL: [
        {"title": "Old copy", "url": "a", "time": "2 hours ago"},
        {"title": "New copy", "url": "a", "time": "10 minutes ago"},
    ]})

    result = await make_pipeline(scraper, http, clock).run("fake")

    assert len(result.data) == 1
    item = result.data[0]
    assert item.title == "New copy"
    assert item.timestamp == to_millis(datetime(2025, 1, 1, 11, 50, tzinfo=CANONICAL_TZ))


@pytest.mark.asyncio
async def test_one_failed_detail_keeps_all_five_items(clock):
    entries = [{"title": f"Story {n}", "url": url(n), "category": "国际"} for n in range(5)]
    responses = {LIST_URL: entries}
    for n in range(5):
        responses[url(n)] = detail_body(f"Detail body number {n} with enough text.", time="2025-01-01 10:00")
    http = FakeHTTPClient(responses, failing={url(3)})

    result = await make_pipeline(FakeScraper(), http, clock).run("fake")

    assert [i.url for i in result.data] == [url(n) for n in range(5)]
    degraded = result.data[3]
    assert degraded.content == "国际：Story 3"
    assert degraded.author == "Fake Desk"
    assert result.data[0].content == "Detail body number 0 with enough text."


@pytest.mark.asyncio
async def test_malformed_time_is_kept_with_unknown_timestamp(clock):
    scraper = FakeScraper(needs_detail=False)
    http = FakeHTTPClient({LIST_URL: [{"title": "Mystery", "url": "m", "time": "????"}]})

    for days in ("today", "1", "30"):
        result = await make_pipeline(scraper, http, clock).run("fake", days=days)
        assert len(result.data) == 1
        assert result.data[0].timestamp is None


@pytest.mark.asyncio
async def test_non_finite_time_does_not_empty_the_route(clock):
    scraper = FakeScraper(needs_detail=False)
    http = FakeHTTPClient({LIST_URL: [
        {"title": "Fine", "url": "a", "time": "10 minutes ago"},
        {"title": "Broken clock", "url": "b", "time": float("nan")},
    ]})

    result = await make_pipeline(scraper, http, clock).run("fake")

    assert [i.url for i in result.data] == ["a", "b"]
    assert result.data[0].timestamp == to_millis(datetime(2025, 1, 1, 11, 50, tzinfo=CANONICAL_TZ))
    assert result.data[1].timestamp is None


@pytest.mark.asyncio
async def test_recency_window_filters_old_items(clock):
    scraper = FakeScraper(needs_detail=False)
    http = FakeHTTPClient({LIST_URL: [
        {"title": "Today", "url": "t", "time": "2025-01-01 08:00"},
        {"title": "Last week", "url": "w", "time": "2024-12-26 08:00"},
    ]})
    pipeline = make_pipeline(scraper, http, clock)

    assert [i.url for i in (await pipeline.run("fake", days="today")).data] == ["t"]
    assert [i.url for i in (await pipeline.run("fake", days="7")).data] == ["t", "w"]


@pytest.mark.asyncio
async def test_list_failure_returns_empty_envelope(clock):
    http = FakeHTTPClient({}, failing={LIST_URL}, list_from_cache=True)

    result = await make_pipeline(FakeScraper(), http, clock).run("fake")

    assert result.data == []
    assert result.from_cache is False
    assert result.to_dict()["total"] == 0
    assert result.update_time == "2025-01-01 12:00:00"
    assert result.name == "fake"


@pytest.mark.asyncio
async def test_parse_failure_returns_empty_envelope(clock):
    http = FakeHTTPClient({LIST_URL: [{"unexpected": "shape"}]})

    result = await make_pipeline(FakeScraper(), http, clock).run("fake")
    assert result.data == []


@pytest.mark.asyncio
async def test_unknown_source_raises(clock):
    with pytest.raises(UnknownSourceError):
        await make_pipeline(FakeScraper(), FakeHTTPClient({}), clock).run("nope")


@pytest.mark.asyncio
async def test_limit_truncates_and_adjusts_total(clock):
    scraper = FakeScraper(needs_detail=False)
    http = FakeHTTPClient({LIST_URL: [{"title": f"S{n}", "url": url(n)} for n in range(8)]})

    result = await make_pipeline(scraper, http, clock).run("fake", limit=3)

    payload = result.to_dict()
    assert payload["total"] == 3
    assert [d["url"] for d in payload["data"]] == [url(0), url(1), url(2)]


@pytest.mark.asyncio
async def test_candidate_cap_bounds_enrichment(clock):
    scraper = FakeScraper(max_candidates=4)
    entries = [{"title": f"S{n}", "url": url(n)} for n in range(10)]
    responses = {LIST_URL: entries, **{url(n): detail_body() for n in range(10)}}
    http = FakeHTTPClient(responses)

    result = await make_pipeline(scraper, http, clock).run("fake")

    assert len(result.data) == 4
    assert len(http.calls) == 1 + 4


@pytest.mark.asyncio
async def test_detail_fetches_may_use_cache_when_list_bypasses_it(clock):
    responses = {LIST_URL: [{"title": "S", "url": url(1)}], url(1): detail_body()}
    http = FakeHTTPClient(responses, list_from_cache=True)

    result = await make_pipeline(FakeScraper(), http, clock).run("fake", no_cache=True)

    list_call, detail_call = http.calls
    assert list_call["bypass_cache"] is True
    assert detail_call["bypass_cache"] is False
    assert detail_call["headers"]["Referer"] == LIST_URL
    assert result.from_cache is True


@pytest.mark.asyncio
async def test_time_preference(clock):
    responses = {
        LIST_URL: [{"title": "S", "url": url(1), "time": "09:00"}],
        url(1): detail_body(time="2025-01-01 10:30"),
    }

    detail_first = await make_pipeline(FakeScraper(prefer_detail_time=True), FakeHTTPClient(responses), clock).run("fake")
    list_first = await make_pipeline(FakeScraper(prefer_detail_time=False), FakeHTTPClient(responses), clock).run("fake")

    assert detail_first.data[0].timestamp == to_millis(datetime(2025, 1, 1, 10, 30, tzinfo=CANONICAL_TZ))
    assert list_first.data[0].timestamp == to_millis(datetime(2025, 1, 1, 9, 0, tzinfo=CANONICAL_TZ))


@pytest.mark.asyncio
async def test_detail_missing_time_falls_back_to_list_time(clock):
    responses = {LIST_URL: [{"title": "S", "url": url(1), "time": 1735700000}], url(1): detail_body()}

    result = await make_pipeline(FakeScraper(), FakeHTTPClient(responses), clock).run("fake")
    assert result.data[0].timestamp == 1735700000000


@pytest.mark.asyncio
async def test_short_detail_body_falls_back_to_list_summary(clock):
    responses = {
        LIST_URL: [{"title": "S", "url": url(1), "summary": "<p>The list summary is long enough.</p>"}],
        url(1): detail_body("tiny"),
    }

    result = await make_pipeline(FakeScraper(), FakeHTTPClient(responses), clock).run("fake")
    assert result.data[0].content == "The list summary is long enough."


@pytest.mark.asyncio
async def test_detail_noise_is_truncated(clock):
    responses = {
        LIST_URL: [{"title": "S", "url": url(1)}],
        url(1): detail_body("Markets moved sharply today. 免责声明：仅供参考"),
    }

    result = await make_pipeline(FakeScraper(), FakeHTTPClient(responses), clock).run("fake")
    assert result.data[0].content == "Markets moved sharply today."


@pytest.mark.asyncio
async def test_item_fields_and_serialization(clock):
    responses = {
        LIST_URL: [{"title": "  List title ", "url": url(1), "hot": 42, "cover": "https://img/list.jpg"}],
        url(1): detail_body(title="Detail title", author="Reporter", time="2025-01-01 11:00"),
    }

    result = await make_pipeline(FakeScraper(), FakeHTTPClient(responses), clock).run("fake", days="3")
    payload = result.to_dict()

    assert payload["fromCache"] is False
    assert payload["updateTime"] == "2025-01-01 12:00:00"
    assert payload["type"] == "全部"
    assert payload["params"]["days"]["type"]["7"] == "近一周"
    entry = payload["data"][0]
    assert entry["title"] == "Detail title"
    assert entry["author"] == "Reporter"
    assert entry["mobileUrl"] == entry["url"] == url(1)
    assert entry["hot"] == 42
    assert entry["cover"] == "https://img/list.jpg"
    assert entry["id"].startswith("fake_0_")
    assert "raw_time" not in entry


@pytest.mark.asyncio
async def test_degraded_record_without_category_uses_title(clock):
    responses = {LIST_URL: [{"title": "Lonely", "url": url(1)}]}
    http = FakeHTTPClient(responses, failing={url(1)})

    result = await make_pipeline(FakeScraper(), http, clock).run("fake")
    assert result.data[0].content == "Lonely"
    assert result.data[0].content != NO_CONTENT


@pytest.mark.asyncio
async def test_untitled_candidates_are_dropped(clock):
    http = FakeHTTPClient({LIST_URL: [{"title": "  ", "url": "a"}, {"title": "Kept", "url": "b"}]})

    result = await make_pipeline(FakeScraper(needs_detail=False), http, clock).run("fake")
    assert [i.url for i in result.data] == ["b"]


@pytest.mark.asyncio
async def test_day_count_window_uses_injected_clock():
    later = lambda: REFERENCE + timedelta(days=10)
    http = FakeHTTPClient({LIST_URL: [{"title": "S", "url": "a", "time": "2025-01-01 08:00"}]})

    result = await make_pipeline(FakeScraper(needs_detail=False), http, later).run("fake", days=5)
    assert result.data == []
