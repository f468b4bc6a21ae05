"""Tests for the TheTVDB client: login, normalization, paging and search."""
import json

import httpx
import pytest

from conftest import episode_payload, paged_episodes
from showtracker.exceptions import AuthError, UpstreamError
from showtracker.services.tvdb import TvdbClient, TvdbEpisode, TvdbShow, normalize_id


async def test_login_stores_token(tvdb_mock):
    route = tvdb_mock.post("/login").mock(
        return_value=httpx.Response(200, json={"data": {"token": "jwt-token"}})
    )
    client = TvdbClient("api-key", pin="1234")

    token = await client.login()

    assert token == "jwt-token"
    assert client.token == "jwt-token"
    assert json.loads(route.calls.last.request.content) == {"apikey": "api-key", "pin": "1234"}


async def test_login_rejected_raises_auth_error(tvdb_mock):
    tvdb_mock.post("/login").mock(return_value=httpx.Response(401, json={"status": "failure"}))
    client = TvdbClient("bad-key", pin="1234")

    with pytest.raises(AuthError) as exc:
        await client.login()
    assert exc.value.status == 401
    assert client.token is None


async def test_login_without_token_raises_auth_error(tvdb_mock):
    tvdb_mock.post("/login").mock(return_value=httpx.Response(200, json={"data": {}}))

    with pytest.raises(AuthError, match="missing token"):
        await TvdbClient("api-key", pin="1234").login()


async def test_seeded_token_skips_login(tvdb_mock):
    login = tvdb_mock.post("/login")
    series = tvdb_mock.get("/series/81189").mock(
        return_value=httpx.Response(200, json={"data": {"id": 81189, "name": "Breaking Bad"}})
    )
    client = TvdbClient("api-key", pin="1234", token="seeded")

    show = await client.fetch_show("81189")

    assert show.name == "Breaking Bad"
    assert not login.called
    assert series.calls.last.request.headers["Authorization"] == "Bearer seeded"


async def test_fetch_show_extended_normalizes_payload(tvdb_mock):
    tvdb_mock.get("/series/81189/extended").mock(return_value=httpx.Response(200, json={"data": {
        "id": 81189,
        "name": "Breaking Bad",
        "image_url": "https://artworks/poster-fallback.jpg",
        "image": "https://artworks/poster.jpg",
        "status": {"id": 2, "name": "Ended"},
        "firstAired": "2008-01-20",
        "lastAired": "2013-09-29",
        "overview": "A chemistry teacher turns to crime.",
        "originalNetwork": {"id": 5, "name": "AMC"},
    }}))
    client = TvdbClient("api-key", token="t")

    show = await client.fetch_show_extended("81189")

    assert show == TvdbShow(
        id="81189",
        name="Breaking Bad",
        image="https://artworks/poster.jpg",
        overview="A chemistry teacher turns to crime.",
        first_aired="2008-01-20",
        last_aired="2013-09-29",
        status="Ended",
        network="AMC",
    )


async def test_non_success_status_raises_upstream_error(tvdb_mock):
    tvdb_mock.get("/series/999").mock(return_value=httpx.Response(404, json={"status": "failure"}))
    client = TvdbClient("api-key", token="t")

    with pytest.raises(UpstreamError) as exc:
        await client.fetch_show("999")
    assert exc.value.status == 404
    assert exc.value.path == "/series/999"


def test_episode_normalization_precedence():
    episode = TvdbEpisode.from_wire({
        "id": 5,
        "title": "Fallback title",
        "season": 3,
        "episodeNumber": 7,
        "airDate": "2011-07-17",
    })
    assert episode.id == "5"
    assert episode.name == "Fallback title"
    assert episode.season_number == 3
    assert episode.number == 7
    assert episode.air_date == "2011-07-17"

    preferred = TvdbEpisode.from_wire({
        "id": 6, "name": "Name", "title": "Title", "seasonNumber": 1, "season": 9,
        "number": 2, "episodeNumber": 8, "aired": "2011-01-01", "airDate": "1999-01-01",
    })
    assert (preferred.name, preferred.season_number, preferred.number, preferred.air_date) == (
        "Name", 1, 2, "2011-01-01"
    )


async def test_fetch_all_episodes_stops_on_empty_page(tvdb_mock):
    pages = [
        [episode_payload(1, number=1), episode_payload(2, number=2)],
        [episode_payload(3, number=3), episode_payload(4, number=4)],
        [episode_payload(5, number=5), episode_payload(6, number=6)],
    ]
    route = tvdb_mock.get("/series/81189/episodes/default").mock(side_effect=paged_episodes(pages))
    client = TvdbClient("api-key", token="t", page_size=2, max_pages=10)

    episodes = await client.fetch_all_episodes("81189")

    assert [e.id for e in episodes] == ["1", "2", "3", "4", "5", "6"]
    assert route.call_count == 4
    assert route.calls.last.request.url.params["page"] == "3"


async def test_fetch_all_episodes_stops_on_short_page(tvdb_mock):
    pages = [
        [episode_payload(1, number=1), episode_payload(2, number=2)],
        [episode_payload(3, number=3)],
    ]
    route = tvdb_mock.get("/series/81189/episodes/default").mock(side_effect=paged_episodes(pages))
    client = TvdbClient("api-key", token="t", page_size=2, max_pages=10)

    episodes = await client.fetch_all_episodes("81189")

    assert len(episodes) == 3
    assert route.call_count == 2
    assert client.is_complete(episodes)


async def test_fetch_all_episodes_respects_max_pages(tvdb_mock):
    pages = [[episode_payload(i * 2 + 1), episode_payload(i * 2 + 2)] for i in range(5)]
    route = tvdb_mock.get("/series/81189/episodes/default").mock(side_effect=paged_episodes(pages))
    client = TvdbClient("api-key", token="t", page_size=2, max_pages=10)

    episodes = await client.fetch_all_episodes("81189", max_pages=2)

    assert len(episodes) == 4
    assert route.call_count == 2
    assert not client.is_complete(episodes, max_pages=2)


async def test_search_filters_normalizes_and_truncates(tvdb_mock):
    route = tvdb_mock.get("/search").mock(return_value=httpx.Response(200, json={"data": [
        {"id": "series-81189", "tvdb_id": "81189", "name": "Breaking Bad", "year": "2008"},
        {"id": "series-1", "name": None},
        {"name": "No id at all"},
        {"id": "series-73255", "name": "House"},
        {"tvdb_id": 121361, "name": "Game of Thrones", "year": 2011},
        {"id": "series-5", "name": "Cut by limit"},
    ]}))
    client = TvdbClient("api-key", token="t")

    results = await client.search_shows("br", limit=3)

    assert [(r.id, r.title, r.year) for r in results] == [
        ("81189", "Breaking Bad", 2008),
        ("73255", "House", None),
        ("121361", "Game of Thrones", 2011),
    ]
    params = route.calls.last.request.url.params
    assert params["query"] == "br"
    assert params["type"] == "series"


def test_normalize_id():
    assert normalize_id("series-73255") == "73255"
    assert normalize_id(73255) == "73255"
    assert normalize_id(" series- ") is None
    assert normalize_id(None) is None


async def test_fetch_all_episodes_with_zero_page_limit(tvdb_mock):
    route = tvdb_mock.get("/series/81189/episodes/default").mock(
        side_effect=paged_episodes([[episode_payload(1)]])
    )
    client = TvdbClient("api-key", token="t", page_size=2, max_pages=10)

    episodes = await client.fetch_all_episodes("81189", max_pages=0)

    assert episodes == []
    assert not route.called
    assert not client.is_complete(episodes, max_pages=0)
