"""Tests for the Greenhouse and Lever adapters and the shared HTML helpers."""

import json
from datetime import datetime, timezone
from pathlib import Path
from typing import Any

import httpx
import pytest

from src.core.errors import FetchError, InputValidationError
from src.platforms.base import html_to_text, is_remote
from src.platforms.greenhouse import GreenhouseAdapter, parse_job
from src.platforms.lever import LeverAdapter, parse_posting

FIXTURES_DIR = Path(__file__).parent.parent / "fixtures"


def _load(name: str) -> Any:
    return json.loads((FIXTURES_DIR / name).read_text())


def _client(handler: Any) -> httpx.AsyncClient:
    return httpx.AsyncClient(transport=httpx.MockTransport(handler))


def _greenhouse_handler(content_status: int = 200) -> Any:
    def handler(request: httpx.Request) -> httpx.Response:
        if request.url.params.get("content") == "true":
            if content_status != 200:
                return httpx.Response(content_status)
            return httpx.Response(200, json=_load("greenhouse_jobs_content.json"))
        return httpx.Response(200, json=_load("greenhouse_jobs.json"))

    return handler


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------
class TestHtmlToText:
    def test_block_tags_become_lines(self) -> None:
        text = html_to_text("<p>Intro</p><ul><li>Go</li><li>Rust</li></ul>")
        assert text.splitlines() == ["Intro", "Go", "Rust"]

    def test_escaped_html(self) -> None:
        assert html_to_text("&lt;p&gt;A &amp;amp; B&lt;/p&gt;") == "A & B"

    def test_br(self) -> None:
        assert html_to_text("one<br/>two") == "one\ntwo"

    def test_empty(self) -> None:
        assert html_to_text("") == ""


class TestIsRemote:
    def test_detects_remote(self) -> None:
        assert is_remote("Remote - US")
        assert is_remote("REMOTE")

    def test_onsite(self) -> None:
        assert not is_remote("Austin, TX")
        assert not is_remote("")


# ---------------------------------------------------------------------------
# Greenhouse
# ---------------------------------------------------------------------------
class TestGreenhouseParse:
    def test_parse_full_job(self) -> None:
        posting = parse_job({
            "id": 7,
            "title": "Engineer",
            "absolute_url": "https://boards.greenhouse.io/x/jobs/7",
            "updated_at": "2024-05-02T10:15:00-04:00",
            "location": {"name": "Remote"},
            "departments": [{"name": "Eng"}, {"name": "Infra"}],
            "content": "<p>Hello</p>",
        })
        assert posting.external_id == "7"
        assert posting.remote is True
        assert posting.department == "Eng, Infra"
        assert posting.description == "Hello"
        assert posting.posted_at is not None
        assert posting.posted_at.year == 2024

    def test_missing_title_raises(self) -> None:
        with pytest.raises(InputValidationError):
            parse_job({"id": 1})

    def test_bad_timestamp_is_none(self) -> None:
        posting = parse_job({"id": 1, "title": "T", "updated_at": "yesterday"})
        assert posting.posted_at is None

    def test_missing_location(self) -> None:
        posting = parse_job({"id": 1, "title": "T", "location": None})
        assert posting.location == ""
        assert posting.remote is False

    def test_string_location(self) -> None:
        posting = parse_job({"id": 1, "title": "T", "location": "Remote - EU"})
        assert posting.location == "Remote - EU"
        assert posting.remote is True

    def test_non_string_title_raises(self) -> None:
        with pytest.raises(InputValidationError):
            parse_job({"id": 1, "title": ["T"]})


class TestGreenhouseAdapter:
    def test_platform_id(self) -> None:
        assert GreenhouseAdapter().platform_id == "greenhouse"

    async def test_fetch_merges_content(self) -> None:
        async with _client(_greenhouse_handler()) as client:
            postings = await GreenhouseAdapter(client).fetch_jobs("acme")

        # The third listing entry has no title and is skipped.
        assert [p.external_id for p in postings] == ["4012345", "4012346"]
        backend = postings[0]
        assert backend.remote is True
        assert backend.department == "Engineering, Payments"
        assert backend.url == "https://boards.greenhouse.io/acme/jobs/4012345"
        assert backend.description.splitlines() == [
            "We move money.",
            "Requirements",
            "Go & PostgreSQL",
            "Kubernetes",
            "Nice to have",
            "Terraform",
        ]
        assert postings[1].description == ""
        assert postings[1].remote is False

    async def test_content_failure_keeps_listing(self) -> None:
        async with _client(_greenhouse_handler(content_status=500)) as client:
            postings = await GreenhouseAdapter(client).fetch_jobs("acme")
        assert len(postings) == 2
        assert all(p.description == "" for p in postings)

    async def test_requests_board_url(self) -> None:
        seen: list[str] = []

        def handler(request: httpx.Request) -> httpx.Response:
            seen.append(str(request.url))
            return httpx.Response(200, json={"jobs": []})

        async with _client(handler) as client:
            assert await GreenhouseAdapter(client).fetch_jobs("acme") == []
        assert seen[0] == "https://boards-api.greenhouse.io/v1/boards/acme/jobs"
        assert seen[1].endswith("/acme/jobs?content=true")

    async def test_sends_user_agent(self) -> None:
        agents: list[str] = []

        def handler(request: httpx.Request) -> httpx.Response:
            agents.append(request.headers["User-Agent"])
            return httpx.Response(200, json={"jobs": []})

        async with _client(handler) as client:
            await GreenhouseAdapter(client, user_agent="tester/1.0").fetch_jobs("acme")
        assert agents == ["tester/1.0", "tester/1.0"]

    async def test_non_200_raises(self) -> None:
        async with _client(lambda request: httpx.Response(404)) as client:
            with pytest.raises(FetchError, match="status 404"):
                await GreenhouseAdapter(client).fetch_jobs("missing")

    async def test_network_error_raises(self) -> None:
        def handler(request: httpx.Request) -> httpx.Response:
            raise httpx.ConnectError("connection refused", request=request)

        async with _client(handler) as client:
            with pytest.raises(FetchError, match="connection refused"):
                await GreenhouseAdapter(client).fetch_jobs("acme")

    async def test_invalid_json_raises(self) -> None:
        async with _client(lambda request: httpx.Response(200, content=b"<html>")) as client:
            with pytest.raises(FetchError, match="decoding greenhouse"):
                await GreenhouseAdapter(client).fetch_jobs("acme")

    async def test_missing_jobs_key_raises(self) -> None:
        async with _client(lambda request: httpx.Response(200, json={"error": "x"})) as client:
            with pytest.raises(FetchError, match="no 'jobs' list"):
                await GreenhouseAdapter(client).fetch_jobs("acme")

    async def test_wrong_typed_fields_skip_only_bad_postings(self) -> None:
        def handler(request: httpx.Request) -> httpx.Response:
            if request.url.params.get("content") == "true":
                return httpx.Response(200, json=_load("greenhouse_jobs_mixed_content.json"))
            return httpx.Response(200, json=_load("greenhouse_jobs_mixed.json"))

        async with _client(handler) as client:
            postings = await GreenhouseAdapter(client).fetch_jobs("mixed")

        assert [p.external_id for p in postings] == ["1", "2", "3"]
        nyc, remote, odd = postings
        assert nyc.location == "NYC"
        assert nyc.description == "Go and Docker"
        assert remote.location == "Remote"
        assert remote.remote is True
        assert remote.department == "Infra"
        assert remote.description == ""
        assert odd.location == ""
        assert odd.department == ""
        assert odd.url == ""
        assert odd.posted_at is None


# ---------------------------------------------------------------------------
# Lever
# ---------------------------------------------------------------------------
class TestLeverParse:
    def test_lists_appended_to_description(self) -> None:
        posting = parse_posting(_load("lever_postings.json")[0])
        assert posting.description == (
            "Join our platform team.\n\nRequirements\nPython\nDocker\n\nNice to have\nAWS"
        )

    def test_created_at_millis(self) -> None:
        posting = parse_posting(_load("lever_postings.json")[0])
        assert posting.posted_at == datetime(2024, 5, 1, 10, 0, tzinfo=timezone.utc)

    def test_missing_created_at(self) -> None:
        posting = parse_posting(_load("lever_postings.json")[1])
        assert posting.posted_at is None

    def test_missing_text_raises(self) -> None:
        with pytest.raises(InputValidationError):
            parse_posting({"id": "x"})


class TestLeverAdapter:
    def test_platform_id(self) -> None:
        assert LeverAdapter().platform_id == "lever"

    async def test_fetch_postings(self) -> None:
        seen: list[str] = []

        def handler(request: httpx.Request) -> httpx.Response:
            seen.append(str(request.url))
            return httpx.Response(200, json=_load("lever_postings.json"))

        async with _client(handler) as client:
            postings = await LeverAdapter(client).fetch_jobs("beta")

        assert seen == ["https://api.lever.co/v0/postings/beta?mode=json"]
        assert [p.title for p in postings] == ["Software Engineer, New Grad", "Data Engineer"]
        first, second = postings
        assert first.location == "San Francisco, CA"
        assert first.department == "Engineering"
        assert first.remote is False
        assert first.url.startswith("https://jobs.lever.co/beta/")
        assert second.remote is True

    async def test_non_list_raises(self) -> None:
        async with _client(lambda request: httpx.Response(200, json={"ok": False})) as client:
            with pytest.raises(FetchError, match="not a list"):
                await LeverAdapter(client).fetch_jobs("beta")

    async def test_server_error_raises(self) -> None:
        async with _client(lambda request: httpx.Response(503)) as client:
            with pytest.raises(FetchError, match="lever API returned status 503"):
                await LeverAdapter(client).fetch_jobs("beta")

    async def test_wrong_typed_fields_skip_only_bad_postings(self) -> None:
        data = _load("lever_postings_mixed.json")
        async with _client(lambda request: httpx.Response(200, json=data)) as client:
            postings = await LeverAdapter(client).fetch_jobs("mixed")

        assert [p.external_id for p in postings] == ["l1", "l2"]
        backend, data_eng = postings
        assert backend.description == "Go services."
        assert backend.location == ""
        assert backend.remote is False
        assert data_eng.remote is True
        assert data_eng.department == ""
        assert "Requirements\nSQL" in data_eng.description
        assert data_eng.posted_at is None
