"""Unit tests for the shipped collaborator adapters."""

from unittest.mock import MagicMock

import httpx
import pytest

from yearprobe_core.tools.captcha_solver import NOT_READY, TwoCaptchaSolver, submit_params
from yearprobe_core.tools.cookie_store import DiskCookieStore
from yearprobe_core.tools.duckduckgo_search import DuckDuckGoSearch, parse_results
from yearprobe_core.tools.page_fetcher import HttpPageFetcher
from yearprobe_core.tools.tavily_search import TavilySearch
from yearprobe_core.verification.antibot import ChallengeKind

DDG_HTML = """
<html><body>
<div class="result">
  <a class="result__a" href="//duckduckgo.com/l/?uddg=https%3A%2F%2Fen.wikipedia.org%2Fwiki%2FTake_On_Me&amp;rut=1">
    Take On Me - Wikipedia</a>
  <a class="result__snippet">"Take On Me" is a song by a-ha, released in 1985.</a>
</div>
<div class="result">
  <a class="result__a" href="https://www.discogs.com/master/1">a-ha - Take On Me</a>
</div>
<div class="result"><span>no link</span></div>
</body></html>
"""


def json_response(payload):
    response = MagicMock(spec=httpx.Response)
    response.status_code = 200
    response.raise_for_status = MagicMock()
    response.json.return_value = payload
    response.text = ""
    return response


@pytest.mark.unit
class TestDuckDuckGo:
    def test_parse_results_unwraps_redirects(self):
        results = parse_results(DDG_HTML)
        assert [r.url for r in results] == [
            "https://en.wikipedia.org/wiki/Take_On_Me",
            "https://www.discogs.com/master/1",
        ]
        assert results[0].title == "Take On Me - Wikipedia"
        assert "released in 1985" in results[0].snippet
        assert results[1].snippet == ""

    def test_parse_results_respects_limit(self):
        assert len(parse_results(DDG_HTML, max_results=1)) == 1

    @pytest.mark.asyncio
    async def test_search(self, mock_httpx_client):
        mock_httpx_client.get.return_value.text = DDG_HTML
        search = DuckDuckGoSearch(client=mock_httpx_client)
        results = await search.search("a-ha take on me")
        assert len(results) == 2
        url = mock_httpx_client.get.call_args.args[0]
        assert url.startswith("https://html.duckduckgo.com/html/?q=a-ha+take+on+me")

    @pytest.mark.asyncio
    async def test_challenge_page_returns_no_results(self, mock_httpx_client):
        mock_httpx_client.get.return_value.text = "<html><body>Select all squares with ducks</body></html>"
        search = DuckDuckGoSearch(client=mock_httpx_client)
        assert await search.search("q") == []

    @pytest.mark.asyncio
    async def test_transport_error_returns_no_results(self, mock_httpx_client):
        mock_httpx_client.get.side_effect = httpx.ConnectError("down")
        search = DuckDuckGoSearch(client=mock_httpx_client)
        assert await search.search("q") == []


@pytest.mark.unit
class TestTavilySearch:
    @pytest.mark.asyncio
    async def test_maps_results(self, mock_httpx_client):
        mock_httpx_client.post.return_value = json_response({
            "results": [
                {"url": "https://en.wikipedia.org/wiki/X", "title": "X", "content": "released 1985"},
                {"url": "javascript:alert(1)", "title": "bad"},
            ]
        })
        search = TavilySearch(api_key="test-key", client=mock_httpx_client, exclude_domains=[".Pinterest.com"])
        results = await search.search("q")

        assert [r.url for r in results] == ["https://en.wikipedia.org/wiki/X"]
        assert results[0].snippet == "released 1985"
        payload = mock_httpx_client.post.call_args.kwargs["json"]
        assert payload["exclude_domains"] == ["pinterest.com"]
        assert payload["include_raw_content"] is False

    def test_authorization_header_only_with_key(self):
        assert TavilySearch._headers("tvly-key")["Authorization"] == "Bearer tvly-key"
        assert "Authorization" not in TavilySearch._headers("")



@pytest.mark.unit
class TestTwoCaptchaSolver:
    def test_submit_params_per_kind(self):
        assert submit_params(ChallengeKind.RECAPTCHA_V2, "k", "u")["method"] == "userrecaptcha"
        assert submit_params(ChallengeKind.RECAPTCHA_V3, "k", "u")["version"] == "v3"
        assert submit_params(ChallengeKind.HCAPTCHA, "k", "u")["method"] == "hcaptcha"
        assert submit_params(ChallengeKind.TURNSTILE, "k", "u")["method"] == "turnstile"
        assert submit_params(ChallengeKind.IMAGE, "k", "u") is None

    @pytest.mark.asyncio
    async def test_polls_until_ready(self, mock_httpx_client):
        mock_httpx_client.post.return_value = json_response({"status": 1, "request": "42"})
        mock_httpx_client.get.side_effect = [
            json_response({"status": 0, "request": NOT_READY}),
            json_response({"status": 1, "request": "TOKEN"}),
        ]
        solver = TwoCaptchaSolver(api_key="key", poll_interval_s=0, client=mock_httpx_client)

        result = await solver.solve("https://example.com", ChallengeKind.HCAPTCHA, "site")

        assert result.success is True
        assert result.token == "TOKEN"
        assert mock_httpx_client.get.await_count == 2
        assert mock_httpx_client.post.call_args.kwargs["data"]["sitekey"] == "site"

    @pytest.mark.asyncio
    async def test_submit_rejected(self, mock_httpx_client):
        mock_httpx_client.post.return_value = json_response({"status": 0, "request": "ERROR_ZERO_BALANCE"})
        solver = TwoCaptchaSolver(api_key="key", poll_interval_s=0, client=mock_httpx_client)

        result = await solver.solve("https://example.com", ChallengeKind.RECAPTCHA_V2, "site")

        assert result.success is False
        assert result.error == "ERROR_ZERO_BALANCE"
        mock_httpx_client.get.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_times_out(self, mock_httpx_client):
        mock_httpx_client.post.return_value = json_response({"status": 1, "request": "42"})
        mock_httpx_client.get.return_value = json_response({"status": 0, "request": NOT_READY})
        solver = TwoCaptchaSolver(api_key="key", timeout_s=0.05, poll_interval_s=0.01, client=mock_httpx_client)

        result = await solver.solve("https://example.com", ChallengeKind.TURNSTILE, "site")

        assert result.success is False
        assert result.error == "timeout"

    @pytest.mark.asyncio
    async def test_unsupported_kind(self, mock_httpx_client):
        solver = TwoCaptchaSolver(api_key="key", client=mock_httpx_client)
        result = await solver.solve("https://example.com", ChallengeKind.IMAGE, "site")
        assert result.success is False
        mock_httpx_client.post.assert_not_awaited()


@pytest.mark.unit
class TestDiskCookieStore:
    def test_save_and_load(self, tmp_path):
        store = DiskCookieStore(tmp_path / "cookies")
        store.save("www.Example.com", {"sid": "abc"})
        assert store.load("example.com") == {"sid": "abc"}
        assert store.load("other.com") == {}
        store.close()

    def test_last_write_wins_and_load_all(self, tmp_path):
        store = DiskCookieStore(tmp_path / "cookies")
        store.save("example.com", {"sid": "old"})
        store.save("example.com", {"sid": "new"})
        store.save("genius.com", {"g": "1"})
        store.save("empty.com", {})
        assert store.load_all() == {"example.com": {"sid": "new"}, "genius.com": {"g": "1"}}
        store.close()


@pytest.mark.unit
class TestHttpPageFetcher:
    @pytest.mark.asyncio
    async def test_fetch_and_persist_cookies(self):
        def handler(request: httpx.Request) -> httpx.Response:
            return httpx.Response(200, text="<p>1985</p>", headers={"set-cookie": "sid=abc; Path=/"})

        store = MagicMock(spec=DiskCookieStore)
        store.load_all.return_value = {}
        client = httpx.AsyncClient(transport=httpx.MockTransport(handler))
        fetcher = HttpPageFetcher(cookie_store=store, client=client)

        assert await fetcher.fetch("https://example.com/song") == "<p>1985</p>"
        await fetcher.persist_cookies()

        store.save.assert_called_once_with("example.com", {"sid": "abc"})
        await fetcher.close()

    @pytest.mark.asyncio
    async def test_stored_cookies_are_loaded_once(self):
        store = MagicMock(spec=DiskCookieStore)
        store.load_all.return_value = {"example.com": {"sid": "stored"}}
        client = httpx.AsyncClient(transport=httpx.MockTransport(lambda r: httpx.Response(200, text="ok")))
        fetcher = HttpPageFetcher(cookie_store=store, client=client)

        await fetcher.fetch("https://example.com/a")
        await fetcher.fetch("https://example.com/b")

        store.load_all.assert_called_once()
        assert client.cookies.get("sid", domain="example.com") == "stored"
        await fetcher.close()

    @pytest.mark.asyncio
    async def test_cookie_load_failure_does_not_fail_fetch(self):
        store = MagicMock(spec=DiskCookieStore)
        store.load_all.side_effect = OSError("cache unreadable")
        client = httpx.AsyncClient(transport=httpx.MockTransport(lambda r: httpx.Response(200, text="<p>1985</p>")))
        fetcher = HttpPageFetcher(cookie_store=store, client=client)

        assert await fetcher.fetch("https://example.com/a") == "<p>1985</p>"
        assert await fetcher.fetch("https://example.com/b") == "<p>1985</p>"

        store.load_all.assert_called_once()
        await fetcher.close()


    @pytest.mark.asyncio
    async def test_challenge_status_keeps_body(self):
        client = httpx.AsyncClient(
            transport=httpx.MockTransport(lambda r: httpx.Response(403, text='<div class="g-recaptcha"></div>'))
        )
        fetcher = HttpPageFetcher(client=client)
        assert "g-recaptcha" in await fetcher.fetch("https://example.com/a")
        await fetcher.close()

    @pytest.mark.asyncio
    async def test_failures_return_empty(self):
        def handler(request: httpx.Request) -> httpx.Response:
            if request.url.path == "/missing":
                return httpx.Response(404, text="not found")
            raise httpx.ConnectError("down", request=request)

        fetcher = HttpPageFetcher(client=httpx.AsyncClient(transport=httpx.MockTransport(handler)))
        assert await fetcher.fetch("https://example.com/missing") == ""
        assert await fetcher.fetch("https://example.com/down") == ""
        await fetcher.close()

    @pytest.mark.asyncio
    async def test_submit_challenge_token_posts_form_field(self):
        seen = {}

        def handler(request: httpx.Request) -> httpx.Response:
            seen["method"] = request.method
            seen["body"] = request.content.decode()
            return httpx.Response(200, text="<main>ok</main>")

        fetcher = HttpPageFetcher(client=httpx.AsyncClient(transport=httpx.MockTransport(handler)))
        content = await fetcher.submit_challenge_token("https://example.com/a", ChallengeKind.HCAPTCHA, "tok")

        assert content == "<main>ok</main>"
        assert seen == {"method": "POST", "body": "h-captcha-response=tok"}
        await fetcher.close()
