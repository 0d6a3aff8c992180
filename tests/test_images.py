"""Tests for the token image fallback chain."""

import httpx
import pytest

from council_relay.events import NewAsset
from council_relay.images import ImageResolver

ADDRESS = "0xfeed"


def make_resolver(routes: dict, calls: list) -> ImageResolver:
    """Resolver whose HTTP calls are answered from ``routes`` by host."""

    def handler(request: httpx.Request) -> httpx.Response:
        calls.append(request.url.host)
        route = routes.get(request.url.host)
        if route is None:
            raise httpx.ConnectError("no route", request=request)
        if isinstance(route, Exception):
            raise route
        status, body = route
        if isinstance(body, str):
            return httpx.Response(status, text=body)
        return httpx.Response(status, json=body)

    return ImageResolver(client=httpx.AsyncClient(transport=httpx.MockTransport(handler)))


DEX = "api.dexscreener.com"
NAD = "api.nadapp.net"


class TestDexScreener:
    """First source: DexScreener pair info."""

    @pytest.mark.asyncio
    async def test_open_graph_preferred_over_logo(self):
        calls = []
        resolver = make_resolver({
            DEX: (200, [{"info": {"openGraph": "https://dex/og.png", "imageUrl": "https://dex/logo.png"}}]),
        }, calls)
        assert await resolver.resolve(NewAsset(ADDRESS, {"image": "https://ws/img.png"})) == "https://dex/og.png"
        assert calls == [DEX]

    @pytest.mark.asyncio
    async def test_logo_when_no_open_graph(self):
        calls = []
        resolver = make_resolver({DEX: (200, {"pairs": [{"info": {"imageUrl": "https://dex/logo.png"}}]})}, calls)
        assert await resolver.resolve(NewAsset(ADDRESS)) == "https://dex/logo.png"

    @pytest.mark.asyncio
    async def test_uses_chain_and_address_in_url(self):
        seen = []

        def handler(request):
            seen.append(str(request.url))
            return httpx.Response(200, json=[])

        resolver = ImageResolver(client=httpx.AsyncClient(transport=httpx.MockTransport(handler)), chain="monad")
        await resolver.resolve(NewAsset(ADDRESS))
        assert seen[0] == f"https://api.dexscreener.com/token-pairs/v1/monad/{ADDRESS}"
        assert seen[1] == f"https://api.nadapp.net/token/{ADDRESS}"


class TestFallbacks:
    """Later sources are used only when earlier ones yield nothing."""

    @pytest.mark.asyncio
    async def test_payload_image_skips_nadfun(self):
        calls = []
        resolver = make_resolver({DEX: (200, [])}, calls)
        image = await resolver.resolve(NewAsset(ADDRESS, {"image": "https://ws/img.png"}))
        assert image == "https://ws/img.png"
        assert calls == [DEX]

    @pytest.mark.asyncio
    async def test_nadfun_token_info(self):
        calls = []
        resolver = make_resolver({
            DEX: (404, {"error": "not found"}),
            NAD: (200, {"token_info": {"image_uri": "https://nad/img.png"}}),
        }, calls)
        assert await resolver.resolve(NewAsset(ADDRESS)) == "https://nad/img.png"
        assert calls == [DEX, NAD]

    @pytest.mark.asyncio
    async def test_nadfun_top_level_image(self):
        resolver = make_resolver({DEX: (500, "oops"), NAD: (200, {"image": "https://nad/top.png"})}, [])
        assert await resolver.resolve(NewAsset(ADDRESS)) == "https://nad/top.png"


class TestFailures:
    """resolve() never raises."""

    @pytest.mark.asyncio
    async def test_all_sources_fail(self):
        calls = []
        resolver = make_resolver({
            DEX: httpx.ReadTimeout("timed out"),
            NAD: (503, "unavailable"),
        }, calls)
        assert await resolver.resolve(NewAsset(ADDRESS)) is None
        assert calls == [DEX, NAD]

    @pytest.mark.asyncio
    async def test_malformed_bodies(self):
        resolver = make_resolver({DEX: (200, "<html>not json</html>"), NAD: (200, ["unexpected"])}, [])
        assert await resolver.resolve(NewAsset(ADDRESS)) is None

    @pytest.mark.asyncio
    async def test_unexpected_shapes(self):
        resolver = make_resolver({
            DEX: (200, [{"info": "nope"}]),
            NAD: (200, {"token_info": {"image_uri": None}, "image": 42}),
        }, [])
        assert await resolver.resolve(NewAsset(ADDRESS)) is None

    @pytest.mark.asyncio
    async def test_unreachable(self):
        resolver = make_resolver({}, [])
        assert await resolver.resolve(NewAsset(ADDRESS)) is None
        await resolver.close()
