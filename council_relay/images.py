"""Token image lookup.

Image priority for a new token announcement:
  1. DexScreener pair info — chart preview (openGraph) over token logo
  2. ``image`` field already on the stream payload
  3. NadFun token metadata
  4. nothing — the announcement goes out as text only

Every source is best-effort: timeouts, HTTP errors and unexpected JSON
are logged and the chain moves on. ``resolve`` never raises.
"""

import logging
from typing import Optional

import httpx

from .events import NewAsset

logger = logging.getLogger("council_relay.images")

DEXSCREENER_URL = "https://api.dexscreener.com/token-pairs/v1/{chain}/{address}"
NADFUN_URL = "https://api.nadapp.net/token/{address}"


def _str_or_none(value) -> Optional[str]:
    return value if isinstance(value, str) and value else None


class ImageResolver:
    """Resolves an illustrative image URL for a token."""

    def __init__(
        self,
        client: Optional[httpx.AsyncClient] = None,
        chain: str = "monad",
        timeout: float = 10.0,
    ):
        self._client = client or httpx.AsyncClient(
            timeout=timeout,
            follow_redirects=True,
            headers={"User-Agent": "CouncilRelay/1.0", "Accept": "application/json"},
        )
        self.chain = chain

    async def close(self):
        await self._client.aclose()

    async def resolve(self, asset: NewAsset) -> Optional[str]:
        """Return the first image URL any source yields, or None."""
        image_url = await self._from_dexscreener(asset.address)
        if image_url:
            logger.info(f"📊 DexScreener image found for {asset.address}")
            return image_url

        if asset.image:
            logger.info(f"📊 Using stream payload image for {asset.address}")
            return asset.image

        image_url = await self._from_nadfun(asset.address)
        if image_url:
            logger.info(f"📊 Using NadFun image for {asset.address}")
            return image_url

        logger.info(f"📊 No image found for {asset.address}")
        return None

    async def _get_json(self, source: str, url: str):
        """GET a JSON body; None on any transport, status or parse failure."""
        try:
            response = await self._client.get(url)
            response.raise_for_status()
            return response.json()
        except httpx.HTTPStatusError as e:
            logger.warning(f"{source} returned HTTP {e.response.status_code}")
        except httpx.HTTPError as e:
            logger.warning(f"{source} request failed: {type(e).__name__}: {e}")
        except ValueError as e:
            logger.warning(f"{source} returned malformed JSON: {e}")
        return None

    async def _from_dexscreener(self, address: str) -> Optional[str]:
        data = await self._get_json(
            "DexScreener", DEXSCREENER_URL.format(chain=self.chain, address=address),
        )
        if isinstance(data, list):
            pairs = data
        elif isinstance(data, dict) and isinstance(data.get("pairs"), list):
            pairs = data["pairs"]
        else:
            return None

        logger.debug(f"📊 DexScreener: {len(pairs)} pairs")
        if not pairs or not isinstance(pairs[0], dict):
            return None
        info = pairs[0].get("info")
        if not isinstance(info, dict):
            return None
        return _str_or_none(info.get("openGraph")) or _str_or_none(info.get("imageUrl"))

    async def _from_nadfun(self, address: str) -> Optional[str]:
        data = await self._get_json("NadFun", NADFUN_URL.format(address=address))
        if not isinstance(data, dict):
            return None
        token_info = data.get("token_info")
        if isinstance(token_info, dict) and _str_or_none(token_info.get("image_uri")):
            return token_info["image_uri"]
        return _str_or_none(data.get("image"))
