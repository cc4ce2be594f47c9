from __future__ import annotations

import logging
from http.cookiejar import CookieJar, DefaultCookiePolicy
from typing import Mapping

import httpx

from scriptorium.core.config import Settings
from scriptorium.core.errors import FetchError
from scriptorium.domain.models.resource import FetchedContent

logger = logging.getLogger(__name__)

_USER_AGENT = "scriptorium/0.1"


def build_http_client(
    settings: Settings,
    transport: httpx.AsyncBaseTransport | None = None,
) -> httpx.AsyncClient:
    return httpx.AsyncClient(
        timeout=httpx.Timeout(settings.http_timeout_seconds, connect=10.0),
        follow_redirects=True,
        headers={"User-Agent": _USER_AGENT},
        cookies=_discarding_cookie_jar(),
        transport=transport,
    )


def _discarding_cookie_jar() -> CookieJar:
    # Session state is only ever sent through the configured credential headers.
    return CookieJar(policy=DefaultCookiePolicy(allowed_domains=[]))


def credential_headers_from_settings(settings: Settings) -> dict[str, str]:
    if settings.fetch_cookie:
        return {"Cookie": settings.fetch_cookie}
    return {}


class ContentFetcher:
    """Downloads resource bytes, first anonymously and then with credentials.

    The anonymous attempt suits signed or pre-authorized URLs; the credentialed
    attempt replays whatever session headers the caller configured.
    """

    def __init__(
        self,
        client: httpx.AsyncClient,
        credential_headers: Mapping[str, str] | None = None,
    ) -> None:
        self.client = client
        self.credential_headers = dict(credential_headers or {})

    async def fetch(self, url: str) -> FetchedContent:
        self.client.cookies.clear()
        try:
            response = await self.client.get(url)
            if response.is_success:
                return self._to_content(url, response)
            logger.debug("Anonymous fetch of %s returned HTTP %s", url, response.status_code)
        except httpx.HTTPError as exc:
            logger.debug("Anonymous fetch of %s failed: %s", url, exc)

        try:
            response = await self.client.get(url, headers=self.credential_headers)
        except httpx.HTTPError as exc:
            raise FetchError(f"Could not download resource {url}: {exc}", url=url) from exc
        if not response.is_success:
            raise FetchError(
                f"Could not download resource {url}. HTTP {response.status_code}",
                url=url,
                status_code=response.status_code,
            )
        return self._to_content(url, response)

    async def fetch_credentialed(self, url: str) -> httpx.Response:
        """Single credentialed request; transport errors propagate as ``httpx.HTTPError``."""
        return await self.client.get(url, headers=self.credential_headers)

    async def fetch_text(self, url: str) -> str:
        fetched = await self.fetch(url)
        try:
            return fetched.content.decode(_charset(fetched.content_type), errors="replace")
        except LookupError:
            return fetched.content.decode("utf-8", errors="replace")

    @staticmethod
    def _to_content(url: str, response: httpx.Response) -> FetchedContent:
        return FetchedContent(
            url=url,
            content=response.content,
            content_type=response.headers.get("content-type", ""),
            content_disposition=response.headers.get("content-disposition", ""),
        )


def _charset(content_type: str) -> str:
    for part in content_type.split(";")[1:]:
        key, _, value = part.strip().partition("=")
        if key.lower() == "charset" and value:
            return value.strip('"')
    return "utf-8"
