"""Client for downstream HTTP services whose failures map onto the local error taxonomy."""

from typing import Any

import httpx

from app.core.errors import HttpError, from_http_response
from app.core.logger import LogIcon, logger

BAD_GATEWAY = 502


class DownstreamClient:
    """Thin wrapper over ``httpx.AsyncClient``.

    A response with status >= 400 is raised as the error ``from_http_response``
    builds for it, and transport failures become a generic 502, so callers only
    ever see ``HttpError`` subclasses.
    """

    def __init__(self, client: httpx.AsyncClient) -> None:
        self._client = client

    @property
    def base_url(self) -> httpx.URL:
        return self._client.base_url

    async def request(self, method: str, url: str, **kwargs: Any) -> httpx.Response:
        try:
            response = await self._client.request(method, url, **kwargs)
        except httpx.TransportError as err:
            logger.error("Downstream unreachable", icon=LogIcon.NETWORK, method=method, url=url, error=repr(err))
            raise HttpError(str(err) or type(err).__name__, BAD_GATEWAY) from err

        if response.is_error:
            error = from_http_response(response.status_code, response.text, response.headers)
            logger.warning(
                "Downstream call failed",
                icon=LogIcon.NETWORK,
                method=method,
                url=url,
                status_code=response.status_code,
                kind=error.kind,
            )
            raise error

        return response

    async def get(self, url: str, **kwargs: Any) -> httpx.Response:
        return await self.request("GET", url, **kwargs)

    async def post(self, url: str, **kwargs: Any) -> httpx.Response:
        return await self.request("POST", url, **kwargs)

    async def put(self, url: str, **kwargs: Any) -> httpx.Response:
        return await self.request("PUT", url, **kwargs)

    async def delete(self, url: str, **kwargs: Any) -> httpx.Response:
        return await self.request("DELETE", url, **kwargs)

    async def aclose(self) -> None:
        await self._client.aclose()


def create_downstream_client(base_url: str, timeout: float) -> DownstreamClient:
    return DownstreamClient(httpx.AsyncClient(base_url=base_url, timeout=timeout))
