"""Lifespan event owning the shared downstream HTTP client."""

from app.core.downstream import DownstreamClient, create_downstream_client
from app.core.lifespan import BaseEvent
from app.core.logger import LogIcon, logger
from app.core.settings import settings as st


class DownstreamClientEvent(BaseEvent[DownstreamClient]):
    """Creates ``state.downstream`` at startup and closes it at shutdown."""

    name = "downstream"

    async def startup(self) -> DownstreamClient:
        if not st.DOWNSTREAM_URL:
            raise RuntimeError("DOWNSTREAM_URL must be set to start the downstream client")
        client = create_downstream_client(st.DOWNSTREAM_URL, st.DOWNSTREAM_TIMEOUT)
        logger.info("Downstream client ready", icon=LogIcon.NETWORK, base_url=str(client.base_url))
        return client

    async def shutdown(self, instance: DownstreamClient) -> None:
        await instance.aclose()
