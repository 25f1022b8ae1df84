"""platform-engine - controller core powered by Robyn."""

from robyn import Robyn

from app.api.health import router as health_router
from app.api.submissions import router as submissions_router
from app.core.lifespan import create_lifespan
from app.core.logger import LogIcon, logger
from app.core.settings import settings as st
from app.events.downstream import DownstreamClientEvent
from app.middlewares.base import MiddlewareHandler
from app.middlewares.correlation import CorrelationIdMiddleware
from app.middlewares.files import UploadOpenAPIMiddleware

app = Robyn(__file__)

# Lifespan events
lifespan = create_lifespan(app)
if st.DOWNSTREAM_URL:
    lifespan.register(DownstreamClientEvent)

app.startup_handler(lifespan.startup)
app.shutdown_handler(lifespan.shutdown)

# Routers
app.include_router(health_router)
app.include_router(submissions_router)

# Middlewares
middlewares = MiddlewareHandler(app)
middlewares.register(CorrelationIdMiddleware()).register(UploadOpenAPIMiddleware())


def main() -> None:
    logger.info("Starting server", icon=LogIcon.START, service=st.API_NAME, host=st.API_HOST, port=st.API_PORT)
    app.start(host=st.API_HOST, port=st.API_PORT)


if __name__ == "__main__":
    main()
