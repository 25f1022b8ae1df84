"""Health check endpoint."""

from pydantic import BaseModel
from robyn import Request

from app.core.controller import Controller, NextFn
from app.core.http import ResponseWriter
from app.core.logger import LogIcon, logger
from app.core.router import Router
from app.core.settings import settings as st


class HealthResponse(BaseModel):
    status: str
    service: str
    version: str


class HealthController(Controller):
    async def check(self, request: Request, response: ResponseWriter, next_: NextFn) -> None:
        logger.info("Health check requested", icon=LogIcon.HEALTHCHECK)
        self.send_data(response, HealthResponse(status="healthy", service=st.API_NAME, version=st.API_VERSION))


controller = HealthController()

router = Router(__file__)
router.get("/health")(controller.check)
