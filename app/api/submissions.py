"""Submission upload endpoint."""

import hashlib

from pydantic import BaseModel
from robyn import Request

from app.core.controller import Controller, NextFn
from app.core.http import ResponseWriter
from app.core.logger import LogIcon, logger
from app.core.router import Router


class SubmissionResponse(BaseModel):
    """Summary of an accepted submission. The payload itself is not stored."""

    size: int
    sha256: str
    fields: dict[str, str]


class SubmissionsController(Controller):
    async def create(self, request: Request, response: ResponseWriter, next_: NextFn) -> None:
        # Size is enforced per file while streaming; the declared body length also counts framing and fields.
        payload, fields = await self.read_file(request)

        submission = SubmissionResponse(
            size=len(payload),
            sha256=hashlib.sha256(payload).hexdigest(),
            fields=dict(fields),
        )
        logger.info("Submission accepted", icon=LogIcon.FILE, size=submission.size, sha256=submission.sha256)
        self.send_data_created(response, submission)


controller = SubmissionsController()

router = Router(__file__)
router.post("/submissions", upload=True)(controller.create)
