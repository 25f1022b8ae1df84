"""OpenAPI patching for multipart submission endpoints."""

import orjson
from robyn import Response

from app.core.logger import LogIcon, logger
from app.core.router import UPLOAD_ENDPOINTS
from app.middlewares.base import BaseMiddleware
from app.models.core import COMPRESSION_FIELD, FILE_FIELD

UPLOAD_REQUEST_BODY = {
    "content": {
        "multipart/form-data": {
            "schema": {
                "type": "object",
                "properties": {
                    FILE_FIELD: {
                        "type": "string",
                        "format": "binary",
                        "description": "Submitted file, exactly one per request",
                    },
                    COMPRESSION_FIELD: {
                        "type": "string",
                        "enum": ["gzip"],
                        "description": "Set to gzip when the file is gzip-compressed",
                    },
                },
                "required": [FILE_FIELD],
                "additionalProperties": {"type": "string"},
            }
        }
    },
    "required": True,
}


def patch_openapi_spec(spec: dict, endpoints: set[str] | frozenset[str]) -> dict:
    """Replace the request body of every upload endpoint with the multipart schema."""
    paths = spec.get("paths", {})
    for endpoint in endpoints:
        for operation in paths.get(endpoint, {}).values():
            operation["requestBody"] = UPLOAD_REQUEST_BODY
    return spec


class UploadOpenAPIMiddleware(BaseMiddleware):
    """Documents ``datafile``/``compression`` on routes registered with ``upload=True``."""

    endpoints = frozenset(["/openapi.json"])

    def after(self, response: Response) -> Response:
        if not UPLOAD_ENDPOINTS:
            return response

        try:
            spec = orjson.loads(response.description)
        except orjson.JSONDecodeError as err:
            logger.warning("OpenAPI document is not valid JSON", icon=LogIcon.WARNING, error=str(err))
            return response

        response.description = orjson.dumps(patch_openapi_spec(spec, UPLOAD_ENDPOINTS)).decode()
        return response
