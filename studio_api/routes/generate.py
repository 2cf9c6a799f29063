from __future__ import annotations

import logging

from fastapi import APIRouter, Request
from fastapi.responses import JSONResponse

from studio.workflow.errors import InvalidPayload, StudioError
from studio_api import gemini
from studio_api.schemas import GenerateErr, GenerateOk
from studio_api.validate import validate_generate_payload

router = APIRouter(prefix="/api", tags=["generate"])
log = logging.getLogger("studio_api.routes.generate")


def status_for_error(message: str) -> int:
    if "INVALID_PAYLOAD" in message:
        return 400
    if "RATE_LIMIT" in message:
        return 429
    return 500


@router.post(
    "/generate",
    response_model=GenerateOk,
    responses={400: {"model": GenerateErr}, 429: {"model": GenerateErr}, 500: {"model": GenerateErr}},
)
async def generate(request: Request):
    try:
        try:
            body = await request.json()
        except ValueError as e:
            raise InvalidPayload("body must be JSON object") from e
        payload = validate_generate_payload(body)
        log.info("generate_enter prompt_len=%s images=%s", len(payload.prompt), len(payload.images))
        image = await gemini.generate_image(payload)
    except StudioError as e:
        msg = str(e)
        status = status_for_error(msg)
        log.warning("generate_failed status=%s error=%s", status, msg)
        return JSONResponse(GenerateErr(error=msg).model_dump(), status_code=status)
    except Exception as e:
        log.exception("generate_unexpected_error")
        return JSONResponse(GenerateErr(error=str(e) or e.__class__.__name__).model_dump(), status_code=500)

    out = GenerateOk(imageBase64=image.base64, mimeType=image.mime, modelUsed=image.model_used or "", safety=image.safety)
    log.info("generate_exit mime=%s model=%s", out.mimeType, out.modelUsed)
    return JSONResponse(out.model_dump(), status_code=200)
