"""FastAPI dependencies: request parameter assembly."""

from __future__ import annotations

import logging
from typing import Any

from fastapi import HTTPException, Request
from pydantic import ValidationError
from starlette.datastructures import ImmutableMultiDict

from tunehost.schemas.music import DeleteRequest

logger = logging.getLogger(__name__)

_DELETE_FIELDS = ("names", "all", "password")


def _collect(source: ImmutableMultiDict) -> dict[str, Any]:
    """Single values stay scalar; repeated keys become lists."""
    params: dict[str, Any] = {}
    for key in _DELETE_FIELDS:
        values = source.getlist(key)
        if values:
            params[key] = values if len(values) > 1 else values[0]
    return params


async def read_delete_params(request: Request) -> dict[str, Any]:
    """Merge raw delete parameters from the query string and the body.

    Body fields win over query fields. JSON and form bodies are accepted.
    Values are not type-checked here; see ``parse_delete_request``.
    """
    params = _collect(request.query_params)

    content_type = request.headers.get("content-type", "")
    body: dict[str, Any] = {}
    if content_type.startswith("application/json"):
        try:
            payload = await request.json()
        except ValueError:
            raise HTTPException(400, "Malformed JSON body")
        if isinstance(payload, dict):
            body = {k: v for k, v in payload.items() if k in _DELETE_FIELDS}
    elif content_type.startswith(("application/x-www-form-urlencoded", "multipart/form-data")):
        body = _collect(await request.form())

    params.update({k: v for k, v in body.items() if v not in (None, "")})
    return params


def parse_delete_request(params: dict[str, Any]) -> DeleteRequest:
    try:
        return DeleteRequest.model_validate(params)
    except ValidationError as exc:
        logger.debug("Rejected delete parameters: %s", exc)
        raise HTTPException(400, "Malformed delete parameters")
