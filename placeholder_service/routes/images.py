"""Placeholder image endpoint."""

from __future__ import annotations

import logging
from functools import partial

from fastapi import APIRouter, HTTPException, Query, Request
from fastapi.responses import Response

from placeholder_service.core.keys import key_digest, normalize
from placeholder_service.core.request import parse_image_request
from placeholder_service.errors import RenderError, ValidationError

logger = logging.getLogger(__name__)

router = APIRouter()

CACHE_CONTROL = "public, max-age=31536000, immutable"


def _etag_matches(header: str | None, etag: str) -> bool:
    if not header:
        return False
    for candidate in header.split(","):
        candidate = candidate.strip()
        if candidate.startswith("W/"):
            candidate = candidate[2:]
        if candidate in ("*", etag):
            return True
    return False


@router.get("/favicon.ico", include_in_schema=False)
def favicon() -> Response:
    return Response(status_code=404)


@router.get("/{dimensions}")
async def placeholder(
    request: Request,
    dimensions: str,
    bg: str | None = Query(None, description="Background color, 3 or 6 hex digits"),
    fg: str | None = Query(None, description="Text color; contrasts with bg when omitted"),
    br: str | None = Query(None, description="Border color, black when omitted"),
    br_s: int | None = Query(None, description="Border size in pixels"),
    text: str | None = Query(None, description="Label; defaults to the dimensions"),
    fmt: str | None = Query(None, alias="format", description="png, jpeg, webp or gif"),
) -> Response:
    """Render (or serve from cache) a placeholder image."""
    settings = request.app.state.settings
    try:
        image_request = parse_image_request(
            dimensions,
            bg=bg,
            fg=fg,
            br=br,
            br_s=br_s,
            text=text,
            fmt=fmt,
            max_dimension=settings.max_dimension,
            max_border=settings.max_border,
            max_label=settings.max_label,
            default_background=settings.default_background,
        )
    except ValidationError as exc:
        raise HTTPException(status_code=400, detail=str(exc)) from exc

    renderer = request.app.state.renderer
    key = normalize(image_request, renderer.namespace)
    etag = f'"{key_digest(key)}"'
    headers = {"ETag": etag, "Cache-Control": CACHE_CONTROL}
    if _etag_matches(request.headers.get("if-none-match"), etag):
        return Response(status_code=304, headers=headers)

    coordinator = request.app.state.coordinator
    try:
        entry = await coordinator.resolve_async(key, partial(renderer.render, image_request))
    except RenderError as exc:
        raise HTTPException(status_code=500, detail="Image generation failed") from exc
    return Response(content=entry.data, media_type=entry.content_type, headers=headers)
