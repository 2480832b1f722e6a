from __future__ import annotations

import hashlib
import json

from placeholder_service.core.request import ImageRequest


KEY_VERSION = "v1"


def normalize(request: ImageRequest, namespace: str = "") -> bytes:
    """Canonical cache key for ``request`` under a renderer ``namespace``.

    Only fields that affect the rendered bytes are included, each with its
    effective value, so a request that spells out a default and one that omits
    it share a key. The fields are written as a JSON array in a fixed order.
    """
    border = request.effective_border_color
    fields = [
        request.width,
        request.height,
        request.background.hex,
        request.effective_foreground.hex,
        border.hex if border is not None else None,
        request.border_size if border is not None else 0,
        request.effective_label,
        request.format.value,
    ]
    body = json.dumps(fields, ensure_ascii=False, separators=(",", ":"))
    header = json.dumps([KEY_VERSION, namespace], ensure_ascii=False, separators=(",", ":"))
    return f"{header}:{body}".encode("utf-8")


def key_digest(key: bytes) -> str:
    return hashlib.sha256(key).hexdigest()
