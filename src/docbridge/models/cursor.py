"""Continuation tokens for cursor pagination.

A ``Cursor`` names the point after which the next page starts: the id of
the last document already returned and, for ordered listings, that
document's value of the sort field. It is independent of any backend
handle, so it can be encoded into an opaque string and handed to a client.

Sort values that JSON cannot carry (timestamps, bytes, geo points, document
references, maps) are wrapped in a tagged envelope ``{"t": tag, "v": value}``
and rebuilt on decode, so a decoded cursor anchors the query on a value of
the same Firestore type it was taken from.
"""

from __future__ import annotations

import base64
import binascii
import json
from datetime import datetime
from typing import Any

from google.cloud.firestore_v1 import GeoPoint
from google.cloud.firestore_v1.base_document import BaseDocumentReference
from pydantic import BaseModel, ConfigDict, Field, ValidationError


class DocumentPath(str):
    """Slash-separated path of a referenced document.

    Decoded cursors carry references this way; the adapter turns them back
    into a document reference of its own client.
    """


class Cursor(BaseModel):
    """Resume point of a paginated listing."""

    model_config = ConfigDict(frozen=True)

    order_by: str | None = Field(default=None, description="Sort field of the listing (None = document id order)")
    limit: int = Field(ge=1, description="Page size")
    last_id: str = Field(min_length=1, description="Id of the last document of the previous page")
    last_value: Any = Field(default=None, description="Sort field value of the last document")

    def encode(self) -> str:
        """Serialize to a URL-safe opaque token.

        Raises:
            InvalidCursorError: If the sort value has no token representation.
        """
        from docbridge.adapters.base.exceptions import InvalidCursorError

        payload = self.model_dump(exclude={"last_value"})
        try:
            payload["last_value"] = _pack(self.last_value)
            raw = json.dumps(payload, separators=(",", ":")).encode("utf-8")
        except (TypeError, ValueError) as e:
            raise InvalidCursorError(
                f"Cannot encode sort value of type {type(self.last_value).__name__} into a token"
            ) from e
        return base64.urlsafe_b64encode(raw).decode("ascii").rstrip("=")

    @classmethod
    def decode(cls, token: str) -> Cursor:
        """Parse a token produced by :meth:`encode`.

        Raises:
            InvalidCursorError: If the token is malformed.
        """
        from docbridge.adapters.base.exceptions import InvalidCursorError

        padded = token + "=" * (-len(token) % 4)
        try:
            raw = base64.urlsafe_b64decode(padded.encode("ascii"))
            payload = json.loads(raw)
            if not isinstance(payload, dict):
                raise ValueError("token payload is not an object")
            payload["last_value"] = _unpack(payload.get("last_value"))
            return cls.model_validate(payload)
        except (binascii.Error, UnicodeError, ValueError, KeyError, TypeError, ValidationError) as e:
            raise InvalidCursorError(f"Invalid continuation token: {token!r}") from e

    @classmethod
    def after(cls, document: dict[str, Any], doc_id: str, order_by: str | None, limit: int) -> Cursor:
        """Build the cursor that resumes after ``document``."""
        last_value = _get_field(document, order_by) if order_by else None
        return cls(order_by=order_by, limit=limit, last_id=doc_id, last_value=last_value)


def _pack(value: Any) -> Any:
    if value is None or isinstance(value, bool | int | float | str):
        return value
    if isinstance(value, datetime):
        return {"t": "ts", "v": value.isoformat()}
    if isinstance(value, bytes | bytearray):
        return {"t": "bytes", "v": base64.b64encode(bytes(value)).decode("ascii")}
    if isinstance(value, GeoPoint):
        return {"t": "geo", "v": [value.latitude, value.longitude]}
    if isinstance(value, BaseDocumentReference):
        return {"t": "ref", "v": value.path}
    if isinstance(value, list | tuple):
        return [_pack(item) for item in value]
    if isinstance(value, dict):
        return {"t": "map", "v": {str(k): _pack(v) for k, v in value.items()}}
    raise TypeError(f"Unsupported sort value type: {type(value).__name__}")


def _unpack(value: Any) -> Any:
    if isinstance(value, list):
        return [_unpack(item) for item in value]
    if not isinstance(value, dict):
        return value

    tag, inner = value["t"], value["v"]
    if tag == "ts":
        return datetime.fromisoformat(inner)
    if tag == "bytes":
        return base64.b64decode(inner, validate=True)
    if tag == "geo":
        latitude, longitude = inner
        return GeoPoint(latitude, longitude)
    if tag == "ref":
        return DocumentPath(inner)
    if tag == "map":
        return {k: _unpack(v) for k, v in inner.items()}
    raise ValueError(f"Unknown sort value tag: {tag!r}")


def _get_field(document: dict[str, Any], path: str) -> Any:
    """Value at a dotted field path, or None when any segment is missing."""
    value: Any = document
    for part in path.split("."):
        if not isinstance(value, dict) or part not in value:
            return None
        value = value[part]
    return value
