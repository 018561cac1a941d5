# Overview: Image uploads for transaction and item photos, stored on the local filesystem.

"""
Local image store.

put(data, content_type) -> {"public_url": ..., "path": ...}

Size and content type are checked before anything touches the disk.
Stored paths look like "<bucket>/<epoch-ms>/<epoch-ms>-<random>.<ext>".
"""

from __future__ import annotations

import base64
import binascii
import os
import re
import secrets
import time

from junkshop.errors import InfrastructureError, ValidationError


BUCKETS = ("transaction-images", "item-images")

_DATA_URL_RE = re.compile(r"^data:([A-Za-z0-9.+/-]+);base64,(.+)$", re.DOTALL)

_EXTENSIONS = {
    "image/jpeg": "jpg",
    "image/png": "png",
    "image/webp": "webp",
}


class LocalImageStore:
    def __init__(
        self,
        root: str,
        public_url: str,
        max_bytes: int = 5 * 1024 * 1024,
        allowed_types: tuple[str, ...] = ("image/jpeg", "image/png", "image/webp"),
    ):
        self.root = root
        self.public_url = public_url.rstrip("/")
        self.max_bytes = max_bytes
        self.allowed_types = tuple(allowed_types)

    def validate(self, data: bytes, content_type: str | None) -> None:
        if content_type not in self.allowed_types:
            raise ValidationError(f"Unsupported file type: {content_type}", field="content_type")
        if not data:
            raise ValidationError("Image is empty", field="image")
        if len(data) > self.max_bytes:
            raise ValidationError(
                f"File too large. Maximum size is {self.max_bytes // (1024 * 1024)}MB",
                field="image",
            )

    def put(self, data: bytes, content_type: str, bucket: str = "transaction-images") -> dict:
        if bucket not in BUCKETS:
            raise ValidationError(f"Unknown image bucket: {bucket}", field="bucket")
        self.validate(data, content_type)

        now_ms = int(time.time() * 1000)
        extension = _EXTENSIONS.get(content_type, content_type.split("/")[-1])
        filename = f"{now_ms}-{secrets.token_hex(6)}.{extension}"
        relative_path = f"{bucket}/{now_ms}/{filename}"
        full_path = os.path.join(self.root, *relative_path.split("/"))

        try:
            os.makedirs(os.path.dirname(full_path), exist_ok=True)
            with open(full_path, "xb") as fh:
                fh.write(data)
        except OSError as exc:
            raise InfrastructureError("Could not store image") from exc

        return {
            "path": relative_path,
            "public_url": f"{self.public_url}/{relative_path}",
        }

    def put_data_url(self, data_url: str, bucket: str = "transaction-images") -> dict:
        """Accept a "data:<type>;base64,<payload>" string as sent by browser cameras."""
        match = _DATA_URL_RE.match(data_url or "")
        if not match:
            raise ValidationError("Invalid base64 format", field="image")

        content_type, payload = match.group(1), match.group(2)
        # Type first so a disallowed file is rejected without decoding it
        if content_type not in self.allowed_types:
            raise ValidationError(f"Unsupported file type: {content_type}", field="content_type")

        try:
            data = base64.b64decode(payload, validate=True)
        except (binascii.Error, ValueError):
            raise ValidationError("Invalid base64 format", field="image")

        return self.put(data, content_type, bucket=bucket)

    def delete(self, path: str) -> bool:
        full_path = os.path.normpath(os.path.join(self.root, *path.split("/")))
        if not full_path.startswith(os.path.normpath(self.root) + os.sep):
            raise ValidationError("Invalid image path", field="path")
        try:
            os.remove(full_path)
        except FileNotFoundError:
            return False
        except OSError as exc:
            raise InfrastructureError("Could not delete image") from exc
        return True
