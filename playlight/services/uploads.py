"""Media validation and hand-off to the UploadThing file host."""
from __future__ import annotations

import io
import json
import logging
import os
import subprocess
import tempfile
from dataclasses import dataclass
from typing import Any, Optional

import requests
from PIL import Image, UnidentifiedImageError

from ..core.config import (
    FFPROBE_PATH,
    UPLOAD_REQUEST_TIMEOUT_SECONDS,
    UPLOADTHING_API_URL,
    UPLOADTHING_TOKEN,
)
from ..core.errors import UploadProviderError, UploadValidationError

logger = logging.getLogger(__name__)

KB = 1024
MB = 1024 * KB


@dataclass(frozen=True)
class MediaRule:
    kind: str
    media: str
    max_bytes: int
    width: Optional[int] = None
    height: Optional[int] = None
    aspect_ratio: Optional[float] = None
    aspect_tolerance: float = 0.1
    content_type: str = "image/jpeg"


UPLOAD_RULES = {
    "logo": MediaRule("logo", "image", 100 * KB, width=500, height=500),
    "cover-image": MediaRule("cover-image", "image", 250 * KB, width=800, height=1200),
    "cover-video": MediaRule(
        "cover-video", "video", 3 * MB, aspect_ratio=2.0, content_type="video/mp4"
    ),
}


def _human_size(size: int) -> str:
    if size >= MB:
        return f"{size // MB}MB"
    return f"{size // KB}KB"


def validate_image(data: bytes, rule: MediaRule) -> tuple[int, int]:
    try:
        with Image.open(io.BytesIO(data)) as image:
            fmt = (image.format or "").upper()
            width, height = image.size
    except (UnidentifiedImageError, OSError) as exc:
        raise UploadValidationError("Image validation failed: unreadable image.") from exc
    if fmt != "JPEG":
        raise UploadValidationError("Image validation failed: Image must be in JPEG format.")
    if (width, height) != (rule.width, rule.height):
        raise UploadValidationError(
            f"Image validation failed: Image dimensions must be {rule.width}x{rule.height} pixels."
        )
    return width, height


def inspect_video(data: bytes) -> dict[str, Any]:
    handle, path = tempfile.mkstemp(suffix=".mp4")
    try:
        with os.fdopen(handle, "wb") as fh:
            fh.write(data)
        completed = subprocess.run(
            [
                FFPROBE_PATH,
                "-v",
                "error",
                "-print_format",
                "json",
                "-show_format",
                "-show_streams",
                path,
            ],
            capture_output=True,
            timeout=30,
            check=False,
        )
    except FileNotFoundError as exc:
        raise UploadProviderError("Video inspection is unavailable on this server.") from exc
    except subprocess.TimeoutExpired as exc:
        raise UploadValidationError("Video validation failed: ffprobe timed out.") from exc
    finally:
        try:
            os.unlink(path)
        except OSError:
            pass
    if completed.returncode != 0:
        raise UploadValidationError("Video validation failed: unreadable video.")
    try:
        return json.loads(completed.stdout or b"{}")
    except ValueError as exc:
        raise UploadValidationError("Video validation failed: unreadable video.") from exc


def validate_video(data: bytes, rule: MediaRule) -> tuple[int, int]:
    info = inspect_video(data)
    streams = info.get("streams") or []
    video = next((s for s in streams if s.get("codec_type") == "video"), None)
    if not video:
        raise UploadValidationError("Video validation failed: No video stream found.")
    formats = str((info.get("format") or {}).get("format_name") or "").split(",")
    if "mp4" not in formats:
        raise UploadValidationError("Video validation failed: Video must be in MP4 format.")
    width = int(video.get("width") or 0)
    height = int(video.get("height") or 0)
    if not height or abs(width / height - rule.aspect_ratio) > rule.aspect_tolerance:
        raise UploadValidationError("Video validation failed: Video must have 2:1 aspect ratio.")
    return width, height


def validate_upload(kind: str, data: bytes) -> MediaRule:
    rule = UPLOAD_RULES.get(kind)
    if rule is None:
        raise UploadValidationError(f"Unknown upload type: {kind}")
    if not data:
        raise UploadValidationError("Uploaded file is empty.")
    if len(data) > rule.max_bytes:
        raise UploadValidationError(f"File exceeds the {_human_size(rule.max_bytes)} limit.")
    if rule.media == "image":
        validate_image(data, rule)
    else:
        validate_video(data, rule)
    return rule


def _api_headers() -> dict[str, str]:
    if not UPLOADTHING_TOKEN:
        raise UploadProviderError("Upload provider is not configured.")
    return {
        "x-uploadthing-api-key": UPLOADTHING_TOKEN,
        "Content-Type": "application/json",
    }


def _api_post(path: str, body: dict[str, Any]) -> dict[str, Any]:
    url = f"{UPLOADTHING_API_URL.rstrip('/')}{path}"
    try:
        resp = requests.post(
            url, headers=_api_headers(), json=body, timeout=UPLOAD_REQUEST_TIMEOUT_SECONDS
        )
        resp.raise_for_status()
        return resp.json()
    except (requests.RequestException, ValueError) as exc:
        raise UploadProviderError() from exc


def upload_file(data: bytes, filename: str, rule: MediaRule) -> dict[str, str]:
    """Reserve a presigned slot, push the bytes there and return the public URL."""
    reserved = _api_post(
        "/v6/uploadFiles",
        {
            "files": [{"name": filename, "size": len(data), "type": rule.content_type}],
            "acl": "public-read",
            "contentDisposition": "inline",
        },
    )
    slots = reserved.get("data") or []
    if not slots:
        raise UploadProviderError("Upload provider returned no upload slot.")
    slot = slots[0]
    try:
        resp = requests.post(
            slot["url"],
            data=slot.get("fields") or {},
            files={"file": (filename, data, rule.content_type)},
            timeout=UPLOAD_REQUEST_TIMEOUT_SECONDS,
        )
        resp.raise_for_status()
    except (requests.RequestException, KeyError) as exc:
        raise UploadProviderError() from exc
    logger.info("Uploaded %s (%d bytes) as %s", rule.kind, len(data), slot.get("key"))
    return {
        "url": str(slot.get("fileUrl") or ""),
        "key": str(slot.get("key") or ""),
        "name": filename,
    }


def delete_files(keys: list[str]) -> bool:
    result = _api_post("/v6/deleteFiles", {"fileKeys": keys})
    return bool(result.get("success"))
