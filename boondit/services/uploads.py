"""Screenshot storage: ImgBB when a key is configured, local disk otherwise."""

from __future__ import annotations

import base64
import logging
import os
import secrets

import requests
from flask import current_app

from ..shared.constants import IMGBB_TIMEOUT_SECONDS, IMGBB_UPLOAD_URL
from ..shared.images import ValidatedImage
from ..shared.storage import upload_fs_path, upload_web_url, write_atomic

logger = logging.getLogger("boondit.uploads")


class UploadError(RuntimeError):
    pass


def upload_to_imgbb(image: ValidatedImage, api_key: str) -> dict:
    payload = {"key": api_key, "image": base64.b64encode(image.data).decode()}
    try:
        resp = requests.post(IMGBB_UPLOAD_URL, data=payload, timeout=IMGBB_TIMEOUT_SECONDS)
    except requests.Timeout as exc:
        raise UploadError("Upload timed out. Please try again.") from exc
    except requests.RequestException as exc:
        raise UploadError(f"ImgBB error: {exc}") from exc
    try:
        result = resp.json()
    except ValueError:
        result = {}
    if not resp.ok or not result.get("success"):
        message = (result.get("error") or {}).get("message") or resp.reason
        raise UploadError(f"ImgBB error: {message}")
    data = result["data"]
    logger.info("imgbb upload ok url=%s", data.get("url"))
    return {
        "url": data["url"],
        "display_url": data.get("display_url"),
        "delete_url": data.get("delete_url"),
    }


def store_locally(image: ValidatedImage, owner_id: str) -> dict:
    name = f"{secrets.token_hex(8)}-{image.filename}"
    site_root = current_app.config.get("SITE_ROOT", "/srv")
    path = upload_fs_path(site_root, "screenshots", owner_id, name)
    write_atomic(path, image.data)
    os.chmod(path, 0o644)
    url = upload_web_url("screenshots", owner_id, name)
    return {"url": url, "display_url": url, "delete_url": None}


def save_screenshot(image: ValidatedImage, owner_id: str) -> dict:
    api_key = (current_app.config.get("IMG_BB_API_KEY") or "").strip()
    if api_key:
        return upload_to_imgbb(image, api_key)
    return store_locally(image, owner_id)
