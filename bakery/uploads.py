# bakery/uploads.py
from __future__ import annotations

import logging
import secrets
import time
from io import BytesIO
from pathlib import Path

from PIL import Image, UnidentifiedImageError

from .errors import ApiError

logger = logging.getLogger(__name__)

UPLOAD_URL_PREFIX = "/uploads/"
ALLOWED_IMAGE_TYPES = {"image/jpeg", "image/png", "image/webp"}
MAX_UPLOAD_BYTES = 6 * 1024 * 1024  # before compression
MAX_IMAGE_WIDTH = 1400
WEBP_QUALITY = 82


def ensure_upload_dirs(upload_dir: str) -> Path:
    base = Path(upload_dir)
    (base / "products").mkdir(parents=True, exist_ok=True)
    return base


def is_local_upload_url(url: str | None) -> bool:
    return isinstance(url, str) and url.startswith(UPLOAD_URL_PREFIX)


def local_path_from_upload_url(url: str, upload_dir: str) -> Path | None:
    if not is_local_upload_url(url):
        return None
    rel = url[len(UPLOAD_URL_PREFIX):]
    if not rel or ".." in rel or rel.startswith(("/", "\\")):
        return None
    return Path(upload_dir) / rel


def delete_uploaded_file(url: str | None, upload_dir: str) -> None:
    fp = local_path_from_upload_url(url or "", upload_dir)
    if fp is None:
        return
    try:
        fp.unlink()
    except FileNotFoundError:
        pass


def save_product_image(data: bytes, content_type: str, upload_dir: str) -> str:
    """Resize to at most 1400px wide, store as WebP, return the public /uploads/ URL."""
    if content_type not in ALLOWED_IMAGE_TYPES:
        raise ApiError("BAD_IMAGE_TYPE")
    if len(data) > MAX_UPLOAD_BYTES:
        raise ApiError("IMAGE_TOO_LARGE")

    try:
        img = Image.open(BytesIO(data))
        img.load()
    except (UnidentifiedImageError, Image.DecompressionBombError, OSError) as e:
        raise ApiError("BAD_IMAGE") from e

    if img.width > MAX_IMAGE_WIDTH:
        height = max(1, round(img.height * MAX_IMAGE_WIDTH / img.width))
        img = img.resize((MAX_IMAGE_WIDTH, height), Image.Resampling.LANCZOS)
    if img.mode not in ("RGB", "RGBA"):
        img = img.convert("RGBA" if "A" in img.getbands() else "RGB")

    base = ensure_upload_dirs(upload_dir)
    file_name = f"{int(time.time() * 1000)}_{secrets.token_hex(16)}.webp"
    rel = f"products/{file_name}"
    img.save(base / rel, format="WEBP", quality=WEBP_QUALITY)

    logger.info("Stored product image %s", rel)
    return f"{UPLOAD_URL_PREFIX}{rel}"
