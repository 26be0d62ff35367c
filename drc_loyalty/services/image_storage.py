from __future__ import annotations

import asyncio
import hashlib
import os
import tempfile
from pathlib import Path

from drc_loyalty.core.config import get_settings
from drc_loyalty.economy.receipts.types import StoredImage

MAX_RECEIPT_IMAGE_BYTES = 10 * 1024 * 1024


def compute_image_sha256(image_bytes: bytes) -> str:
    return hashlib.sha256(image_bytes).hexdigest()


def _write_if_missing(path: Path, image_bytes: bytes) -> None:
    """Publishes the file atomically; each writer fills its own temp file."""
    if path.exists():
        return
    path.parent.mkdir(parents=True, exist_ok=True)
    fd, tmp_name = tempfile.mkstemp(dir=path.parent, prefix=f".{path.stem}.", suffix=".tmp")
    try:
        with os.fdopen(fd, "wb") as tmp_file:
            tmp_file.write(image_bytes)
        os.replace(tmp_name, path)
    except BaseException:
        Path(tmp_name).unlink(missing_ok=True)
        raise


async def store_receipt_image(image_bytes: bytes) -> StoredImage:
    """Stores the image under its content hash so re-uploads map to one file."""
    settings = get_settings()
    sha256 = compute_image_sha256(image_bytes)
    file_name = f"{sha256}.jpg"
    await asyncio.to_thread(
        _write_if_missing,
        Path(settings.receipt_image_dir) / file_name,
        image_bytes,
    )
    return StoredImage(
        sha256=sha256,
        url=f"{settings.receipt_image_base_url.rstrip('/')}/{file_name}",
    )
