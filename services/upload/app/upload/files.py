"""Temporary storage for multipart uploads before they reach a provider."""

import re
import uuid
from dataclasses import dataclass
from pathlib import Path

import aiofiles
import aiofiles.os
from fastapi import UploadFile

from services.upload.app.core.errors import EntityTooLarge
from shared.utils.logging import get_logger

logger = get_logger(__name__)

CHUNK_SIZE = 1024 * 1024

_UNSAFE_CHARS = re.compile(r"[^A-Za-z0-9._-]+")


@dataclass
class TempFile:
    """A multipart file spooled to local disk."""

    path: Path
    filename: str
    mimetype: str
    size: int


def safe_filename(filename: str) -> str:
    """Reduce a client filename to a single safe path segment.

    >>> safe_filename("../My Report (final).pdf")
    'My-Report-final-.pdf'
    """
    name = Path(filename.replace("\\", "/")).name.replace("\x00", "")
    name = _UNSAFE_CHARS.sub("-", name).strip("-.")
    return name or "file"


async def save_temp_file(
    upload: UploadFile | None,
    temp_dir: str | Path,
    max_bytes: int,
) -> TempFile | None:
    """Stream ``upload`` into ``temp_dir``.

    Returns None when the form carried no file. Raises EntityTooLarge, after
    removing the partial file, once more than ``max_bytes`` have been read.
    """
    if upload is None or not upload.filename:
        return None

    directory = Path(temp_dir)
    await aiofiles.os.makedirs(directory, exist_ok=True)
    path = directory / f"{uuid.uuid4().hex}-{safe_filename(upload.filename)}"

    size = 0
    async with aiofiles.open(path, "wb") as f:
        while chunk := await upload.read(CHUNK_SIZE):
            size += len(chunk)
            if size > max_bytes:
                break
            await f.write(chunk)

    if size > max_bytes:
        await delete_temp_file(path)
        logger.warning("upload_too_large", filename=upload.filename, max_bytes=max_bytes)
        raise EntityTooLarge(f"file exceeds the maximum size of {max_bytes} bytes")

    if size == 0:
        await delete_temp_file(path)
        return None

    return TempFile(
        path=path,
        filename=upload.filename,
        mimetype=upload.content_type or "application/octet-stream",
        size=size,
    )


async def delete_temp_file(path: str | Path) -> None:
    """Remove a spooled file; a file that is already gone is ignored."""
    try:
        await aiofiles.os.remove(path)
    except FileNotFoundError:
        return
    logger.debug("temp_file_deleted", path=str(path))
