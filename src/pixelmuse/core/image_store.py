"""Saving generated images to disk.

Generation results carry an image reference that is either a hosted URL or
an inline ``data:`` URL. This module turns either kind into bytes and writes
them to a user-chosen location, re-encoding with Pillow when the destination
suffix asks for a different format than the provider delivered.
"""

import asyncio
import base64
import io
import logging
import re
from dataclasses import dataclass
from datetime import datetime, timezone
from pathlib import Path

import httpx
from PIL import Image

logger = logging.getLogger(__name__)

DATA_URL_PREFIX = re.compile(r"^data:image/[\w.+-]+;base64,")

# destination suffix -> Pillow format name
SAVE_FORMATS = {
    ".png": "PNG",
    ".jpg": "JPEG",
    ".jpeg": "JPEG",
    ".webp": "WEBP",
}


@dataclass(frozen=True)
class SaveOutcome:
    """Result of a save attempt."""

    success: bool
    path: Path | None = None
    message: str = ""


def suggest_filename(
    prompt: str,
    model: str,
    suggested: str | None = None,
    when: datetime | None = None,
) -> str:
    """Default filename offered when saving an image.

    A name taken from a ``#$name`` prompt directive wins. Otherwise the name
    is built from the first five words of the prompt, the model id and a
    timestamp.

    Args:
        prompt: Prompt the image was generated from
        model: Model id that produced the image
        suggested: Name from a filename directive, if any
        when: Timestamp to embed (defaults to now, UTC)

    Returns:
        Filename ending in ``.png``
    """
    if suggested:
        return f"{suggested}.png"

    words = "-".join(prompt.split(" ")[:5]).lower()
    words = re.sub(r"[^a-z0-9-]", "", words)
    stamp = (when or datetime.now(timezone.utc)).isoformat()
    stamp = re.sub(r"[:.+]", "-", stamp)
    return f"{words}-{model}-{stamp}.png"


def decode_data_url(image_ref: str) -> bytes:
    """Decode an inline ``data:image/...;base64,`` reference.

    Raises:
        ValueError: If the payload is not valid base64
    """
    payload = DATA_URL_PREFIX.sub("", image_ref, count=1)
    return base64.b64decode(payload, validate=True)


async def load_image_bytes(
    image_ref: str, is_inline: bool, client: httpx.AsyncClient | None = None
) -> bytes:
    """Return the raw bytes behind an image reference.

    Inline references are decoded locally; URL references are downloaded.

    Raises:
        ValueError: Invalid inline payload
        httpx.HTTPError: Download failed
    """
    if is_inline:
        return decode_data_url(image_ref)

    if client is not None:
        response = await client.get(image_ref)
    else:
        async with httpx.AsyncClient(timeout=60.0, follow_redirects=True) as owned:
            response = await owned.get(image_ref)
    response.raise_for_status()
    return response.content


def _write_image(data: bytes, destination: Path) -> None:
    image_format = SAVE_FORMATS.get(destination.suffix.lower())
    destination.parent.mkdir(parents=True, exist_ok=True)

    if image_format is None:
        # Unknown suffix: keep the provider's bytes untouched.
        destination.write_bytes(data)
        return

    with Image.open(io.BytesIO(data)) as image:
        if image_format == "JPEG" and image.mode not in ("RGB", "L"):
            image = image.convert("RGB")
        image.save(destination, format=image_format)


async def save_image(
    image_ref: str,
    is_inline: bool,
    destination: Path | str,
    client: httpx.AsyncClient | None = None,
) -> SaveOutcome:
    """Persist an image reference to ``destination``.

    Args:
        image_ref: URL or ``data:`` URL from a generation result
        is_inline: Whether ``image_ref`` is inline
        destination: Target file path; its suffix selects the output format
        client: Optional HTTP client for downloading URL references

    Returns:
        SaveOutcome describing success or the reason for failure
    """
    destination = Path(destination).expanduser()
    try:
        data = await load_image_bytes(image_ref, is_inline, client=client)
        await asyncio.to_thread(_write_image, data, destination)
    except httpx.HTTPError as e:
        logger.error(f"Failed to download image for {destination.name}: {e}")
        return SaveOutcome(success=False, message=f"Failed to download image: {e}")
    except (OSError, ValueError) as e:
        logger.error(f"Failed to save image to {destination}: {e}")
        return SaveOutcome(success=False, message=f"Failed to save image: {e}")

    logger.info(f"Saved image to {destination}")
    return SaveOutcome(success=True, path=destination)
