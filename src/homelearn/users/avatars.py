"""Profile picture processing with Pillow."""

from __future__ import annotations

import asyncio
import io
import time
from pathlib import Path

from PIL import Image, ImageOps, UnidentifiedImageError

from homelearn.config import get_settings


class AvatarError(ValueError):
    """The upload could not be decoded as an image."""


def _render_jpeg(raw: bytes, size: int, quality: int) -> bytes:
    try:
        with Image.open(io.BytesIO(raw)) as img:
            img = ImageOps.exif_transpose(img).convert("RGB")
            thumb = ImageOps.fit(img, (size, size), method=Image.Resampling.LANCZOS)
    except (UnidentifiedImageError, OSError) as e:
        msg = "Invalid image file"
        raise AvatarError(msg) from e

    out = io.BytesIO()
    thumb.save(out, format="JPEG", quality=quality)
    return out.getvalue()


async def save_profile_picture(user_id: int, raw: bytes) -> str:
    """Crop/resize an upload to a square JPEG and store it in the upload dir.

    Returns the public relative path, e.g. ``uploads/profile-3-1700000000000.jpg``.
    """
    settings = get_settings()
    data = await asyncio.to_thread(
        _render_jpeg, raw, settings.profile_pic_size, settings.profile_pic_quality
    )

    filename = f"profile-{user_id}-{int(time.time() * 1000)}.jpg"
    upload_dir = Path(settings.upload_dir)
    upload_dir.mkdir(parents=True, exist_ok=True)
    await asyncio.to_thread((upload_dir / filename).write_bytes, data)
    return f"uploads/{filename}"


async def discard_profile_picture(public_path: str) -> None:
    """Remove a stored picture by the path ``save_profile_picture`` returned."""
    target = Path(get_settings().upload_dir) / Path(public_path).name
    await asyncio.to_thread(target.unlink, missing_ok=True)
