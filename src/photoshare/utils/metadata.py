import logging
from datetime import datetime, timezone
from typing import Any, Dict, Optional, Tuple

import piexif

from photoshare.models.photo import CandidatePhoto

logger = logging.getLogger(__name__)

MEDIA_TYPE_PHOTO = "photo"


def format_timestamp(moment: datetime) -> str:
    """ISO 8601 in UTC with milliseconds, e.g. 2024-05-01T12:30:00.250Z."""
    if moment.tzinfo is None:
        moment = moment.replace(tzinfo=timezone.utc)
    moment = moment.astimezone(timezone.utc)
    return moment.strftime("%Y-%m-%dT%H:%M:%S.") + f"{moment.microsecond // 1000:03d}Z"


def _decode_exif_text(value: Any) -> Optional[str]:
    if isinstance(value, bytes):
        try:
            value = value.decode()
        except UnicodeDecodeError:
            return None
    if not isinstance(value, str):
        return None
    value = value.strip("\x00 ")
    return value or None


def extract_camera(data: bytes) -> Tuple[Optional[str], Optional[str]]:
    """Camera make and model from EXIF, (None, None) when unavailable."""
    try:
        exif = piexif.load(data)
    except Exception as e:
        logger.debug(f"No EXIF available: {e}")
        return None, None

    exif_0th = exif.get("0th", {})
    make = _decode_exif_text(exif_0th.get(piexif.ImageIFD.Make))
    model = _decode_exif_text(exif_0th.get(piexif.ImageIFD.Model))
    return make, model


def build_upload_metadata(photo: CandidatePhoto, data: bytes, device_id: str) -> Dict[str, Any]:
    taken_at = photo.taken_at or photo.added_at or datetime.now(timezone.utc)
    metadata: Dict[str, Any] = {
        "fileName": photo.display_name,
        "fileSize": len(data),
        "mediaType": MEDIA_TYPE_PHOTO,
        "deviceId": device_id,
        "originalTimestamp": format_timestamp(taken_at),
    }

    make, model = extract_camera(data)
    if make:
        metadata["cameraMake"] = make
    if model:
        metadata["cameraModel"] = model
    return metadata
