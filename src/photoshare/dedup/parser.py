import json
import logging
from typing import Any, Iterable, List, Optional

from pydantic import AliasChoices, BaseModel, ConfigDict, Field, ValidationError, field_validator

from photoshare.models.identifier import PhotoIdentifier

logger = logging.getLogger(__name__)

NOT_LOGGED_IN_REASON = "user-not-logged-in"
EMPTY_RESULTS = ("", "null", "undefined")


class IdentifierEntry(BaseModel):
    """Structured identifier as published by getPhotoIdentifiersForExclusion."""
    model_config = ConfigDict(extra="ignore", coerce_numbers_to_str=True)

    content_hash: Optional[str] = Field(None, validation_alias=AliasChoices("hash", "contentHash"))
    perceptual_hash: Optional[str] = Field(None, validation_alias=AliasChoices("perceptualHash", "perceptual_hash"))
    original_timestamp: Optional[str] = Field(None, validation_alias="originalTimestamp")
    file_size: int = Field(0, validation_alias="fileSize")
    file_name: Optional[str] = Field(None, validation_alias="fileName")
    camera_make: Optional[str] = Field(None, validation_alias="cameraMake")
    camera_model: Optional[str] = Field(None, validation_alias="cameraModel")
    width: int = Field(0, validation_alias=AliasChoices("imageWidth", "width"))
    height: int = Field(0, validation_alias=AliasChoices("imageHeight", "height"))
    media_id: Optional[str] = Field(None, validation_alias="mediaId")
    uploader_id: Optional[str] = Field(None, validation_alias="uploaderId")

    @field_validator("file_size", "width", "height", mode="before")
    @classmethod
    def _lenient_int(cls, value: Any) -> int:
        try:
            return int(value)
        except (TypeError, ValueError):
            return 0

    @field_validator(
        "content_hash", "perceptual_hash", "original_timestamp", "file_name",
        "camera_make", "camera_model", "media_id", "uploader_id",
        mode="after",
    )
    @classmethod
    def _blank_to_none(cls, value: Optional[str]) -> Optional[str]:
        if value is None:
            return None
        value = value.strip()
        return value or None

    def to_identifier(self) -> PhotoIdentifier:
        return PhotoIdentifier(**self.model_dump())


class IdentifierResponse(BaseModel):
    """Envelope the bridge wraps identifier lookups in."""
    model_config = ConfigDict(extra="ignore")

    success: Optional[bool] = False
    identifiers: Optional[List[Any]] = None
    count: Optional[int] = None
    reason: Optional[str] = None
    error: Optional[str] = None


def decode_result(raw: Optional[str]) -> Any:
    """
    Decode a raw bridge result.

    WebView style bridges hand back the JSON text as a JSON string literal,
    so one extra level of encoding is unwrapped.

    Raises:
        ValueError: the result is not JSON.
    """
    if raw is None or raw.strip() in EMPTY_RESULTS:
        return None
    decoded = json.loads(raw)
    if isinstance(decoded, str):
        if decoded.strip() in EMPTY_RESULTS:
            return None
        decoded = json.loads(decoded)
    return decoded


def parse_identifier_entries(items: Optional[Iterable[Any]]) -> List[PhotoIdentifier]:
    """
    Normalize a heterogeneous identifier list.

    Objects become full identifiers and are kept only if they carry a hash.
    Bare strings are treated as both content hash and media id. Anything
    else is skipped; a bad entry never affects its neighbours.
    """
    identifiers: List[PhotoIdentifier] = []
    if items is None:
        logger.debug("No identifiers array provided")
        return identifiers

    total = 0
    for index, item in enumerate(items):
        total += 1
        if isinstance(item, dict):
            try:
                identifier = IdentifierEntry.model_validate(item).to_identifier()
            except ValidationError as e:
                logger.warning(f"Skipping malformed identifier at index {index}: {e.error_count()} errors")
                continue
            if identifier.is_valid:
                identifiers.append(identifier)
            else:
                logger.warning(f"Skipping identifier without hashes at index {index}")
        elif isinstance(item, str) and item.strip():
            photo_id = item.strip()
            identifiers.append(PhotoIdentifier(content_hash=photo_id, media_id=photo_id))
        else:
            logger.warning(f"Could not parse identifier at index {index} as object or string")

    logger.debug(f"Parsed {len(identifiers)} photo identifiers from {total} items")
    return identifiers


def parse_identifier_response(raw: Optional[str]) -> List[PhotoIdentifier]:
    """Parse a bridge result. Every failure yields an empty list."""
    try:
        decoded = decode_result(raw)
    except ValueError as e:
        logger.error(f"Error parsing photo fetch result: {e}")
        return []

    if decoded is None:
        logger.warning("Empty result from photo fetch")
        return []

    # Some collaborators return the bare list without the envelope
    if isinstance(decoded, list):
        return parse_identifier_entries(decoded)

    if not isinstance(decoded, dict):
        logger.error(f"Unexpected photo fetch result type: {type(decoded).__name__}")
        return []

    try:
        response = IdentifierResponse.model_validate(decoded)
    except ValidationError as e:
        logger.error(f"Malformed photo fetch envelope: {e}")
        return []

    if response.reason == NOT_LOGGED_IN_REASON:
        logger.warning("User not logged in - proceeding without duplicate detection")
        return []

    if not response.success:
        logger.warning(f"Photo fetch failed: {response.error or 'Unknown error'}")
        return []

    logger.debug(f"Photo fetch successful - {len(response.identifiers or [])} identifiers received")
    return parse_identifier_entries(response.identifiers)
