import base64
import binascii
import logging
import re
from dataclasses import dataclass
from enum import Enum
from io import BytesIO
from typing import Optional, Tuple

from PIL import Image, UnidentifiedImageError

from .errors import InputError

logger = logging.getLogger(__name__)

DEFAULT_MEDIA_TYPE = "image/jpeg"

_DATA_URI_PATTERN = re.compile(r"^data:(?P<media_type>[\w.+-]+/[\w.+-]+)?(;[^,]*)?;base64,", re.IGNORECASE)
_WHITESPACE = re.compile(r"\s+")


class ImageRole(str, Enum):
    CURRENT = "current"
    PREVIOUS = "previous"
    BEFORE = "before"
    AFTER = "after"
    PHOTO = "photo"


@dataclass(frozen=True)
class ImagePayload:
    data: bytes
    media_type: str
    role: ImageRole

    @property
    def data_uri(self) -> str:
        encoded = base64.b64encode(self.data).decode("ascii")
        return f"data:{self.media_type};base64,{encoded}"


def split_data_uri(base64_str: str) -> Tuple[str, Optional[str]]:
    """
    Entfernt einen optionalen Data-URI-Präfix (z. B. "data:image/png;base64,")
    und gibt den reinen Base64-Teil sowie den darin genannten Medientyp zurück.
    """
    match = _DATA_URI_PATTERN.match(base64_str)
    if not match:
        return base64_str, None
    return base64_str[match.end():], match.group("media_type")


def base64_to_image_bytes(base64_str: str) -> bytes:
    payload, _ = split_data_uri(base64_str.strip())
    payload = _WHITESPACE.sub("", payload)
    # Fehlendes Padding wird toleriert, ungültige Zeichen nicht
    payload += "=" * (-len(payload) % 4)
    try:
        return base64.b64decode(payload, validate=True)
    except (ValueError, binascii.Error) as e:
        raise InputError("Invalid image data", detail=f"Base64-Dekodierung fehlgeschlagen: {e}") from e


def verify_image_bytes(data: bytes) -> None:
    """Prüft mit Pillow, ob die Bytes ein lesbares Bild sind."""
    try:
        with Image.open(BytesIO(data)) as img:
            img.verify()
    except (UnidentifiedImageError, OSError, SyntaxError, ValueError) as e:
        raise InputError("Invalid image data", detail=f"Bildvalidierung fehlgeschlagen: {e}") from e


def build_image_payload(
    base64_str: str,
    media_type: Optional[str],
    role: ImageRole,
    verify: bool = True,
) -> ImagePayload:
    """
    Wandelt einen Base64-String aus der Anfrage in ein ImagePayload um.
    Ein explizit übergebener Medientyp hat Vorrang vor dem Typ aus dem Data-URI.
    """
    _, uri_media_type = split_data_uri(base64_str.strip())
    data = base64_to_image_bytes(base64_str)
    if not data:
        raise InputError("Invalid image data", detail="Leere Bilddaten")
    if verify:
        verify_image_bytes(data)
    resolved = (media_type or "").strip() or uri_media_type or DEFAULT_MEDIA_TYPE
    logger.debug("Bild %s vorbereitet: %d Bytes, %s", role.value, len(data), resolved)
    return ImagePayload(data=data, media_type=resolved, role=role)
