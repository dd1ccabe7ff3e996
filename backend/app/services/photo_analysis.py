from typing import Any, Callable, Dict, List

from ..config import Settings
from ..errors import InputError
from ..inference_client import InferenceClient
from ..models.schemas import AnalyzePhotoRequest, ComparePhotosRequest, DescribePhotoRequest
from ..prompts import build_analysis_prompt, build_comparison_prompt, get_prompt
from ..utils import ImagePayload, ImageRole, build_image_payload
from .response_parser import extract_json_object, normalize_analysis, normalize_comparison

ANALYSIS_MAX_TOKENS = 1000
COMPARISON_MAX_TOKENS = 1600
DESCRIBE_MAX_TOKENS = 1000

# Der Client wird erst nach der Eingabeprüfung angefordert
ClientProvider = Callable[[], InferenceClient]


async def analyze_photo(body: AnalyzePhotoRequest, get_client: ClientProvider, settings: Settings) -> Dict[str, Any]:
    """Baseline-Analyse eines Fotos oder Fortschritt gegenüber einem früheren Foto."""
    if not body.imageBase64:
        raise InputError("Image data is required")

    images: List[ImagePayload] = []
    if body.previousImageBase64:
        images.append(
            build_image_payload(
                body.previousImageBase64, body.previousMimeType, ImageRole.PREVIOUS, settings.verify_images
            )
        )
    images.append(build_image_payload(body.imageBase64, body.mimeType, ImageRole.CURRENT, settings.verify_images))

    prompt = build_analysis_prompt(has_previous=len(images) == 2)
    raw_output = await get_client().complete(prompt, images, ANALYSIS_MAX_TOKENS, json_response=True)
    return normalize_analysis(extract_json_object(raw_output))


async def compare_photos(body: ComparePhotosRequest, get_client: ClientProvider, settings: Settings) -> Dict[str, Any]:
    """Vorher/Nachher-Vergleich pro Muskelgruppe."""
    if not body.beforeBase64 or not body.afterBase64:
        raise InputError("Both images required")

    images = [
        build_image_payload(body.beforeBase64, body.beforeMime, ImageRole.BEFORE, settings.verify_images),
        build_image_payload(body.afterBase64, body.afterMime, ImageRole.AFTER, settings.verify_images),
    ]
    prompt = build_comparison_prompt(body.beforePose, body.afterPose)
    raw_output = await get_client().complete(prompt, images, COMPARISON_MAX_TOKENS, json_response=True)
    return normalize_comparison(extract_json_object(raw_output))


async def describe_photo(body: DescribePhotoRequest, get_client: ClientProvider, settings: Settings) -> Dict[str, str]:
    # Antworttext wird unverändert durchgereicht
    if not body.photoBase64:
        raise InputError("No photo provided")

    image = build_image_payload(body.photoBase64, body.photoMime, ImageRole.PHOTO, settings.verify_images)
    raw_output = await get_client().complete(get_prompt("describe"), [image], DESCRIBE_MAX_TOKENS)
    return {"result": raw_output}
