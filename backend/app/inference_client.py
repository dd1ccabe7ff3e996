# Client für den multimodalen Inferenz-Anbieter (OpenAI oder OpenAI-kompatibel, z. B. OpenRouter)
import logging
from typing import Dict, List, Sequence

import openai
from openai import AsyncOpenAI

from .config import Settings
from .errors import ConfigurationError, UpstreamError
from .utils import ImagePayload

logger = logging.getLogger(__name__)


def build_content(prompt: str, images: Sequence[ImagePayload]) -> List[Dict]:
    """
    Baut die Inhaltsblöcke der Nachricht: zuerst der Anweisungstext, danach
    ein image_url-Block pro Foto in der übergebenen Reihenfolge.
    """
    content: List[Dict] = [{"type": "text", "text": prompt}]
    for image in images:
        content.append({"type": "image_url", "image_url": {"url": image.data_uri}})
    return content


class InferenceClient:
    def __init__(self, settings: Settings):
        # Hole den API-Key aus den Einstellungen
        if not settings.api_key:
            raise ConfigurationError(detail="OPENAI_API_KEY fehlt in den Umgebungsvariablen.")

        # Ein Versuch pro Anfrage, mit fester Frist
        self.client = AsyncOpenAI(
            api_key=settings.api_key,
            base_url=settings.base_url,
            timeout=settings.timeout,
            max_retries=0,
        )

        # Zusätzliche HTTP-Header (von OpenRouter ausgewertet, sonst ignoriert)
        self.headers = settings.extra_headers

        # Modellkonfiguration
        self.model = settings.model
        self.json_mode = settings.json_mode
        self.timeout = settings.timeout

    async def complete(
        self,
        prompt: str,
        images: Sequence[ImagePayload],
        max_tokens: int,
        json_response: bool = False,
    ) -> str:
        """
        Schickt Prompt und Bilder in einem einzigen Aufruf an das Modell und
        gibt den rohen Antworttext zurück.
        """
        request = {
            "model": self.model,
            "messages": [{"role": "user", "content": build_content(prompt, images)}],
            "max_tokens": max_tokens,
            "extra_headers": self.headers,
        }
        if json_response and self.json_mode:
            request["response_format"] = {"type": "json_object"}

        logger.info("Inferenz-Aufruf: Modell=%s, Bilder=%d, max_tokens=%d", self.model, len(images), max_tokens)
        try:
            response = await self.client.chat.completions.create(**request)
        except openai.APIStatusError as e:
            # Fehlertext des Anbieters nur ins Log, nie an den Aufrufer
            logger.error("Anbieter antwortete mit HTTP %s: %s", e.status_code, e.response.text)
            raise UpstreamError(detail=f"HTTP {e.status_code}") from e
        except openai.APITimeoutError as e:
            logger.error("Anbieter-Anfrage nach %.1fs abgebrochen", self.timeout)
            raise UpstreamError(detail="timeout") from e
        except openai.APIError as e:
            logger.error("API-Aufruf fehlgeschlagen: %s", e)
            raise UpstreamError(detail=str(e)) from e

        raw_output = _first_message_text(response)
        logger.debug("Roh-API-Antwort: %s...", raw_output[:200])
        return raw_output

    async def close(self) -> None:
        await self.client.close()


def _first_message_text(response) -> str:
    if response and response.choices and response.choices[0].message and response.choices[0].message.content:
        return response.choices[0].message.content.strip()
    return ""
