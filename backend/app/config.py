# Konfiguration des Relays aus Umgebungsvariablen (.env wird unterstützt)
import os
from typing import List, Optional

from dotenv import load_dotenv
from pydantic import BaseModel, Field, ValidationError, field_validator

# Lade die Umgebungsvariablen aus einer .env-Datei (z. B. API-Keys)
load_dotenv()


class Settings(BaseModel):
    """Laufzeit-Einstellungen für das Relay und den Inferenz-Anbieter."""

    api_key: Optional[str] = Field(default=None, description="Credential for the inference provider.")
    base_url: Optional[str] = Field(
        default=None,
        description="OpenAI-compatible endpoint; the SDK default is used when unset.",
    )
    model: str = Field(default="gpt-4.1-mini", min_length=1)
    timeout: float = Field(default=60.0, ge=1.0, le=600.0, description="Deadline (seconds) for one provider call.")
    json_mode: bool = Field(default=True, description="Ask the provider for a JSON object response.")
    verify_images: bool = Field(default=True, description="Check decoded bytes with Pillow before relaying.")
    max_body_bytes: int = Field(default=10 * 1024 * 1024, ge=1024)
    cors_origins: List[str] = Field(default_factory=lambda: ["*"])
    http_referer: str = "http://localhost"
    app_title: str = "Physique Progress Relay"
    host: str = "0.0.0.0"
    port: int = Field(default=3000, ge=1, le=65535)
    log_level: str = "INFO"

    @field_validator("api_key", "base_url")
    @classmethod
    def _blank_to_none(cls, value: Optional[str]) -> Optional[str]:
        if value is None:
            return None
        value = value.strip()
        return value or None

    @field_validator("base_url")
    @classmethod
    def _normalise_base_url(cls, value: Optional[str]) -> Optional[str]:
        if value is None:
            return None
        if "://" not in value:
            raise ValueError("OPENAI_BASE_URL must include a scheme such as https://openrouter.ai/api/v1")
        return value.rstrip("/")

    @field_validator("log_level")
    @classmethod
    def _upper_log_level(cls, value: str) -> str:
        return value.strip().upper() or "INFO"

    @property
    def extra_headers(self) -> dict:
        return {"HTTP-Referer": self.http_referer, "X-Title": self.app_title}

    @classmethod
    def from_env(cls) -> "Settings":
        """Liest die Einstellungen aus den Umgebungsvariablen des Prozesses."""
        data = {
            "api_key": os.getenv("OPENAI_API_KEY"),
            "base_url": os.getenv("OPENAI_BASE_URL"),
            "model": os.getenv("OPENAI_MODEL", "gpt-4.1-mini"),
            "timeout": os.getenv("INFERENCE_TIMEOUT", "60"),
            "json_mode": os.getenv("JSON_MODE", "").strip() or "true",
            "verify_images": os.getenv("VERIFY_IMAGES", "").strip() or "true",
            "max_body_bytes": os.getenv("MAX_BODY_BYTES", str(10 * 1024 * 1024)),
            "cors_origins": [
                origin.strip() for origin in os.getenv("CORS_ORIGINS", "*").split(",") if origin.strip()
            ] or ["*"],
            "http_referer": os.getenv("HTTP_REFERER", "http://localhost"),
            "app_title": os.getenv("APP_TITLE", "Physique Progress Relay"),
            "host": os.getenv("HOST", "0.0.0.0"),
            "port": os.getenv("PORT", "3000"),
            "log_level": os.getenv("LOG_LEVEL", "INFO"),
        }
        try:
            return cls.model_validate(data)
        except ValidationError as exc:
            raise ValueError(f"Invalid relay configuration: {exc}") from exc
