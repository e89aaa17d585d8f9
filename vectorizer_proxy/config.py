import os
from dataclasses import dataclass

from dotenv import load_dotenv

load_dotenv()

DEFAULT_API_ID = "local-dev-id"
DEFAULT_API_SECRET = "local-dev-secret"


@dataclass(frozen=True)
class Settings:
    host: str = os.getenv("HOST", "0.0.0.0")
    port: int = int(os.getenv("PORT", "3000"))
    # Development fallbacks only; production must set both.
    api_id: str = os.getenv("VECTORIZER_API_ID", DEFAULT_API_ID)
    api_secret: str = os.getenv("VECTORIZER_API_SECRET", DEFAULT_API_SECRET)
    api_url: str = os.getenv("VECTORIZER_API_URL", "https://vectorizer.ai/api/v1/vectorize")
    timeout_s: float = float(os.getenv("VECTORIZER_TIMEOUT_SECONDS", "120"))
    max_upload_bytes: int = int(os.getenv("MAX_UPLOAD_BYTES", str(10 * 1024 * 1024)))
    log_level: str = os.getenv("LOG_LEVEL", "INFO")
    log_json: bool = os.getenv("LOG_JSON", "true").lower() == "true"

    @property
    def uses_default_credentials(self) -> bool:
        return self.api_id in ("", DEFAULT_API_ID) or self.api_secret in ("", DEFAULT_API_SECRET)


settings = Settings()
