import os
from dataclasses import dataclass
from typing import Optional

# Load environment variables
from dotenv import load_dotenv
load_dotenv()

# =============================================================================
# CONFIGURATION - values come from the environment (or .env)
# =============================================================================
DEFAULT_PORT = 8080
DEFAULT_FASTAPI_PORT = 5001
DEFAULT_DB_NAME = "wirescope"
DEFAULT_MEASUREMENT_WINDOW = 20
DEFAULT_MAX_CONTENT_LENGTH = 10 * 1024 * 1024    # request bodies, bytes


@dataclass(frozen=True)
class Settings:
    host: str = "0.0.0.0"
    port: int = DEFAULT_PORT
    fastapi_port: int = DEFAULT_FASTAPI_PORT
    mongodb_uri: Optional[str] = None
    mongodb_db: str = DEFAULT_DB_NAME
    measurement_window: int = DEFAULT_MEASUREMENT_WINDOW
    log_level: str = "INFO"
    log_dir: Optional[str] = None
    deployment_url: str = f"http://localhost:{DEFAULT_PORT}"
    cors_origins: str = "*"
    max_content_length: int = DEFAULT_MAX_CONTENT_LENGTH


def get_settings() -> Settings:
    """Reads settings from the current environment."""
    port = int(os.getenv("PORT", DEFAULT_PORT))
    return Settings(
        host=os.getenv("HOST", "0.0.0.0"),
        port=port,
        fastapi_port=int(os.getenv("FASTAPI_PORT", DEFAULT_FASTAPI_PORT)),
        mongodb_uri=os.getenv("MONGODB_URI") or None,
        mongodb_db=os.getenv("MONGODB_DB", DEFAULT_DB_NAME),
        measurement_window=int(os.getenv("MEASUREMENT_WINDOW", DEFAULT_MEASUREMENT_WINDOW)),
        log_level=os.getenv("LOG_LEVEL", "INFO").upper(),
        log_dir=os.getenv("LOG_DIR") or None,
        deployment_url=os.getenv("DEPLOYMENT_URL", f"http://localhost:{port}"),
        cors_origins=os.getenv("CORS_ORIGINS", "*"),
        max_content_length=int(os.getenv("MAX_CONTENT_LENGTH", DEFAULT_MAX_CONTENT_LENGTH)),
    )
