import logging
from pathlib import Path
from typing import List, Optional, Type, TypeVar

import yaml
from pydantic import BaseModel, Field, ValidationError
from pydantic_settings import BaseSettings, SettingsConfigDict

from core.errors import ConfigError

# --- Base Path ---
BASE_DIR = Path(__file__).resolve().parent.parent
logger = logging.getLogger(__name__)

ModelT = TypeVar("ModelT", bound=BaseModel)

# --- Environment-based Settings ---

class AppSettings(BaseSettings):
    """
    Main application settings loaded from environment variables.
    The .env file is loaded automatically by pydantic-settings.
    """
    model_config = SettingsConfigDict(env_file='.env', env_file_encoding='utf-8', extra='ignore')

    # --- General & Core ---
    LOG_LEVEL: str = Field("INFO", description="Log level for the application (e.g., DEBUG, INFO, WARNING, ERROR)")

    # --- Storage ---
    CHEMPILOT_STORE_PATH: str = Field("data/credentials.json", description="JSON file holding provider credentials and fallback settings.")
    CHEMPILOT_REACTIONS_PATH: str = Field(str(BASE_DIR / "configs" / "reactions.yml"), description="YAML file with the local reaction knowledge base.")

    # --- Providers ---
    PROVIDER_TIMEOUT: float = Field(30.0, gt=0, description="Per-attempt HTTP timeout in seconds.")
    PRIMARY_PROVIDER: Optional[str] = Field(None, description="Optional: provider attempted first.")

    # --- Fallback ---
    FALLBACK_ENABLED: bool = Field(True)
    FALLBACK_MAX_RETRIES: int = Field(2, ge=1)
    FALLBACK_RETRY_DELAY: float = Field(2.0, ge=0, description="Fixed delay in seconds between retries of a fallback provider.")
    FALLBACK_ORDER: List[str] = Field(
        default_factory=lambda: ["deepseek", "chatgpt", "gemini", "claude", "mistral", "groq"]
    )

# --- YAML-based Configuration ---

def load_yaml(path: Path, model: Type[ModelT]) -> ModelT:
    """Loads a YAML file and validates it with the given Pydantic model."""
    path = Path(path)
    if not path.exists():
        raise ConfigError(f"Configuration file '{path.name}' not found in {path.parent}")
    try:
        with open(path, 'r', encoding='utf-8') as f:
            data = yaml.safe_load(f)
        return model.model_validate(data or {})
    except (yaml.YAMLError, ValidationError) as e:
        raise ConfigError(f"Invalid configuration file '{path}': {e}") from e

# --- Main Config Object ---

class Config:
    """
    A unified configuration object.
    """
    def __init__(self):
        try:
            self.app = AppSettings()
        except ValidationError as e:
            logger.critical(f"FATAL: Configuration validation error: {e}")
            raise ConfigError(f"Configuration validation error: {e}") from e

    @property
    def store_path(self) -> Path:
        path = Path(self.app.CHEMPILOT_STORE_PATH)
        return path if path.is_absolute() else BASE_DIR / path

    @property
    def reactions_path(self) -> Path:
        path = Path(self.app.CHEMPILOT_REACTIONS_PATH)
        return path if path.is_absolute() else BASE_DIR / path

# --- Global Config Instance ---
_settings_instance = None

def get_settings() -> Config:
    """
    Returns a singleton instance of the Config object.
    This function controls when the settings are loaded and validated,
    making the application more testable.
    """
    global _settings_instance
    if _settings_instance is None:
        _settings_instance = Config()
    return _settings_instance

def reset_settings() -> None:
    """Drop the cached settings so the next get_settings() re-reads the environment."""
    global _settings_instance
    _settings_instance = None
