"""Configuration helpers for the Wardrobe Studio app."""

from dataclasses import dataclass
from pathlib import Path
import os
from typing import Optional

DEFAULT_GEMINI_API_BASE = "https://generativelanguage.googleapis.com/v1beta"
DEFAULT_STORE_KEY = "wardrobe_db"
DEFAULT_APP_VERSION = "v16.0"


@dataclass
class WardrobeConfig:
    """Configuration values for the wardrobe backend.

    The Gemini key here is only the server-side default; callers of the AI
    proxy may supply their own key per request.
    """

    api_key: Optional[str] = None
    api_base_url: str = DEFAULT_GEMINI_API_BASE
    request_timeout_seconds: float = 60.0
    data_dir: str = "data"
    store_key: str = DEFAULT_STORE_KEY
    blob_db_path: Optional[str] = None
    app_version: str = DEFAULT_APP_VERSION
    environment: str | None = None
    git_branch: Optional[str] = None
    git_commit: Optional[str] = None
    deployment_id: Optional[str] = None

    @property
    def resolved_blob_db_path(self) -> Path:
        if self.blob_db_path:
            return Path(self.blob_db_path)
        return Path(self.data_dir) / "images.db"

    @classmethod
    def from_env(cls) -> "WardrobeConfig":
        """Build a config from environment variables or an environment YAML file.

        Environment specific YAML lives in ``config/environments/<env>.yaml`` by
        default and is merged with environment variables so that the Gemini key
        can be injected by the runtime environment.
        """

        env_name = os.getenv("APP_ENV")
        config_path = os.getenv("APP_CONFIG_PATH")
        config_dir = Path(os.getenv("WARDROBE_CONFIG_DIR", "config/environments"))
        yaml_config: dict = {}

        if config_path:
            path = Path(config_path)
        elif env_name:
            path = config_dir / f"{env_name}.yaml"
        else:
            path = None

        if path and path.exists():
            yaml_config = cls._load_yaml_config(path)

        def get_value(key: str, default: Optional[str] = None) -> Optional[str]:
            env_key = key.upper()
            return os.getenv(env_key, yaml_config.get(key, default))

        timeout = get_value("request_timeout_seconds", "60")
        try:
            timeout_seconds = float(timeout) if timeout else 60.0
        except ValueError:
            raise ValueError(f"REQUEST_TIMEOUT_SECONDS must be a number, got {timeout!r}") from None

        return cls(
            api_key=get_value("gemini_api_key") or None,
            api_base_url=str(get_value("gemini_api_base", DEFAULT_GEMINI_API_BASE)).rstrip("/"),
            request_timeout_seconds=timeout_seconds,
            data_dir=str(get_value("data_dir", "data") or "data"),
            store_key=str(get_value("store_key", DEFAULT_STORE_KEY) or DEFAULT_STORE_KEY),
            blob_db_path=get_value("blob_db_path"),
            app_version=str(get_value("app_version", DEFAULT_APP_VERSION) or DEFAULT_APP_VERSION),
            environment=env_name,
            git_branch=get_value("git_branch"),
            git_commit=get_value("git_commit"),
            deployment_id=get_value("deployment_id"),
        )

    @staticmethod
    def _load_yaml_config(path: Path) -> dict:
        """Parse a minimal YAML/INI-style config without external dependencies."""

        config: dict[str, str] = {}
        for line in path.read_text().splitlines():
            stripped = line.strip()
            if not stripped or stripped.startswith("#"):
                continue
            if ":" not in stripped:
                continue
            key, raw_value = stripped.split(":", 1)
            value = raw_value.strip()
            if (value.startswith("\"") and value.endswith("\"")) or (
                value.startswith("'") and value.endswith("'")
            ):
                value = value[1:-1]
            config[key.strip()] = value
        return config
