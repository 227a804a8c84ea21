from __future__ import annotations

import os
from dataclasses import dataclass
from pathlib import Path
from typing import Optional

from dotenv import load_dotenv


def _default_env_file() -> str:
    repo_root = Path(__file__).resolve().parents[1]
    return str(repo_root / ".env")


def _env_bool(name: str, default: str) -> bool:
    return os.getenv(name, default).strip().lower() in ("1", "true", "yes", "on")


@dataclass(frozen=True)
class Settings:
    database_url: str

    mqtt_enabled: bool
    mqtt_broker_host: str
    mqtt_broker_port: int
    mqtt_username: Optional[str]
    mqtt_password: Optional[str]
    mqtt_topic: str
    mqtt_client_id: str

    ingest_num_workers: int
    ingest_queue_size: int

    advisory_api_url: str
    advisory_api_key: Optional[str]
    advisory_model: str
    advisory_timeout_seconds: float

    log_level: str
    api_host: str
    api_port: int


def get_settings() -> Settings:
    # Load env file (if present) but still allow overriding via real environment variables.
    env_file = os.getenv("ENERGY_ENV_FILE", _default_env_file())
    if env_file and Path(env_file).exists():
        load_dotenv(env_file, override=False)

    return Settings(
        database_url=os.getenv("DATABASE_URL", "sqlite:///./energy.db"),
        mqtt_enabled=_env_bool("MQTT_ENABLED", "true"),
        mqtt_broker_host=os.getenv("MQTT_BROKER_HOST", "localhost"),
        mqtt_broker_port=int(os.getenv("MQTT_BROKER_PORT", "1883")),
        mqtt_username=os.getenv("MQTT_USERNAME") or None,
        mqtt_password=os.getenv("MQTT_PASSWORD") or None,
        # Topic publicado por el firmware ESP32.
        mqtt_topic=os.getenv("MQTT_TOPIC", "maison/energie"),
        mqtt_client_id=os.getenv("MQTT_CLIENT_ID", "energy-ingest"),
        ingest_num_workers=int(os.getenv("INGEST_NUM_WORKERS", "4")),
        # 0 = cola sin límite
        ingest_queue_size=int(os.getenv("INGEST_QUEUE_SIZE", "0")),
        advisory_api_url=os.getenv("ADVISORY_API_URL", "https://api.openai.com/v1"),
        advisory_api_key=os.getenv("ADVISORY_API_KEY") or None,
        advisory_model=os.getenv("ADVISORY_MODEL", "gpt-4o-mini"),
        advisory_timeout_seconds=float(os.getenv("ADVISORY_TIMEOUT_SECONDS", "10")),
        log_level=os.getenv("LOG_LEVEL", "INFO").upper(),
        api_host=os.getenv("API_HOST", "0.0.0.0"),
        api_port=int(os.getenv("API_PORT", "5000")),
    )
