from typing import List

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):

    RELAY_URLS: List[str] = Field(
        default_factory=lambda: ["nats://demo.nats.io:4222"],
        description="Relays used when no relay hint is given",
    )
    SUBJECT_PREFIX: str = Field("pigg", description="Root of every relay subject")

    CONNECT_TIMEOUT: float = Field(10.0, description="Seconds to wait for relay and handshake")
    HEARTBEAT_INTERVAL: float = Field(5.0, description="Seconds between keepalives")
    IDLE_TIMEOUT: float = Field(20.0, description="Seconds of silence before a connection is dropped")

    HARDWARE_BACKEND: str = Field("auto", description="auto, pi or fake")
    DEVICE_TREE_MODEL: str = Field("/proc/device-tree/model")

    CHART_UPDATES_PER_SECOND: int = Field(4)
    CHART_SAMPLES: int = Field(256)

    LOG_DIR: str = Field("logs")

    model_config = SettingsConfigDict(
        env_prefix="PIGG_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )


settings = Settings()
