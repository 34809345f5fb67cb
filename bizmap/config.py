"""
Configuration settings for bizmap.

Uses Pydantic Settings to load environment variables for the map credential,
the datastore connection, the relay listener, the initial map view and
logging. Credentials have no defaults: callers ask for them through the
`require_*` helpers, which fail fast with `ConfigMissing` instead of letting
the app run against an unusable backend.
"""
from __future__ import annotations

from functools import lru_cache
from typing import List, Optional

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict

from bizmap.errors import ConfigMissing


class Settings(BaseSettings):
    # Map
    map_access_token: Optional[str] = Field(None, alias="MAPBOX_ACCESS_TOKEN")
    map_style: str = Field("mapbox://styles/mapbox/satellite-streets-v12", alias="MAP_STYLE")
    map_center_lng: float = Field(-13.2344, alias="MAP_CENTER_LNG")
    map_center_lat: float = Field(8.4844, alias="MAP_CENTER_LAT")
    map_zoom: float = Field(13.0, alias="MAP_ZOOM")
    map_pitch: float = Field(0.0, alias="MAP_PITCH")
    map_show_buildings: bool = Field(False, alias="MAP_SHOW_BUILDINGS")
    map_show_traffic: bool = Field(False, alias="MAP_SHOW_TRAFFIC")

    # Datastore
    store_host: str = Field("localhost", alias="STORE_HOST")
    store_port: int = Field(5432, alias="STORE_PORT")
    store_user: str = Field("postgres", alias="STORE_USER")
    store_key: Optional[str] = Field(None, alias="STORE_KEY")
    store_name: str = Field("postgres", alias="STORE_NAME")
    store_table: str = Field("businesses", alias="STORE_TABLE")
    store_pool_min: int = Field(1, alias="STORE_POOL_MIN")
    store_pool_max: int = Field(5, alias="STORE_POOL_MAX")

    # Relay
    relay_url: Optional[str] = Field(None, alias="RELAY_URL")
    relay_host: str = Field("0.0.0.0", alias="RELAY_HOST")
    relay_port: int = Field(3001, alias="PORT")

    # Application
    log_level: str = Field("INFO", alias="LOG_LEVEL")
    log_json: bool = Field(False, alias="LOG_JSON")

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
        populate_by_name=True,
    )

    def _require(self, pairs: List[tuple]) -> None:
        missing = [env for env, value in pairs if not value]
        if missing:
            raise ConfigMissing(missing)

    def require_store(self) -> None:
        """Ensure direct datastore credentials are present."""
        self._require(
            [
                ("STORE_HOST", self.store_host),
                ("STORE_NAME", self.store_name),
                ("STORE_KEY", self.store_key),
            ]
        )

    def require_map(self) -> None:
        """Ensure the map access credential is present."""
        self._require([("MAPBOX_ACCESS_TOKEN", self.map_access_token)])

    def require_relay(self) -> None:
        """Ensure a relay base URL is configured."""
        self._require([("RELAY_URL", self.relay_url)])


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    """
    Retrieve a cached instance of Settings to avoid repeated env parsing.
    """
    return Settings()


__all__ = ["Settings", "get_settings"]
