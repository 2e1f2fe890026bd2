"""Application configuration loaded from environment variables."""

from __future__ import annotations

from dataclasses import dataclass
from functools import lru_cache

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


@dataclass(frozen=True, slots=True)
class PersonPaths:
    """Vault folders used when building cross-references to people notes."""

    actors: str = ""
    directors: str = ""
    writers: str = ""
    producers: str = ""


class Settings(BaseSettings):
    tmdb_api_token: str | None = Field(default=None, alias="TMDB_API_TOKEN")
    tmdb_base_url: str = Field(default="https://api.themoviedb.org/3", alias="TMDB_BASE_URL")
    tmdb_language: str = Field(default="ru-RU", alias="TMDB_LANGUAGE")
    tmdb_timeout: float = Field(default=10.0, alias="TMDB_TIMEOUT")
    actors_path: str = Field(default="Люди/Актёры", alias="ACTORS_PATH")
    directors_path: str = Field(default="Люди/Режиссёры", alias="DIRECTORS_PATH")
    writers_path: str = Field(default="Люди/Сценаристы", alias="WRITERS_PATH")
    producers_path: str = Field(default="Люди/Продюсеры", alias="PRODUCERS_PATH")
    log_level: str = Field(default="INFO", alias="LOG_LEVEL")

    model_config = SettingsConfigDict(env_file=".env", env_file_encoding="utf-8")

    def person_paths(self) -> PersonPaths:
        return PersonPaths(
            actors=self.actors_path,
            directors=self.directors_path,
            writers=self.writers_path,
            producers=self.producers_path,
        )


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    """Return cached settings instance."""

    return Settings()
