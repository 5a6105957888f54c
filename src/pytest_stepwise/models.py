"""Base Pydantic models.

This module defines the foundational model classes used by test data
records, reporting metadata and runtime settings. Records are immutable
and strictly validated, so that a scenario never observes a partially
valid or mutated record.
"""

from pydantic import BaseModel, ConfigDict
from pydantic_settings import BaseSettings, SettingsConfigDict


class SchemaModel(BaseModel):
    """Base immutable model for all declarative elements.

    Design principles enforced by this model:
        - Immutability: elements cannot be modified after creation.
        - Strict schema validation: unknown or extra fields are rejected
          to avoid silent errors caused by typos in data files.
    """

    model_config = ConfigDict(
        frozen=True,
        extra='forbid',
    )


class SettingsModel(BaseSettings):
    """Base immutable model for runtime settings.

    Design principles enforced by this model:
        - Immutability: resolved settings cannot be modified after creation.
        - Tolerant schema handling: unknown or extra fields are ignored,
          so unrelated environment variables never break resolution.
    """

    model_config = SettingsConfigDict(
        frozen=True,
        extra='ignore',
    )
