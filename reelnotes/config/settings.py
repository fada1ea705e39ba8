"""Application settings for the annotation service."""

import logging

from pydantic import BaseModel, Field, field_validator


class Settings(BaseModel):
    """Tunable settings, loaded from a JSON config file.

    Changing ``document_extension`` or ``unsafe_placeholder`` changes where
    clients expect sidecar documents, so both should stay fixed once
    documents exist.
    """

    document_extension: str = Field(
        default=".json", description="Extension of sidecar documents"
    )
    unsafe_placeholder: str = Field(
        default="_",
        description="Replacement for characters not allowed in file names",
    )
    json_indent: int = Field(default=2, ge=0, description="Indent of written JSON")
    log_level: str = Field(default="INFO", description="Root logger level")

    @field_validator("document_extension")
    @classmethod
    def _extension_has_dot(cls, value: str) -> str:
        if not value:
            raise ValueError("document_extension cannot be empty")
        return value if value.startswith(".") else f".{value}"

    @field_validator("unsafe_placeholder")
    @classmethod
    def _placeholder_is_safe(cls, value: str) -> str:
        if any(ch in value for ch in '<>:"/\\|?*'):
            raise ValueError("unsafe_placeholder must not contain unsafe characters")
        return value

    @field_validator("log_level")
    @classmethod
    def _known_level(cls, value: str) -> str:
        level = value.upper()
        if not isinstance(logging.getLevelName(level), int):
            raise ValueError(f"Unknown log level: {value}")
        return level
