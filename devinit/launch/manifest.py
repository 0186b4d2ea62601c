"""Manifest codec: TOML text to typed program specifications.

A manifest lists programs under ``[[programs.list]]``::

    [[programs.list]]
    name = "api"
    path = "/usr/bin/bash"
    working_directory = "~/src/api"
    args = ["-i"]
    commands = ["source .venv/bin/activate", "make run"]
    output_mode = "log"

    [programs.list.env]
    DEBUG = "1"
"""

import tomllib
from enum import Enum
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator, model_validator

from devinit.errors import DecodeError
from devinit.registry.models import Settings

TEMPLATE = """\
# devinit project manifest. Add one [[programs.list]] table per program.
[programs]
    [[programs.list]]
    name = ""
    path = ""
    working_directory = ""
    args = []
    commands = []
    output_mode = "inherit"

    [programs.list.env]
"""


class OutputMode(str, Enum):
    NULL = "null"
    INHERIT = "inherit"
    LOG = "log"


class Program(BaseModel):
    model_config = ConfigDict(extra="ignore")

    name: str = ""
    path: str
    working_directory: str | None = None
    args: list[str] = Field(default_factory=list)
    commands: list[str] = Field(default_factory=list)
    output_mode: OutputMode = OutputMode.INHERIT
    env: dict[str, str] = Field(default_factory=dict)
    settings: Settings | None = None

    @field_validator("path")
    @classmethod
    def _path_required(cls, value: str) -> str:
        if not value.strip():
            raise ValueError("path cannot be empty")
        return value

    @field_validator("working_directory")
    @classmethod
    def _blank_is_unset(cls, value: str | None) -> str | None:
        return value or None

    @field_validator("output_mode", mode="before")
    @classmethod
    def _default_blank_mode(cls, value: Any) -> Any:
        return value or OutputMode.INHERIT


class Manifest(BaseModel):
    model_config = ConfigDict(extra="ignore")

    programs: list[Program] = Field(default_factory=list)

    @model_validator(mode="before")
    @classmethod
    def _unwrap_program_list(cls, data: Any) -> Any:
        if isinstance(data, dict) and isinstance(data.get("programs"), dict):
            data = {**data, "programs": data["programs"].get("list", [])}
        return data


def _format_errors(error: ValidationError) -> str:
    parts = []
    for item in error.errors():
        location = ".".join(str(p) for p in item["loc"])
        parts.append(f"{location}: {item['msg']}")
    return "; ".join(parts)


def decode(text: str) -> Manifest:
    """Parse manifest text, raising DecodeError for bad TOML or bad fields."""
    try:
        data = tomllib.loads(text)
    except tomllib.TOMLDecodeError as e:
        raise DecodeError(f"Invalid TOML: {e}") from e

    try:
        return Manifest.model_validate(data)
    except ValidationError as e:
        raise DecodeError(f"Invalid manifest: {_format_errors(e)}") from e


def template() -> str:
    return TEMPLATE
