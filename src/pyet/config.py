"""Configuration for pyet renders.

Options can be passed in code or loaded from a YAML file:

    encoding: utf-8
    max_include_depth: 16
    include_base: templates/
    default_extension: .ejs
"""

from __future__ import annotations

import json
from pathlib import Path
from typing import Any

import yaml
from pydantic import BaseModel, Field, field_validator


class RenderOptions(BaseModel):
    """Options shared by a render call and every include below it."""

    model_config = {"frozen": True}

    encoding: str = Field(default="utf-8", description="Encoding of output bytes and template files")
    max_include_depth: int = Field(
        default=16, ge=1, description="Maximum nesting of include() calls"
    )
    include_base: Path | None = Field(
        default=None,
        description="Directory includes of in-memory templates resolve against (defaults to cwd)",
    )
    default_extension: str | None = Field(
        default=None,
        description="Suffix appended to include references that have none (e.g. '.ejs')",
    )

    @field_validator("default_extension")
    @classmethod
    def normalize_extension(cls, value: str | None) -> str | None:
        """Accept 'ejs' as well as '.ejs'."""
        if value and not value.startswith("."):
            return f".{value}"
        return value or None


def load_options(path: Path) -> RenderOptions:
    """Load RenderOptions from a YAML file."""
    if not path.exists():
        raise FileNotFoundError(f"Config file not found: {path}")

    with open(path) as f:
        data = yaml.safe_load(f) or {}

    return RenderOptions(**data)


def load_params(path: Path) -> dict[str, Any]:
    """Load template parameters from a YAML or JSON file."""
    if not path.exists():
        raise FileNotFoundError(f"Params file not found: {path}")

    with open(path) as f:
        if path.suffix == ".json":
            data = json.load(f)
        else:
            data = yaml.safe_load(f)

    if data is None:
        return {}
    if not isinstance(data, dict):
        raise ValueError(f"Params file must contain a mapping: {path}")
    return data


def parse_assignment(item: str) -> tuple[str, Any]:
    """Parse a KEY=VALUE command line assignment.

    The value is read as YAML, so numbers, booleans and lists get their types:
    "count=3" -> ("count", 3), "name=world" -> ("name", "world").
    """
    if "=" not in item:
        raise ValueError(f"Expected KEY=VALUE, got: {item}")
    key, _, raw = item.partition("=")
    key = key.strip()
    if not key.isidentifier():
        raise ValueError(f"Not a valid parameter name: {key}")
    value = yaml.safe_load(raw) if raw else ""
    return key, value
