"""Configuration for rpctocli.

Settings come from an optional YAML file, then CLI flags override them:
- source_dir: Go package directory to analyze
- types: service names to keep (empty keeps every service)
- error_type: name of the result type that signals failure
"""
from __future__ import annotations

from pathlib import Path
from typing import List, Optional

import yaml
from pydantic import BaseModel, Field, field_validator

DEFAULT_CONFIG_NAME = "rpctocli.yaml"


class Settings(BaseModel):
    """rpctocli settings."""

    source_dir: Path = Field(
        default_factory=lambda: Path(".").resolve(),
        description="Directory holding the Go package to analyze"
    )
    types: List[str] = Field(
        default_factory=list,
        description="Service (receiver type) names to keep"
    )
    error_type: str = Field(
        default="error",
        description="Result type that marks a method as RPC-callable"
    )
    include_tests: bool = Field(
        default=False,
        description="Also read _test.go files"
    )
    log_level: str = Field(default="WARNING")

    @field_validator("source_dir", mode="before")
    def _coerce_path(cls, value: str | Path) -> Path:
        return Path(value).expanduser().resolve()

    @field_validator("types", mode="before")
    def _split_types(cls, value: str | List[str] | None) -> List[str]:
        if value is None:
            return []
        if isinstance(value, str):
            value = value.split(",")
        return [name.strip() for name in value if name and name.strip()]

    @field_validator("log_level")
    def _upper_level(cls, value: str) -> str:
        return value.upper()


def load_settings(config_path: Optional[Path] = None) -> Settings:
    """Load configuration from YAML if provided, otherwise use defaults."""
    path = config_path or Path.cwd() / DEFAULT_CONFIG_NAME
    if path.exists():
        data = yaml.safe_load(path.read_text()) or {}
    else:
        data = {}
    return Settings(**data)
