"""Generator configuration.

One GeneratorConfig value is built per run and passed explicitly to every
resolver and emitter call.
"""

from __future__ import annotations

import json
from pathlib import Path
from typing import Any, Literal

import yaml
from pydantic import BaseModel, ConfigDict, Field, ValidationError

from .errors import ConfigError

# Request locations a validator can be generated for
LOCATIONS = ("param", "query", "header", "body", "response")

# Parameter "in" values mapped onto validator locations
_PARAM_LOCATIONS: dict[str, str] = {
    "path": "param",
    "query": "query",
    "header": "header",
}


def validator_location(location: str) -> str:
    """Map an OpenAPI parameter location (path/query/header) to a validator location."""
    return _PARAM_LOCATIONS.get(location, location)


class LocationFlags(BaseModel):
    """A boolean per request location."""

    model_config = ConfigDict(extra="forbid")

    param: bool = False
    query: bool = False
    header: bool = False
    body: bool = False
    response: bool = False

    def get(self, location: str) -> bool:
        return bool(getattr(self, validator_location(location), False))


def _default_generate() -> LocationFlags:
    return LocationFlags(param=True, query=True, header=False, body=True, response=True)


class ValidationOptions(BaseModel):
    """Runtime validator settings."""

    model_config = ConfigDict(extra="forbid")

    dialect: Literal["zod"] = "zod"
    coerce: bool | LocationFlags = False
    strict: bool | LocationFlags = False
    generate: LocationFlags = Field(default_factory=_default_generate)

    def coerce_for(self, location: str) -> bool:
        """Whether text values are coerced before validating at this location."""
        if isinstance(self.coerce, bool):
            return self.coerce
        return self.coerce.get(location)

    def strict_for(self, location: str) -> bool:
        """Whether object checks reject unknown keys at this location."""
        if isinstance(self.strict, bool):
            return self.strict
        return self.strict.get(location)

    def generates(self, location: str) -> bool:
        return self.generate.get(location)


class AdminOptions(BaseModel):
    """Admin UI scaffolding settings."""

    model_config = ConfigDict(extra="forbid")

    enabled: bool = True
    boolean_type: Literal["checkbox", "slide-toggle"] = "checkbox"
    require_array_list_response: bool = False


class GeneratorConfig(BaseModel):
    """Configuration for one generation run."""

    model_config = ConfigDict(extra="forbid")

    input: str = ""
    output: str = "generated"
    date_type: Literal["string", "Date"] = "string"
    enum_style: Literal["union", "enum"] = "union"
    generate_enum_based_on_description: bool = False
    validation: ValidationOptions = Field(default_factory=ValidationOptions)
    admin: AdminOptions = Field(default_factory=AdminOptions)


def build_config(data: dict[str, Any] | None = None, **overrides: Any) -> GeneratorConfig:
    """Validate a raw mapping (plus keyword overrides) into a GeneratorConfig."""
    merged = dict(data or {})
    merged.update({k: v for k, v in overrides.items() if v is not None})
    try:
        return GeneratorConfig.model_validate(merged)
    except ValidationError as exc:
        raise ConfigError(f"Invalid configuration: {exc}") from exc


def load_config(path: str | Path, **overrides: Any) -> GeneratorConfig:
    """Load configuration from a YAML or JSON file.

    Keyword overrides (typically CLI flags) win over file values; None means
    "not given".
    """
    config_file = Path(path)
    try:
        text = config_file.read_text(encoding="utf-8")
    except OSError as exc:
        raise ConfigError(f"Cannot read config file {config_file}: {exc}") from exc

    try:
        if config_file.suffix.lower() == ".json":
            data = json.loads(text)
        else:
            data = yaml.safe_load(text)
    except (json.JSONDecodeError, yaml.YAMLError) as exc:
        raise ConfigError(f"Cannot parse config file {config_file}: {exc}") from exc

    if data is None:
        data = {}
    if not isinstance(data, dict):
        raise ConfigError(f"Config file {config_file} must contain a mapping")
    return build_config(data, **overrides)
