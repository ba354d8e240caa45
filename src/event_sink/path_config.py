import logging
import re
from pathlib import Path
from typing import Self

import yaml
from jsonpath_ng.ext import parse as parse_jsonpath
from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator

from core.settings import DEFAULT_TIME_COLUMN
from event_sink.domain import ScalarKind

logger = logging.getLogger(__name__)

IDENTIFIER_RE = re.compile(r"^[a-zA-Z_][a-zA-Z0-9_]*$")


class StrictBaseModel(BaseModel):
    model_config = ConfigDict(extra="forbid", strict=True)


class PathEntrySpec(StrictBaseModel):
    name: str
    path: str
    type: str | None = None
    description: str | None = None

    @field_validator("name")
    @classmethod
    def validate_name(cls, name: str) -> str:
        if not IDENTIFIER_RE.match(name):
            raise ValueError(f"Invalid name '{name}'. Must start with a letter or underscore, "
                             "followed by letters, digits, or underscores.")
        return name.lower()

    @field_validator("path")
    @classmethod
    def validate_path(cls, path: str) -> str:
        try:
            parse_jsonpath(path)
        except Exception as e:
            raise ValueError(f"Failed to parse JSON path '{path}': {e}") from e
        return path

    @field_validator("type")
    @classmethod
    def validate_type(cls, type_name: str | None) -> str | None:
        ScalarKind.from_name(type_name)
        return type_name

    @property
    def target_type(self) -> ScalarKind:
        return ScalarKind.from_name(self.type)


class PathsSpec(StrictBaseModel):
    """
    fields: selectors evaluated against the event payload.
    tags:   selectors evaluated against the whole event envelope.

    time_column is not read from the file; it is injected by the loader so that
    names colliding with the timestamp column are rejected here too.
    """
    time_column: str = DEFAULT_TIME_COLUMN
    fields: list[PathEntrySpec] = Field(default_factory=lambda: list())
    tags: list[PathEntrySpec] = Field(default_factory=lambda: list())

    @model_validator(mode="after")
    def validate_spec(self) -> Self:
        field_names = [entry.name for entry in self.fields]
        tag_names = [entry.name for entry in self.tags]

        if duplicates := {name for name in field_names if field_names.count(name) > 1}:
            raise ValueError(f"Duplicate field names found: {sorted(duplicates)}")

        if duplicates := {name for name in tag_names if tag_names.count(name) > 1}:
            raise ValueError(f"Duplicate tag names found: {sorted(duplicates)}")

        if collisions := set(field_names) & set(tag_names):
            raise ValueError(f"Names used both as field and tag would repeat a column: {sorted(collisions)}")

        time_column = self.time_column.lower()
        if time_column in field_names or time_column in tag_names:
            raise ValueError(f"Name '{time_column}' collides with the timestamp column")

        return self


def load_paths_spec_from_file(file_path: str | Path, *, time_column: str = DEFAULT_TIME_COLUMN) -> PathsSpec:
    with open(file_path, "r") as file:
        config_yaml = yaml.safe_load(file) or {}

    if not isinstance(config_yaml, dict):
        raise ValueError(f"Error loading paths config from {file_path}: top level must be a mapping")

    try:
        spec = PathsSpec.model_validate({**config_yaml, "time_column": time_column})
    except Exception as e:
        raise ValueError(f"Error loading paths config from {file_path}: {e}")

    if not spec.fields:
        logger.warning(f"No fields configured in {file_path}; no event will ever be persisted.")

    return spec
