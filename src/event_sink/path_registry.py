import logging
from pathlib import Path
from typing import Any

from jsonpath_ng.ext import parse as parse_jsonpath

from core.settings import DEFAULT_TIME_COLUMN
from event_sink.domain import PathSpec
from event_sink.errors import SelectorError
from event_sink.path_config import PathEntrySpec, PathsSpec, load_paths_spec_from_file

logger = logging.getLogger(__name__)


class PathRegistry:
    """
    Immutable set of compiled selectors, split into two namespaces.

    Built once at startup and shared read-only by every extraction.
    """

    def __init__(self, fields: tuple[PathSpec, ...], tags: tuple[PathSpec, ...]):
        self._fields = fields
        self._tags = tags

    @classmethod
    def from_spec(cls, spec: PathsSpec) -> "PathRegistry":
        fields = tuple(cls._compile(entry, namespace="field") for entry in spec.fields)
        tags = tuple(cls._compile(entry, namespace="tag") for entry in spec.tags)
        logger.info("Path registry built: %s fields, %s tags", len(fields), len(tags))
        return cls(fields=fields, tags=tags)

    @classmethod
    def from_file(cls, file_path: str | Path, *, time_column: str = DEFAULT_TIME_COLUMN) -> "PathRegistry":
        return cls.from_spec(load_paths_spec_from_file(file_path, time_column=time_column))

    @staticmethod
    def _compile(entry: PathEntrySpec, *, namespace: str) -> PathSpec:
        logger.debug("Adding %s - %s -> %s (%s)", namespace, entry.name, entry.path, entry.target_type.value)
        return PathSpec(
            name=entry.name,
            expression=entry.path,
            matcher=parse_jsonpath(entry.path),
            target_type=entry.target_type,
        )

    def fields(self) -> tuple[PathSpec, ...]:
        return self._fields

    def tags(self) -> tuple[PathSpec, ...]:
        return self._tags

    def evaluate(self, spec: PathSpec, document: Any) -> list[Any]:
        try:
            return [match.value for match in spec.matcher.find(document)]
        except Exception as e:
            raise SelectorError(f"Failed to evaluate '{spec.expression}': {e}") from e
