import json
import logging
from functools import lru_cache
from importlib.resources import files
from typing import Any, Dict

from jsonschema import Draft202012Validator
from referencing import Registry, Resource

from ..errors import ContentError

logger = logging.getLogger(__name__)

SCHEMA_NAMES = ("effect", "skills", "items", "enemies", "loot_tables")


@lru_cache(maxsize=None)
def _load_schema(name: str) -> Dict[str, Any]:
    resource = files("skirmish.data").joinpath("schemas", f"{name}.schema.json")
    logger.debug("Loading %s schema", name)
    return json.loads(resource.read_text(encoding="utf-8"))


@lru_cache(maxsize=1)
def _registry() -> Registry:
    resources = []
    for name in SCHEMA_NAMES:
        schema = _load_schema(name)
        resources.append((schema["$id"], Resource.from_contents(schema)))
    return Registry().with_resources(resources)


def validate_document(kind: str, data: Any, source: str = "<memory>") -> None:
    """
    Validate a content document (skills, items, enemies, loot_tables).

    Raises:
        ContentError wrapping the first jsonschema.ValidationError found.
    """
    if kind not in SCHEMA_NAMES:
        raise ContentError(f"Unknown content kind: {kind}")
    validator = Draft202012Validator(_load_schema(kind), registry=_registry())
    errors = sorted(validator.iter_errors(data), key=lambda e: [str(p) for p in e.path])
    if errors:
        # Log all errors, then raise the first to provide a clear exception
        for err in errors:
            logger.error("%s schema validation error in %s at %s: %s", kind, source, list(err.path), err.message)
        first = errors[0]
        raise ContentError(f"Invalid {kind} content in {source} at {list(first.path)}: {first.message}") from first


__all__ = [
    "validate_document",
]
