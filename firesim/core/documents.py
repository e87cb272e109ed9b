"""Reading and schema-checking of JSON/YAML documents (configurations and plans)."""

from __future__ import annotations

import json
from importlib import resources
from pathlib import Path
from typing import Any

import yaml
from jsonschema import ValidationError, validators

from firesim.core.errors import FiresimError

YAML_SUFFIXES = frozenset({".yml", ".yaml"})
# Resolved as plain strings: yes/no labels and ISO createdAt stamps.
_PLAIN_STRING_TAGS = frozenset({"tag:yaml.org,2002:bool", "tag:yaml.org,2002:timestamp"})


class UniqueKeyLoader(yaml.SafeLoader):
    """YAML loader that rejects duplicate mapping keys."""


UniqueKeyLoader.yaml_implicit_resolvers = {
    key: list(value) for key, value in yaml.SafeLoader.yaml_implicit_resolvers.items()
}

for first_char, mappings in list(UniqueKeyLoader.yaml_implicit_resolvers.items()):
    UniqueKeyLoader.yaml_implicit_resolvers[first_char] = [
        (tag, regexp)
        for tag, regexp in mappings
        if tag not in _PLAIN_STRING_TAGS
    ]


def _construct_mapping(loader: UniqueKeyLoader, node: yaml.Node, deep: bool = False) -> dict[str, Any]:
    mapping: dict[str, Any] = {}
    for key_node, value_node in node.value:
        key = loader.construct_object(key_node, deep=deep)
        if key in mapping:
            raise yaml.constructor.ConstructorError(
                None, None, f"Duplicate key '{key}'", key_node.start_mark
            )
        mapping[key] = loader.construct_object(value_node, deep=deep)
    return mapping


UniqueKeyLoader.add_constructor(
    yaml.resolver.BaseResolver.DEFAULT_MAPPING_TAG,
    _construct_mapping,
)


def _unique_pairs(pairs: list[tuple[str, Any]]) -> dict[str, Any]:
    mapping: dict[str, Any] = {}
    for key, value in pairs:
        if key in mapping:
            raise ValueError(f"Duplicate key '{key}'")
        mapping[key] = value
    return mapping


def decode(text: str, *, fmt: str, source: str, error_cls: type[FiresimError]) -> Any:
    """Decode ``text`` as ``json`` or ``yaml``, rejecting duplicate keys."""
    if fmt == "json":
        try:
            return json.loads(text, object_pairs_hook=_unique_pairs)
        except ValueError as exc:
            raise error_cls(f"Invalid JSON in {source}: {exc}") from exc
    if fmt == "yaml":
        try:
            return yaml.load(text, Loader=UniqueKeyLoader)
        except yaml.YAMLError as exc:
            raise error_cls(f"Invalid YAML in {source}: {exc}") from exc
    raise error_cls(f"Unsupported document format '{fmt}' for {source}")


def format_for(path: Path) -> str:
    suffix = path.suffix.lower()
    if suffix in YAML_SUFFIXES:
        return "yaml"
    return "json"


def read_text(path: Path, *, error_cls: type[FiresimError]) -> str:
    try:
        return path.read_text(encoding="utf-8")
    except OSError as exc:
        raise error_cls(f"Could not read {path}: {exc}") from exc


def load_schema_validator(name: str) -> Any:
    schema_text = resources.files("firesim.schemas").joinpath(name).read_text(encoding="utf-8")
    schema = json.loads(schema_text)
    validator_cls = validators.validator_for(schema)
    validator_cls.check_schema(schema)
    return validator_cls(schema)


def first_schema_error(validator: Any, doc: Any) -> ValidationError | None:
    """Return the first violation in schema order, without collecting the rest."""
    return next(iter(validator.iter_errors(doc)), None)


def describe_error(error: ValidationError) -> str:
    """Render ``error`` with its document location and a field-specific message."""
    messages = error.schema.get("x-messages", {}) if isinstance(error.schema, dict) else {}
    message = messages.get(error.validator, error.message)
    path = ".".join(str(p) for p in error.absolute_path)
    return f"{path}: {message}" if path else message
