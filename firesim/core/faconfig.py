"""Configuration documents: parsing, schema validation and 1.0 -> 2.0 migration.

A configuration document describes the devices on the loops, the detection and
alarm zones grouping them by address, and the cause & effect rules linking the
zones. Version 1.0 documents describe one function per device under a ``uuid``
key; version 2.0 renames it ``primaryUuid`` and lists each device's functions.
Documents are validated first and only then migrated, so migration never sees
a malformed document.
"""

from __future__ import annotations

import logging
from collections import Counter
from collections.abc import Iterable
from dataclasses import dataclass
from pathlib import Path
from typing import Any

from firesim.core.documents import (
    decode,
    describe_error,
    first_schema_error,
    format_for,
    load_schema_validator,
    read_text,
)
from firesim.core.errors import ConfigLoadError, ConfigValidationError
from firesim.core.model import (
    INPUT_ROLE,
    OUTPUT_ROLE,
    AlarmZone,
    CauseEffectRule,
    ConfigDevice,
    ConfigDocument,
    DetectionZone,
    DeviceFunction,
    LegacyDevice,
)

LEGACY_VERSION = "1.0"
CURRENT_VERSION = "2.0"
LOGGER = logging.getLogger(__name__)

_DEFAULT_ROLES = {
    "detector": INPUT_ROLE,
    "mcp": INPUT_ROLE,
    "sounder": OUTPUT_ROLE,
}


@dataclass(frozen=True)
class ParseResult:
    config: ConfigDocument | None = None
    error: str | None = None

    @property
    def ok(self) -> bool:
        return self.config is not None


@dataclass(frozen=True)
class ConfigSummary:
    total_devices: int
    total_functions: int
    detectors: int
    mcps: int
    sounders: int
    beacons: int
    co_sensors: int
    voice: int
    detection_zones: int
    alarm_zones: int
    ce_rules: int


def validate_document(doc: Any) -> None:
    """Raise ``ConfigValidationError`` describing the first schema violation in ``doc``."""
    error = first_schema_error(load_schema_validator("faconfig.schema.json"), doc)
    if error is not None:
        raise ConfigValidationError(f"Invalid configuration: {describe_error(error)}")


def default_functions(uuid: str, device_type: str) -> tuple[DeviceFunction, ...]:
    """Synthesize the single function a 1.0 device implied by its type."""
    function_type = device_type.lower()
    if function_type not in _DEFAULT_ROLES:
        function_type = "detector"
    return (DeviceFunction(uuid=uuid, type=function_type, role=_DEFAULT_ROLES[function_type]),)


def _functions(entry: dict[str, Any]) -> tuple[DeviceFunction, ...]:
    return tuple(
        DeviceFunction(uuid=fn["uuid"], type=fn["type"], role=fn["role"])
        for fn in entry.get("functions") or ()
    )


def read_device(entry: dict[str, Any]) -> LegacyDevice | ConfigDevice:
    """Read a validated device entry as its legacy or current variant."""
    functions = _functions(entry)
    primary_uuid = entry.get("primaryUuid")
    if isinstance(primary_uuid, str) and primary_uuid and functions:
        return ConfigDevice(
            address=entry["address"],
            primary_uuid=primary_uuid,
            type=entry["type"],
            location=entry["location"],
            functions=functions,
            sub_type=entry.get("subType"),
            label=entry.get("label"),
        )
    return LegacyDevice(
        uuid=primary_uuid or entry.get("uuid") or "",
        address=entry["address"],
        type=entry["type"],
        location=entry["location"],
        sub_type=entry.get("subType"),
        label=entry.get("label"),
        zone=entry.get("zone"),
        functions=functions,
    )


def upgrade_device(device: LegacyDevice | ConfigDevice) -> ConfigDevice:
    if isinstance(device, ConfigDevice):
        return device
    return ConfigDevice(
        address=device.address,
        primary_uuid=device.uuid,
        type=device.type,
        location=device.location,
        functions=device.functions or default_functions(device.uuid, device.type),
        sub_type=device.sub_type,
        label=device.label,
    )


def _function_to_dict(fn: DeviceFunction) -> dict[str, str]:
    return {"uuid": fn.uuid, "type": fn.type, "role": fn.role}


def _migrate_device(entry: dict[str, Any]) -> dict[str, Any]:
    variant = read_device(entry)
    if isinstance(variant, ConfigDevice):
        return entry
    device = upgrade_device(variant)
    migrated = {key: value for key, value in entry.items() if key not in {"uuid", "zone"}}
    migrated["primaryUuid"] = device.primary_uuid
    migrated["functions"] = [_function_to_dict(fn) for fn in device.functions]
    return migrated


def migrate_document(doc: dict[str, Any]) -> dict[str, Any]:
    """Return ``doc`` upgraded to the current schema. Current documents come back equal."""
    migrated = dict(doc)
    migrated["devices"] = [_migrate_device(entry) for entry in doc["devices"]]
    if doc["version"] == LEGACY_VERSION:
        migrated["version"] = CURRENT_VERSION
        LOGGER.info(
            "Migrated configuration '%s' from %s to %s",
            doc.get("projectName"),
            LEGACY_VERSION,
            CURRENT_VERSION,
        )
    return migrated


def _build_config(doc: dict[str, Any]) -> ConfigDocument:
    zones = doc["zones"]
    return ConfigDocument(
        version=doc["version"],
        project_name=doc["projectName"],
        created_at=doc["createdAt"],
        devices=tuple(upgrade_device(read_device(entry)) for entry in doc["devices"]),
        detection_zones=tuple(
            DetectionZone(
                uuid=zone["uuid"],
                devices=tuple(zone["devices"]),
                id=zone.get("id", ""),
                name=zone.get("name", ""),
                linked_alarm_zones=tuple(zone.get("linkedAlarmZones") or ()),
            )
            for zone in zones["detection"]
        ),
        alarm_zones=tuple(
            AlarmZone(
                uuid=zone["uuid"],
                devices=tuple(zone["devices"]),
                id=zone.get("id", ""),
                name=zone.get("name", ""),
            )
            for zone in zones["alarm"]
        ),
        cause_effect=tuple(
            CauseEffectRule(
                input_zone=rule["inputZone"],
                output_zone=rule["outputZone"],
                id=rule.get("id", ""),
                logic=str(rule.get("logic") or "OR").upper(),
                delay=rule.get("delay") or 0,
            )
            for rule in doc["causeEffect"]
        ),
    )


def build_config(doc: Any) -> ConfigDocument:
    validate_document(doc)
    return _build_config(migrate_document(doc))


def parse_config(text: str, *, fmt: str = "json", source: str = "<string>") -> ParseResult:
    """Parse a configuration document; failures are returned, not raised."""
    try:
        doc = decode(text, fmt=fmt, source=source, error_cls=ConfigValidationError)
        return ParseResult(config=build_config(doc))
    except ConfigValidationError as exc:
        return ParseResult(error=str(exc))


def load_config(path: Path) -> ConfigDocument:
    text = read_text(path, error_cls=ConfigLoadError)
    doc = decode(text, fmt=format_for(path), source=str(path), error_cls=ConfigValidationError)
    try:
        return build_config(doc)
    except ConfigValidationError as exc:
        raise ConfigValidationError(f"{path}: {exc}") from exc


def summarize(config: ConfigDocument) -> ConfigSummary:
    counts = Counter(fn.type for device in config.devices for fn in device.functions)
    return ConfigSummary(
        total_devices=len(config.devices),
        total_functions=sum(counts.values()),
        detectors=counts["detector"],
        mcps=counts["mcp"],
        sounders=counts["sounder"],
        beacons=counts["beacon-red"] + counts["beacon-white"],
        co_sensors=counts["co-sensor"],
        voice=counts["voice"],
        detection_zones=len(config.detection_zones),
        alarm_zones=len(config.alarm_zones),
        ce_rules=len(config.cause_effect),
    )


def input_functions_for_addresses(config: ConfigDocument, addresses: Iterable[str]) -> list[DeviceFunction]:
    functions: list[DeviceFunction] = []
    for address in addresses:
        device = config.device_at(address)
        if device is not None:
            functions.extend(fn for fn in device.functions if fn.is_input)
    return functions


def output_functions_for_addresses(config: ConfigDocument, addresses: Iterable[str]) -> list[DeviceFunction]:
    functions: list[DeviceFunction] = []
    for address in addresses:
        device = config.device_at(address)
        if device is not None:
            functions.extend(fn for fn in device.functions if fn.is_output)
    return functions
