"""Loading of floor-plan wiring snapshots (placed devices and connections)."""

from __future__ import annotations

import dataclasses
import logging
from pathlib import Path
from typing import Any

from jsonschema import ValidationError

from firesim.core.documents import decode, format_for, load_schema_validator, read_text
from firesim.core.errors import PlanLoadError, PlanValidationError
from firesim.core.model import Connection, PlacedDevice, Plan

LOGGER = logging.getLogger(__name__)


def _device(entry: dict[str, Any]) -> PlacedDevice:
    return PlacedDevice(
        instance_id=entry["instanceId"],
        type_id=entry["typeId"],
        label=entry.get("label") or "",
        sn=entry.get("sn") or 0,
        device_type=entry.get("deviceType") or "",
        mounted_detector_id=entry.get("mountedDetectorId") or None,
        mounted_on_socket_id=entry.get("mountedOnSocketId") or None,
        features=tuple(entry.get("features") or ()),
    )


def _connection(entry: dict[str, Any]) -> Connection:
    return Connection(
        from_device_id=entry["fromDeviceId"],
        from_terminal_id=entry["fromTerminalId"],
        to_device_id=entry["toDeviceId"],
        to_terminal_id=entry["toTerminalId"],
        id=entry.get("id", ""),
    )


def link_mounted_heads(devices: list[PlacedDevice]) -> list[PlacedDevice]:
    """Complete the socket/head relation from whichever side declares it.

    The socket's ``mounted_detector_id`` wins when the two sides disagree.
    """
    by_id = {d.instance_id: d for d in devices}
    head_to_socket: dict[str, str] = {}
    for device in devices:
        if device.is_socket and device.mounted_detector_id:
            head_to_socket[device.mounted_detector_id] = device.instance_id
    for device in devices:
        if device.is_head and device.mounted_on_socket_id and device.instance_id not in head_to_socket:
            socket = by_id.get(device.mounted_on_socket_id)
            if socket is not None and socket.is_socket and not socket.mounted_detector_id:
                head_to_socket[device.instance_id] = socket.instance_id

    socket_to_head = {socket_id: head_id for head_id, socket_id in head_to_socket.items()}
    linked: list[PlacedDevice] = []
    for device in devices:
        if device.is_socket and device.instance_id in socket_to_head:
            device = dataclasses.replace(device, mounted_detector_id=socket_to_head[device.instance_id])
        elif device.is_head:
            socket_id = head_to_socket.get(device.instance_id)
            if device.mounted_on_socket_id and device.mounted_on_socket_id != socket_id:
                LOGGER.warning(
                    "Head %s claims socket %s but is mounted on %s",
                    device.instance_id,
                    device.mounted_on_socket_id,
                    socket_id or "<none>",
                )
            device = dataclasses.replace(device, mounted_on_socket_id=socket_id)
        linked.append(device)
    return linked


def build_plan(doc: Any, source: str = "<plan>") -> Plan:
    validator = load_schema_validator("plan.schema.json")
    try:
        validator.validate(doc)
    except ValidationError as exc:
        path = ".".join(str(p) for p in exc.path)
        where = f" ({path})" if path else ""
        raise PlanValidationError(f"Schema validation failed for {source}{where}: {exc.message}") from exc

    devices = [_device(entry) for entry in doc["devices"]]
    seen: set[str] = set()
    for device in devices:
        if device.instance_id in seen:
            raise PlanValidationError(f"Duplicate instanceId '{device.instance_id}' in {source}")
        seen.add(device.instance_id)

    return Plan(
        devices=tuple(link_mounted_heads(devices)),
        connections=tuple(_connection(entry) for entry in doc.get("connections", [])),
    )


def load_plan(path: Path) -> Plan:
    text = read_text(path, error_cls=PlanLoadError)
    doc = decode(text, fmt=format_for(path), source=str(path), error_cls=PlanValidationError)
    return build_plan(doc, str(path))
