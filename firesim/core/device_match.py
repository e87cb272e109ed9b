"""Placed-device to configuration matching logic."""

from __future__ import annotations

import re
from collections.abc import Sequence
from dataclasses import dataclass, field

from firesim.core.model import (
    DETECTOR_TYPE,
    NON_LOOP_TYPES,
    ConfigDevice,
    ConfigDocument,
    PlacedDevice,
)

ADDRESS_RE = re.compile(r"^[A-Z]\.\d{3}\.\d{3}$")


@dataclass(frozen=True)
class MatchReport:
    matched: tuple[str, ...]
    missing: tuple[str, ...]
    extra: tuple[str, ...]
    type_mismatch: tuple[str, ...]
    placed_types: dict[str, str] = field(default_factory=dict)

    @property
    def valid(self) -> bool:
        return not self.missing and not self.type_mismatch


def is_address(label: str | None) -> bool:
    return bool(label) and ADDRESS_RE.match(label) is not None


def _hosting_socket(head: PlacedDevice, devices_by_id: dict[str, PlacedDevice]) -> PlacedDevice | None:
    if head.mounted_on_socket_id:
        socket = devices_by_id.get(head.mounted_on_socket_id)
        if socket is not None and socket.is_socket:
            return socket
    return next(
        (d for d in devices_by_id.values() if d.is_socket and d.mounted_detector_id == head.instance_id),
        None,
    )


def effective_type(device: PlacedDevice, devices_by_id: dict[str, PlacedDevice]) -> str:
    """Return the kind a device reports as: a socket carrying a head is a detector."""
    if device.is_socket and device.mounted_detector_id and device.mounted_detector_id in devices_by_id:
        return DETECTOR_TYPE
    return device.type_id


def config_type_for(type_id: str) -> str:
    """Map a placed-device kind to the configuration ``type`` it satisfies."""
    if type_id == DETECTOR_TYPE:
        return "detector"
    # A bare socket keeps its own kind and so never satisfies "detector".
    return type_id


def placed_by_address(placed_devices: Sequence[PlacedDevice]) -> dict[str, PlacedDevice]:
    devices_by_id = {d.instance_id: d for d in placed_devices}
    by_address: dict[str, PlacedDevice] = {}
    for device in placed_devices:
        if device.type_id in NON_LOOP_TYPES or not is_address(device.label):
            continue
        if device.is_head:
            # A head is addressed through the socket it sits on; loose heads are not on a loop.
            socket = _hosting_socket(device, devices_by_id)
            if socket is not None:
                by_address[device.label] = socket
            continue
        by_address[device.label] = device
    return by_address


def validate_device_match(config: ConfigDocument, placed_devices: Sequence[PlacedDevice]) -> MatchReport:
    devices_by_id = {d.instance_id: d for d in placed_devices}
    configured: dict[str, ConfigDevice] = {}
    for device in config.devices:
        # A repeated address keeps its first position but takes the later entry.
        configured[device.address] = device
    placed = placed_by_address(placed_devices)

    matched: list[str] = []
    missing: list[str] = []
    type_mismatch: list[str] = []
    placed_types: dict[str, str] = {}

    for address, config_device in configured.items():
        placed_device = placed.get(address)
        if placed_device is None:
            missing.append(address)
            continue
        placed_type = config_type_for(effective_type(placed_device, devices_by_id))
        placed_types[address] = placed_type
        if placed_type == config_device.type:
            matched.append(address)
        else:
            type_mismatch.append(address)

    extra: list[str] = []
    for address, placed_device in placed.items():
        if address not in configured:
            extra.append(address)
            placed_types[address] = effective_type(placed_device, devices_by_id)

    return MatchReport(
        matched=tuple(matched),
        missing=tuple(missing),
        extra=tuple(extra),
        type_mismatch=tuple(type_mismatch),
        placed_types=placed_types,
    )
