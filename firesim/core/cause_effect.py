"""Cause & effect evaluation: which outputs sound for a set of alarming inputs.

The evaluator is stateless. A rule's ``delay`` is carried as data only; callers
that model time feed successive activation snapshots in.
"""

from __future__ import annotations

import logging
from collections.abc import Iterable, Sequence
from dataclasses import dataclass

from firesim.core.model import ConfigDocument, DetectionZone, DeviceFunction, PlacedDevice

LOGGER = logging.getLogger(__name__)


@dataclass(frozen=True)
class OutputFunction:
    address: str
    function: DeviceFunction


def _has_input(config: ConfigDocument, address: str) -> bool:
    device = config.device_at(address)
    return device is not None and device.has_input_function


def _has_output(config: ConfigDocument, address: str) -> bool:
    device = config.device_at(address)
    return device is not None and device.has_output_function


def activated_addresses(placed_devices: Sequence[PlacedDevice], activated_ids: Iterable[str]) -> set[str]:
    labels = {d.instance_id: d.label for d in placed_devices}
    return {labels[i] for i in activated_ids if labels.get(i)}


def detection_zones_for_address(config: ConfigDocument, address: str) -> list[DetectionZone]:
    return [zone for zone in config.detection_zones if address in zone.devices]


def zone_device_addresses(config: ConfigDocument, zone_uuid: str) -> tuple[str, ...]:
    zone = config.detection_zone(zone_uuid) or config.alarm_zone(zone_uuid)
    return zone.devices if zone is not None else ()


def is_zone_triggered(config: ConfigDocument, zone_uuid: str, active: set[str], logic: str) -> bool:
    """Return whether detection zone ``zone_uuid`` triggers under ``logic``.

    Only members configured with an input-role function count. ``OR`` needs any
    of them active, any other logic needs all of them. A zone without such
    members never triggers.
    """
    zone = config.detection_zone(zone_uuid)
    if zone is None:
        return False
    triggers = [address for address in zone.devices if _has_input(config, address)]
    if not triggers:
        return False
    if logic == "OR":
        return any(address in active for address in triggers)
    return all(address in active for address in triggers)


def triggered_alarm_zones(config: ConfigDocument, active: set[str]) -> list[str]:
    zones: list[str] = []
    for rule in config.cause_effect:
        if rule.output_zone not in zones and is_zone_triggered(config, rule.input_zone, active, rule.logic):
            LOGGER.debug("Rule %s triggered: %s -> %s", rule.id, rule.input_zone, rule.output_zone)
            zones.append(rule.output_zone)
    return zones


def alarm_zone_output_devices(config: ConfigDocument, zone_uuid: str) -> list[str]:
    zone = config.alarm_zone(zone_uuid)
    if zone is None:
        return []
    return [address for address in zone.devices if _has_output(config, address)]


def alarm_zone_output_functions(config: ConfigDocument, zone_uuid: str) -> list[OutputFunction]:
    zone = config.alarm_zone(zone_uuid)
    if zone is None:
        return []
    outputs: list[OutputFunction] = []
    for address in zone.devices:
        device = config.device_at(address)
        if device is None:
            continue
        outputs.extend(OutputFunction(address=address, function=fn) for fn in device.functions if fn.is_output)
    return outputs


def addresses_to_instance_ids(placed_devices: Sequence[PlacedDevice], addresses: Iterable[str]) -> list[str]:
    by_label: dict[str, str] = {}
    for device in placed_devices:
        if device.label:
            by_label.setdefault(device.label, device.instance_id)
    return [by_label[address] for address in addresses if address in by_label]


def outputs_for_input(config: ConfigDocument, address: str) -> list[str]:
    """Every alarm-zone address a C&E rule links to the zones containing ``address``."""
    outputs: list[str] = []
    for zone in detection_zones_for_address(config, address):
        for rule in config.cause_effect:
            if rule.input_zone != zone.uuid:
                continue
            for output in zone_device_addresses(config, rule.output_zone):
                if output not in outputs:
                    outputs.append(output)
    return outputs


def compute_activated_outputs(
    config: ConfigDocument | None,
    placed_devices: Sequence[PlacedDevice],
    activated_ids: Iterable[str],
) -> set[str]:
    """Return instance ids of every output device that must activate."""
    if config is None:
        return set()
    active = activated_addresses(placed_devices, activated_ids)
    if not active:
        return set()

    output_addresses: list[str] = []
    for zone_uuid in triggered_alarm_zones(config, active):
        output_addresses.extend(alarm_zone_output_devices(config, zone_uuid))
    return set(addresses_to_instance_ids(placed_devices, output_addresses))
