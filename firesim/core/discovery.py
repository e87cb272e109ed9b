"""Loop discovery: assign loop addresses the way a loop driver does at power-up.

Discovery runs in two phases. Phase ``out`` walks the wiring graph depth-first
from the driver's LOOP-OUT terminal, addressing devices 1, 2, 3... in the order
they are first reached. Phase ``in`` repeats the walk from LOOP-IN, skipping
everything already found, so devices beyond a break in the loop still get an
address. Branches (T-taps/spurs) are followed in connection-list order.
"""

from __future__ import annotations

import logging
from collections.abc import Iterable, Iterator, Sequence

from firesim.core.model import (
    DETECTOR_TYPE,
    LOOP_DRIVER_TYPE,
    LOOP_IN_TERMINAL,
    LOOP_OUT_TERMINAL,
    NON_LOOP_TYPES,
    Connection,
    DiscoveredDevice,
    PlacedDevice,
)

MAX_LOOP_ADDRESS = 255
LOGGER = logging.getLogger(__name__)

Adjacency = dict[str, list[Connection]]


def build_adjacency(connections: Iterable[Connection]) -> Adjacency:
    adjacency: Adjacency = {}
    for conn in connections:
        adjacency.setdefault(conn.from_device_id, []).append(conn)
        if conn.to_device_id != conn.from_device_id:
            adjacency.setdefault(conn.to_device_id, []).append(conn)
    return adjacency


def _exits(
    device_id: str,
    entry_terminal: str,
    adjacency: Adjacency,
) -> Iterator[tuple[str, str]]:
    for conn in adjacency.get(device_id, ()):
        if conn.terminal_on(device_id) == entry_terminal:
            continue
        yield conn.far_end(device_id)


def _traverse(
    loop_driver_id: str,
    start_terminal: str,
    adjacency: Adjacency,
    devices_by_id: dict[str, PlacedDevice],
    already_discovered: set[str],
) -> list[PlacedDevice]:
    discovered: list[PlacedDevice] = []
    visited = {loop_driver_id}

    def _enter(device_id: str, *, first: bool = False) -> PlacedDevice | None:
        if device_id in visited or (device_id in already_discovered and not first):
            return None
        device = devices_by_id.get(device_id)
        if device is None:
            LOGGER.debug("Connection from loop %s references unknown device %s", loop_driver_id, device_id)
            return None
        if device.type_id in NON_LOOP_TYPES:
            return None
        visited.add(device_id)
        discovered.append(device)
        return device

    first = next(
        (c for c in adjacency.get(loop_driver_id, ()) if c.terminal_on(loop_driver_id) == start_terminal),
        None,
    )
    if first is None:
        return discovered

    first_id, first_terminal = first.far_end(loop_driver_id)
    # The device on the start terminal is walked even if the other phase found
    # it; the caller skips re-addressing it.
    if _enter(first_id, first=True) is None:
        return discovered

    # Explicit stack of exit iterators; yields the same pre-order as recursion.
    stack = [_exits(first_id, first_terminal, adjacency)]
    while stack:
        step = next(stack[-1], None)
        if step is None:
            stack.pop()
            continue
        next_id, next_terminal = step
        if _enter(next_id) is not None:
            stack.append(_exits(next_id, next_terminal, adjacency))

    return discovered


def _reported_device(device: PlacedDevice, devices_by_id: dict[str, PlacedDevice]) -> PlacedDevice | None:
    """Return the head mounted on ``device`` if it is a socket carrying one."""
    if not device.is_socket or not device.mounted_detector_id:
        return None
    return devices_by_id.get(device.mounted_detector_id)


def _describe(
    device: PlacedDevice,
    c_address: int,
    discovered_from: str,
    devices_by_id: dict[str, PlacedDevice],
) -> DiscoveredDevice:
    head = _reported_device(device, devices_by_id)
    if head is None:
        return DiscoveredDevice(
            instance_id=device.instance_id,
            c_address=c_address,
            discovered_from=discovered_from,
            label=device.label or device.device_type,
            type_id=device.type_id,
            sn=device.sn,
        )
    return DiscoveredDevice(
        instance_id=device.instance_id,
        c_address=c_address,
        discovered_from=discovered_from,
        label=head.label or device.label or head.device_type,
        type_id=DETECTOR_TYPE,
        sn=head.sn,
        features=head.features,
    )


def discover_loop_devices(
    loop_driver_id: str,
    connections: Sequence[Connection],
    placed_devices: Sequence[PlacedDevice],
) -> list[DiscoveredDevice]:
    """Discover and address every device reachable from one loop driver."""
    adjacency = build_adjacency(connections)
    devices_by_id = {d.instance_id: d for d in placed_devices}
    discovered: list[DiscoveredDevice] = []
    discovered_ids: set[str] = set()

    def _assign(devices: Iterable[PlacedDevice], direction: str) -> None:
        for device in devices:
            if device.instance_id in discovered_ids:
                continue
            c_address = len(discovered) + 1
            if c_address > MAX_LOOP_ADDRESS:
                LOGGER.warning(
                    "Loop %s exceeds %d addresses; %s left unaddressed",
                    loop_driver_id,
                    MAX_LOOP_ADDRESS,
                    device.instance_id,
                )
                continue
            discovered.append(_describe(device, c_address, direction, devices_by_id))
            discovered_ids.add(device.instance_id)
            head = _reported_device(device, devices_by_id)
            if head is not None:
                discovered_ids.add(head.instance_id)

    out_devices = _traverse(loop_driver_id, LOOP_OUT_TERMINAL, adjacency, devices_by_id, discovered_ids)
    _assign(out_devices, "out")

    in_devices = _traverse(loop_driver_id, LOOP_IN_TERMINAL, adjacency, devices_by_id, discovered_ids)
    _assign(reversed(in_devices), "in")

    LOGGER.debug(
        "Loop %s discovered %d device(s): %d from out, %d from in",
        loop_driver_id,
        len(discovered),
        sum(1 for d in discovered if d.discovered_from == "out"),
        sum(1 for d in discovered if d.discovered_from == "in"),
    )
    return discovered


def discover_all_loops(
    placed_devices: Sequence[PlacedDevice],
    connections: Sequence[Connection],
) -> dict[str, list[DiscoveredDevice]]:
    return {
        device.instance_id: discover_loop_devices(device.instance_id, connections, placed_devices)
        for device in placed_devices
        if device.type_id == LOOP_DRIVER_TYPE
    }
