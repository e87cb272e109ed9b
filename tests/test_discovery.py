from __future__ import annotations

import logging

import pytest

from firesim.core.discovery import MAX_LOOP_ADDRESS, discover_all_loops, discover_loop_devices
from firesim.core.model import Connection, PlacedDevice


def _dev(instance_id: str, type_id: str = "mcp", **kwargs) -> PlacedDevice:
    return PlacedDevice(instance_id=instance_id, type_id=type_id, label=kwargs.pop("label", instance_id), **kwargs)


def _wire(from_id: str, from_terminal: str, to_id: str, to_terminal: str) -> Connection:
    return Connection(
        from_device_id=from_id,
        from_terminal_id=from_terminal,
        to_device_id=to_id,
        to_terminal_id=to_terminal,
    )


def _ids(discovered) -> list[str]:
    return [d.instance_id for d in discovered]


def test_closed_loop_is_addressed_from_loop_out() -> None:
    devices = [_dev("ld", "loop-driver"), _dev("a"), _dev("b"), _dev("c")]
    connections = [
        _wire("ld", "loop-out", "a", "in"),
        _wire("a", "out", "b", "in"),
        _wire("b", "out", "c", "in"),
        _wire("c", "out", "ld", "loop-in"),
    ]

    discovered = discover_loop_devices("ld", connections, devices)
    assert _ids(discovered) == ["a", "b", "c"]
    assert [d.c_address for d in discovered] == [1, 2, 3]
    assert {d.discovered_from for d in discovered} == {"out"}


def test_broken_loop_continues_from_loop_in_reversed() -> None:
    devices = [_dev("ld", "loop-driver"), _dev("a"), _dev("b"), _dev("c"), _dev("d")]
    connections = [
        _wire("ld", "loop-out", "a", "in"),
        _wire("a", "out", "b", "in"),
        # break between b and c
        _wire("c", "out", "d", "in"),
        _wire("d", "out", "ld", "loop-in"),
    ]

    discovered = discover_loop_devices("ld", connections, devices)
    assert _ids(discovered) == ["a", "b", "c", "d"]
    assert [d.c_address for d in discovered] == [1, 2, 3, 4]
    assert [d.discovered_from for d in discovered] == ["out", "out", "in", "in"]


def test_branch_is_explored_depth_first_in_connection_order() -> None:
    devices = [_dev("ld", "loop-driver"), _dev("a"), _dev("b"), _dev("b2"), _dev("c")]
    connections = [
        _wire("ld", "loop-out", "a", "in"),
        _wire("a", "t1", "b", "in"),
        _wire("a", "t2", "c", "in"),
        _wire("b", "out", "b2", "in"),
    ]

    assert _ids(discover_loop_devices("ld", connections, devices)) == ["a", "b", "b2", "c"]

    reordered = [connections[0], connections[2], connections[1], connections[3]]
    assert _ids(discover_loop_devices("ld", reordered, devices)) == ["a", "c", "b", "b2"]


def test_discovery_is_deterministic() -> None:
    devices = [_dev("ld", "loop-driver")] + [_dev(f"d{i}") for i in range(6)]
    connections = [
        _wire("ld", "loop-out", "d0", "in"),
        _wire("d0", "out", "d1", "in"),
        _wire("d0", "spur", "d4", "in"),
        _wire("d1", "out", "d2", "in"),
        _wire("d4", "out", "d5", "in"),
        _wire("d2", "out", "d3", "in"),
    ]

    first = discover_loop_devices("ld", connections, devices)
    second = discover_loop_devices("ld", connections, devices)
    assert first == second
    assert [d.c_address for d in first] == list(range(1, len(first) + 1))


def test_panel_and_other_loop_driver_terminate_branch() -> None:
    devices = [
        _dev("ld", "loop-driver"),
        _dev("ld2", "loop-driver"),
        _dev("panel", "panel"),
        _dev("a"),
        _dev("behind-panel"),
        _dev("behind-ld2"),
    ]
    connections = [
        _wire("ld", "loop-out", "a", "in"),
        _wire("a", "out", "panel", "bus"),
        _wire("panel", "bus2", "behind-panel", "in"),
        _wire("a", "spur", "ld2", "loop-in"),
        _wire("ld2", "loop-out", "behind-ld2", "in"),
    ]

    discovered = discover_loop_devices("ld", connections, devices)
    assert _ids(discovered) == ["a"]


def test_loop_driver_never_discovers_itself() -> None:
    devices = [_dev("ld", "loop-driver"), _dev("a")]
    connections = [
        _wire("ld", "loop-out", "a", "in"),
        _wire("a", "out", "ld", "loop-in"),
        _wire("ld", "loop-out", "ld", "loop-in"),
    ]

    assert _ids(discover_loop_devices("ld", connections, devices)) == ["a"]


def test_cycle_does_not_rediscover_devices() -> None:
    devices = [_dev("ld", "loop-driver"), _dev("a"), _dev("b"), _dev("c")]
    connections = [
        _wire("ld", "loop-out", "a", "in"),
        _wire("a", "out", "b", "in"),
        _wire("b", "out", "c", "in"),
        _wire("c", "out", "a", "spur"),
    ]

    assert _ids(discover_loop_devices("ld", connections, devices)) == ["a", "b", "c"]


def test_dangling_endpoint_stops_only_that_branch() -> None:
    devices = [_dev("ld", "loop-driver"), _dev("a"), _dev("b")]
    connections = [
        _wire("ld", "loop-out", "a", "in"),
        _wire("a", "t1", "ghost", "in"),
        _wire("a", "t2", "b", "in"),
    ]

    assert _ids(discover_loop_devices("ld", connections, devices)) == ["a", "b"]


def test_no_connections_yields_empty_result() -> None:
    devices = [_dev("ld", "loop-driver"), _dev("a")]
    assert discover_loop_devices("ld", [], devices) == []
    assert discover_loop_devices("missing", [_wire("ld", "loop-out", "a", "in")], devices) == []


def test_socket_with_mounted_head_reports_head() -> None:
    devices = [
        _dev("ld", "loop-driver"),
        _dev("socket-1", "AG-socket", label="", sn=11, mounted_detector_id="head-1"),
        _dev("head-1", "AG-head", label="A.001.001", sn=99, features=("sounder", "beacon-red"), mounted_on_socket_id="socket-1"),
        _dev("socket-2", "AG-socket", label="A.001.002", sn=22),
    ]
    connections = [
        _wire("ld", "loop-out", "socket-1", "left"),
        _wire("socket-1", "right", "socket-2", "left"),
    ]

    first, second = discover_loop_devices("ld", connections, devices)
    assert first.instance_id == "socket-1"
    assert first.type_id == "AG-detector"
    assert first.label == "A.001.001"
    assert first.sn == 99
    assert first.features == ("sounder", "beacon-red")

    assert second.instance_id == "socket-2"
    assert second.type_id == "AG-socket"
    assert second.label == "A.001.002"
    assert second.features is None


def test_label_falls_back_to_device_type() -> None:
    devices = [_dev("ld", "loop-driver"), _dev("s", "AG-socket", label="", device_type="AG socket")]
    discovered = discover_loop_devices("ld", [_wire("ld", "loop-out", "s", "top")], devices)
    assert discovered[0].label == "AG socket"


def test_addresses_are_capped(caplog: pytest.LogCaptureFixture) -> None:
    count = MAX_LOOP_ADDRESS + 10
    devices = [_dev("ld", "loop-driver")] + [_dev(f"d{i}") for i in range(count)]
    connections = [_wire("ld", "loop-out", "d0", "in")]
    connections += [_wire(f"d{i}", "out", f"d{i + 1}", "in") for i in range(count - 1)]

    with caplog.at_level(logging.WARNING, logger="firesim.core.discovery"):
        discovered = discover_loop_devices("ld", connections, devices)

    assert len(discovered) == MAX_LOOP_ADDRESS
    assert discovered[-1].c_address == MAX_LOOP_ADDRESS
    assert "unaddressed" in caplog.text


def test_discover_all_loops_keys_by_loop_driver() -> None:
    devices = [
        _dev("ld-a", "loop-driver"),
        _dev("a1"),
        _dev("ld-b", "loop-driver"),
        _dev("b1"),
        _dev("b2"),
    ]
    connections = [
        _wire("ld-a", "loop-out", "a1", "in"),
        _wire("ld-b", "loop-out", "b1", "in"),
        _wire("b1", "out", "b2", "in"),
    ]

    loops = discover_all_loops(devices, connections)
    assert list(loops) == ["ld-a", "ld-b"]
    assert _ids(loops["ld-a"]) == ["a1"]
    assert _ids(loops["ld-b"]) == ["b1", "b2"]
