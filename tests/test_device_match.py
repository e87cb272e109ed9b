from firesim.core.device_match import config_type_for, is_address, placed_by_address, validate_device_match
from firesim.core.model import ConfigDevice, ConfigDocument, DeviceFunction, PlacedDevice


def _config(*devices: tuple[str, str]) -> ConfigDocument:
    return ConfigDocument(
        version="2.0",
        project_name="Test",
        created_at="2025-01-01T00:00:00Z",
        devices=tuple(
            ConfigDevice(
                address=address,
                primary_uuid=f"uuid-{address}",
                type=device_type,
                location="Room",
                functions=(DeviceFunction(uuid=f"uuid-{address}", type=device_type, role="input"),),
            )
            for address, device_type in devices
        ),
        detection_zones=(),
        alarm_zones=(),
        cause_effect=(),
    )


def test_bare_socket_does_not_satisfy_detector() -> None:
    config = _config(("A.001.001", "detector"))
    placed = [PlacedDevice(instance_id="s1", type_id="AG-socket", label="A.001.001")]

    report = validate_device_match(config, placed)
    assert report.type_mismatch == ("A.001.001",)
    assert report.matched == ()
    assert report.placed_types["A.001.001"] == "AG-socket"
    assert not report.valid


def test_socket_with_mounted_head_matches_detector() -> None:
    config = _config(("A.001.001", "detector"))
    placed = [
        PlacedDevice(instance_id="s1", type_id="AG-socket", label="A.001.001", mounted_detector_id="h1"),
        PlacedDevice(instance_id="h1", type_id="AG-head", mounted_on_socket_id="s1"),
    ]

    report = validate_device_match(config, placed)
    assert report.matched == ("A.001.001",)
    assert report.placed_types["A.001.001"] == "detector"
    assert report.valid


def test_head_label_addresses_its_socket() -> None:
    config = _config(("A.001.001", "detector"))
    placed = [
        PlacedDevice(instance_id="s1", type_id="AG-socket", mounted_detector_id="h1"),
        PlacedDevice(instance_id="h1", type_id="AG-head", label="A.001.001", mounted_on_socket_id="s1"),
    ]

    report = validate_device_match(config, placed)
    assert report.matched == ("A.001.001",)
    assert placed_by_address(placed)["A.001.001"].instance_id == "s1"


def test_loose_head_is_not_a_candidate() -> None:
    config = _config(("A.001.001", "detector"))
    placed = [PlacedDevice(instance_id="h1", type_id="AG-head", label="A.001.001")]

    report = validate_device_match(config, placed)
    assert report.missing == ("A.001.001",)


def test_missing_extra_and_mismatch() -> None:
    config = _config(("A.001.001", "mcp"), ("A.001.002", "sounder"), ("A.001.003", "mcp"))
    placed = [
        PlacedDevice(instance_id="ld", type_id="loop-driver", label="A.009.009"),
        PlacedDevice(instance_id="panel", type_id="panel", label="A.009.008"),
        PlacedDevice(instance_id="m1", type_id="mcp", label="A.001.001"),
        PlacedDevice(instance_id="m2", type_id="mcp", label="A.001.002"),
        PlacedDevice(instance_id="x", type_id="sounder", label="A.001.010"),
        PlacedDevice(instance_id="y", type_id="sounder", label="Corridor"),
    ]

    report = validate_device_match(config, placed)
    assert report.matched == ("A.001.001",)
    assert report.type_mismatch == ("A.001.002",)
    assert report.missing == ("A.001.003",)
    assert report.extra == ("A.001.010",)
    assert report.placed_types["A.001.010"] == "sounder"
    assert not report.valid


def test_extra_devices_do_not_invalidate() -> None:
    config = _config(("A.001.001", "mcp"))
    placed = [
        PlacedDevice(instance_id="m1", type_id="mcp", label="A.001.001"),
        PlacedDevice(instance_id="m2", type_id="mcp", label="B.002.003"),
    ]

    report = validate_device_match(config, placed)
    assert report.valid
    assert report.extra == ("B.002.003",)


def test_address_pattern() -> None:
    assert is_address("A.001.001")
    assert not is_address("a.001.001")
    assert not is_address("A.1.1")
    assert not is_address("A.001.0011")
    assert not is_address("")
    assert not is_address(None)


def test_config_type_mapping() -> None:
    assert config_type_for("AG-detector") == "detector"
    assert config_type_for("AG-socket") == "AG-socket"
    assert config_type_for("sounder") == "sounder"


def test_repeated_config_address_uses_later_entry() -> None:
    config = _config(("A.001.001", "detector"), ("A.001.002", "mcp"), ("A.001.001", "sounder"))
    placed = [
        PlacedDevice(instance_id="snd", type_id="sounder", label="A.001.001"),
        PlacedDevice(instance_id="m", type_id="mcp", label="A.001.002"),
    ]

    report = validate_device_match(config, placed)
    assert report.matched == ("A.001.001", "A.001.002")
    assert report.valid
