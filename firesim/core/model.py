"""Core data models shared by discovery, configuration, matching and C&E evaluation."""

from __future__ import annotations

from dataclasses import dataclass, field

SOCKET_TYPE = "AG-socket"
HEAD_TYPE = "AG-head"
DETECTOR_TYPE = "AG-detector"
LOOP_DRIVER_TYPE = "loop-driver"
PANEL_TYPE = "panel"

# Never addressed on a loop and never traversed through.
NON_LOOP_TYPES = frozenset({LOOP_DRIVER_TYPE, PANEL_TYPE})

LOOP_OUT_TERMINAL = "loop-out"
LOOP_IN_TERMINAL = "loop-in"

INPUT_ROLE = "input"
OUTPUT_ROLE = "output"


@dataclass(frozen=True)
class PlacedDevice:
    instance_id: str
    type_id: str
    label: str = ""
    sn: int = 0
    device_type: str = ""
    mounted_detector_id: str | None = None
    mounted_on_socket_id: str | None = None
    features: tuple[str, ...] = ()

    @property
    def is_socket(self) -> bool:
        return self.type_id == SOCKET_TYPE

    @property
    def is_head(self) -> bool:
        return self.type_id == HEAD_TYPE


@dataclass(frozen=True)
class Connection:
    from_device_id: str
    from_terminal_id: str
    to_device_id: str
    to_terminal_id: str
    id: str = ""

    def terminal_on(self, device_id: str) -> str:
        if self.from_device_id == device_id:
            return self.from_terminal_id
        return self.to_terminal_id

    def far_end(self, device_id: str) -> tuple[str, str]:
        """Return ``(device_id, terminal_id)`` of the endpoint opposite ``device_id``."""
        if self.from_device_id == device_id:
            return self.to_device_id, self.to_terminal_id
        return self.from_device_id, self.from_terminal_id


@dataclass(frozen=True)
class Plan:
    devices: tuple[PlacedDevice, ...]
    connections: tuple[Connection, ...]


@dataclass(frozen=True)
class DiscoveredDevice:
    instance_id: str
    c_address: int
    discovered_from: str
    label: str
    type_id: str
    sn: int
    features: tuple[str, ...] | None = None


@dataclass(frozen=True)
class DeviceFunction:
    uuid: str
    type: str
    role: str

    @property
    def is_input(self) -> bool:
        return self.role == INPUT_ROLE

    @property
    def is_output(self) -> bool:
        return self.role == OUTPUT_ROLE


@dataclass(frozen=True)
class LegacyDevice:
    """Single-function device as written by 1.0 configuration documents."""

    uuid: str
    address: str
    type: str
    location: str
    sub_type: str | None = None
    label: str | None = None
    zone: str | None = None
    functions: tuple[DeviceFunction, ...] = ()


@dataclass(frozen=True)
class ConfigDevice:
    address: str
    primary_uuid: str
    type: str
    location: str
    functions: tuple[DeviceFunction, ...]
    sub_type: str | None = None
    label: str | None = None

    @property
    def has_input_function(self) -> bool:
        return any(fn.is_input for fn in self.functions)

    @property
    def has_output_function(self) -> bool:
        return any(fn.is_output for fn in self.functions)


@dataclass(frozen=True)
class DetectionZone:
    uuid: str
    devices: tuple[str, ...]
    id: str = ""
    name: str = ""
    linked_alarm_zones: tuple[str, ...] = ()


@dataclass(frozen=True)
class AlarmZone:
    uuid: str
    devices: tuple[str, ...]
    id: str = ""
    name: str = ""


@dataclass(frozen=True)
class CauseEffectRule:
    input_zone: str
    output_zone: str
    id: str = ""
    logic: str = "OR"
    delay: float = 0


@dataclass(frozen=True)
class ConfigDocument:
    version: str
    project_name: str
    created_at: str
    devices: tuple[ConfigDevice, ...]
    detection_zones: tuple[DetectionZone, ...]
    alarm_zones: tuple[AlarmZone, ...]
    cause_effect: tuple[CauseEffectRule, ...]
    _by_address: dict[str, ConfigDevice] = field(default_factory=dict, init=False, repr=False, compare=False)

    def device_at(self, address: str) -> ConfigDevice | None:
        """Return the first configured device declared at ``address``."""
        if not self._by_address:
            for device in self.devices:
                self._by_address.setdefault(device.address, device)
        return self._by_address.get(address)

    def detection_zone(self, zone_uuid: str) -> DetectionZone | None:
        return next((z for z in self.detection_zones if z.uuid == zone_uuid), None)

    def alarm_zone(self, zone_uuid: str) -> AlarmZone | None:
        return next((z for z in self.alarm_zones if z.uuid == zone_uuid), None)
