"""Stable public API for building tooling on top of firesim.

This module is the supported integration surface for floor-plan editors,
simulation front-ends and scripts. Avoid importing from ``firesim.core``
modules unless intentionally depending on non-stable internals.
"""

from __future__ import annotations

from collections.abc import Iterable, Sequence
from pathlib import Path

from firesim.core.device_match import MatchReport
from firesim.core.errors import (
    ConfigLoadError,
    ConfigValidationError,
    FiresimError,
    LoopSelectionError,
    PlanLoadError,
    PlanValidationError,
)
from firesim.core.faconfig import ConfigSummary, ParseResult, migrate_document, parse_config
from firesim.core.model import (
    AlarmZone,
    CauseEffectRule,
    ConfigDevice,
    ConfigDocument,
    Connection,
    DetectionZone,
    DeviceFunction,
    DiscoveredDevice,
    LegacyDevice,
    PlacedDevice,
    Plan,
)
from firesim.core.plan_loader import link_mounted_heads
from firesim.core.service import SimulationService

__all__ = [
    "FiresimError",
    "ConfigLoadError",
    "ConfigValidationError",
    "PlanLoadError",
    "PlanValidationError",
    "LoopSelectionError",
    "AlarmZone",
    "CauseEffectRule",
    "ConfigDevice",
    "ConfigDocument",
    "Connection",
    "DetectionZone",
    "DeviceFunction",
    "DiscoveredDevice",
    "LegacyDevice",
    "PlacedDevice",
    "Plan",
    "ConfigSummary",
    "MatchReport",
    "ParseResult",
    "migrate_document",
    "parse_config",
    "Client",
]


class Client:
    """Public client for the simulator core.

    A `Client` holds one configuration document and one wiring snapshot and
    answers discovery, verification and cause & effect queries against them.
    Snapshots are immutable; build a new client (or call `with_plan`) when the
    wiring changes.
    """

    def __init__(
        self,
        *,
        config: ConfigDocument | None = None,
        devices: Sequence[PlacedDevice] = (),
        connections: Sequence[Connection] = (),
    ) -> None:
        self._service = SimulationService(
            config=config,
            plan=Plan(devices=tuple(link_mounted_heads(list(devices))), connections=tuple(connections)),
        )

    @classmethod
    def from_files(cls, *, config_path: Path | None = None, plan_path: Path | None = None) -> Client:
        client = cls()
        client._service = SimulationService.from_paths(config_path=config_path, plan_path=plan_path)
        return client

    @property
    def config(self) -> ConfigDocument | None:
        return self._service.config

    def with_plan(self, devices: Sequence[PlacedDevice], connections: Sequence[Connection]) -> Client:
        return Client(config=self._service.config, devices=devices, connections=connections)

    def discover(self, *, loop_id: str | None = None) -> dict[str, list[DiscoveredDevice]]:
        return self._service.discover(loop_id)

    def verify(self) -> MatchReport:
        return self._service.verify()

    def activated_outputs(self, instance_ids: Iterable[str]) -> set[str]:
        return self._service.activated_outputs(instance_ids)

    def outputs_for(self, address: str) -> list[str]:
        return self._service.outputs_for(address)

    def summary(self) -> ConfigSummary:
        return self._service.summary()
