"""Service layer used by the CLI and the public API."""

from __future__ import annotations

from collections.abc import Iterable
from pathlib import Path

from firesim.core.cause_effect import compute_activated_outputs, outputs_for_input
from firesim.core.device_match import MatchReport, validate_device_match
from firesim.core.discovery import discover_all_loops
from firesim.core.errors import ConfigLoadError, LoopSelectionError, PlanLoadError
from firesim.core.faconfig import ConfigSummary, load_config, summarize
from firesim.core.model import LOOP_DRIVER_TYPE, ConfigDocument, DiscoveredDevice, PlacedDevice, Plan
from firesim.core.plan_loader import load_plan


class SimulationService:
    def __init__(
        self,
        *,
        config: ConfigDocument | None = None,
        plan: Plan | None = None,
    ) -> None:
        self.config = config
        self.plan = plan

    @classmethod
    def from_paths(
        cls,
        *,
        config_path: Path | None = None,
        plan_path: Path | None = None,
    ) -> SimulationService:
        return cls(
            config=load_config(config_path) if config_path else None,
            plan=load_plan(plan_path) if plan_path else None,
        )

    def _require_config(self) -> ConfigDocument:
        if self.config is None:
            raise ConfigLoadError("No configuration loaded. Use --config or set FIRESIM_CONFIG.")
        return self.config

    def _require_plan(self) -> Plan:
        if self.plan is None:
            raise PlanLoadError("No plan loaded. Use --plan or set FIRESIM_PLAN.")
        return self.plan

    def loop_drivers(self) -> list[PlacedDevice]:
        return [d for d in self._require_plan().devices if d.type_id == LOOP_DRIVER_TYPE]

    def discover(self, loop_id: str | None = None) -> dict[str, list[DiscoveredDevice]]:
        plan = self._require_plan()
        loops = discover_all_loops(plan.devices, plan.connections)
        if loop_id is None:
            return loops
        if loop_id in loops:
            return {loop_id: loops[loop_id]}
        labelled = [d.instance_id for d in self.loop_drivers() if d.label == loop_id]
        if len(labelled) == 1:
            return {labelled[0]: loops[labelled[0]]}
        if labelled:
            raise LoopSelectionError(f"Multiple loop drivers labelled '{loop_id}'. Use the instance id.")
        available = ", ".join(loops) or "<none>"
        raise LoopSelectionError(f"Unknown loop driver '{loop_id}'. Available: {available}")

    def verify(self) -> MatchReport:
        return validate_device_match(self._require_config(), self._require_plan().devices)

    def unknown_instances(self, instance_ids: Iterable[str]) -> list[str]:
        known = {d.instance_id for d in self._require_plan().devices}
        return [i for i in instance_ids if i not in known]

    def activated_outputs(self, instance_ids: Iterable[str]) -> set[str]:
        return compute_activated_outputs(self._require_config(), self._require_plan().devices, instance_ids)

    def outputs_for(self, address: str) -> list[str]:
        return outputs_for_input(self._require_config(), address)

    def summary(self) -> ConfigSummary:
        return summarize(self._require_config())
