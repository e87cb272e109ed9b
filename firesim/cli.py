"""Typer CLI entrypoint."""

from __future__ import annotations

import json
import logging
from pathlib import Path

import typer

from firesim.core.documents import decode, format_for, read_text
from firesim.core.errors import ConfigLoadError, ConfigValidationError, FiresimError
from firesim.core.faconfig import migrate_document, validate_document
from firesim.core.service import SimulationService

app = typer.Typer(help="Fire alarm loop simulator: discovery, verification and cause & effect")

ConfigOption = typer.Option(None, "--config", envvar="FIRESIM_CONFIG", help="Configuration document (.faconfig/.json/.yaml)")
PlanOption = typer.Option(None, "--plan", envvar="FIRESIM_PLAN", help="Wiring snapshot (.json/.yaml)")


@app.callback()
def main(verbose: bool = typer.Option(False, "--verbose", "-v", help="Enable debug logging")) -> None:
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.WARNING,
        format="%(levelname)s %(name)s: %(message)s",
    )


def _build_service(config: Path | None = None, plan: Path | None = None) -> SimulationService:
    return SimulationService.from_paths(config_path=config, plan_path=plan)


@app.command("discover")
def discover(
    plan: Path | None = PlanOption,
    loop: str | None = typer.Option(None, "--loop", help="Loop driver instance id or label"),
) -> None:
    """Show the addresses each loop driver assigns at power-up."""
    try:
        service = _build_service(plan=plan)
        loops = service.discover(loop)
        if not loops:
            typer.echo("No loop drivers in plan")
            return

        for loop_id, devices in loops.items():
            typer.echo(f"{loop_id}: {len(devices)} device(s)")
            for device in devices:
                typer.echo(
                    f"  {device.c_address:3d} [{device.discovered_from:>3}] "
                    f"{device.label} ({device.type_id}) sn={device.sn}"
                )
    except FiresimError as exc:
        typer.echo(f"Error: {exc}", err=True)
        raise typer.Exit(code=1) from None


@app.command("verify")
def verify(config: Path | None = ConfigOption, plan: Path | None = PlanOption) -> None:
    """Check placed devices against the configuration by address and type."""
    try:
        service = _build_service(config=config, plan=plan)
        report = service.verify()
        for address in report.matched:
            typer.echo(f"OK       {address} ({report.placed_types[address]})")
        for address in report.type_mismatch:
            typer.echo(f"MISMATCH {address} (placed {report.placed_types[address]})")
        for address in report.missing:
            typer.echo(f"MISSING  {address}")
        for address in report.extra:
            typer.echo(f"EXTRA    {address} ({report.placed_types[address]})")
        if not report.valid:
            typer.echo(
                f"Plan does not match configuration: {len(report.missing)} missing, "
                f"{len(report.type_mismatch)} type mismatch(es)",
                err=True,
            )
            raise typer.Exit(code=2)
        typer.echo(f"Plan matches configuration ({len(report.matched)} device(s))")
    except FiresimError as exc:
        typer.echo(f"Error: {exc}", err=True)
        raise typer.Exit(code=1) from None


@app.command("simulate")
def simulate(
    activate: list[str] = typer.Option([], "--activate", "-a", help="Instance id of an alarming input device"),
    config: Path | None = ConfigOption,
    plan: Path | None = PlanOption,
) -> None:
    """List the output devices driven by the given activated inputs."""
    try:
        service = _build_service(config=config, plan=plan)
        for instance_id in service.unknown_instances(activate):
            typer.echo(f"Warning: unknown device '{instance_id}' ignored", err=True)
        outputs = service.activated_outputs(activate)
        if not outputs:
            typer.echo("No outputs activated")
            return
        labels = {d.instance_id: d.label for d in service.plan.devices}
        for instance_id in sorted(outputs):
            typer.echo(f"{instance_id} {labels.get(instance_id, '')}".rstrip())
    except FiresimError as exc:
        typer.echo(f"Error: {exc}", err=True)
        raise typer.Exit(code=1) from None


@app.command("outputs")
def outputs(address: str, config: Path | None = ConfigOption) -> None:
    """List every output address linked to an input address by C&E rules."""
    try:
        service = _build_service(config=config)
        linked = service.outputs_for(address)
        if not linked:
            typer.echo(f"No outputs linked to {address}")
            return
        for output in linked:
            typer.echo(output)
    except FiresimError as exc:
        typer.echo(f"Error: {exc}", err=True)
        raise typer.Exit(code=1) from None


@app.command("summary")
def summary(config: Path | None = ConfigOption) -> None:
    """Summarize a configuration document."""
    try:
        service = _build_service(config=config)
        stats = service.summary()
        project = service.config
        typer.echo(f"{project.project_name} (v{project.version}, created {project.created_at})")
        typer.echo(f"  devices: {stats.total_devices} ({stats.total_functions} functions)")
        typer.echo(
            f"  detectors: {stats.detectors}, mcps: {stats.mcps}, co-sensors: {stats.co_sensors}"
        )
        typer.echo(f"  sounders: {stats.sounders}, beacons: {stats.beacons}, voice: {stats.voice}")
        typer.echo(
            f"  zones: {stats.detection_zones} detection, {stats.alarm_zones} alarm; "
            f"C&E rules: {stats.ce_rules}"
        )
    except FiresimError as exc:
        typer.echo(f"Error: {exc}", err=True)
        raise typer.Exit(code=1) from None


@app.command("migrate")
def migrate(path: Path) -> None:
    """Print a configuration document upgraded to the current schema as JSON."""
    try:
        text = read_text(path, error_cls=ConfigLoadError)
        doc = decode(text, fmt=format_for(path), source=str(path), error_cls=ConfigValidationError)
        validate_document(doc)
        typer.echo(json.dumps(migrate_document(doc), indent=2))
    except FiresimError as exc:
        typer.echo(f"Error: {exc}", err=True)
        raise typer.Exit(code=1) from None


def run() -> None:
    app()


if __name__ == "__main__":
    run()
