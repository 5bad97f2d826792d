"""Command line entry point for the KieApp reconciler."""
from __future__ import annotations

import logging
import time
from pathlib import Path
from typing import Optional

import typer
from rich import box
from rich import print as rich_print
from rich.logging import RichHandler
from rich.table import Table

from .compiler import ManifestCompiler
from .config import OperatorSettings
from .errors import KieAppError
from .kube import KieAppAPI
from .reconciler import Reconciler
from .resources.base import Kind
from .resources.kieapp import KieApp

app = typer.Typer(help="Reconcile KieApp resources against an OpenShift cluster.")


def _configure_logging(verbose: bool) -> None:
    level = logging.DEBUG if verbose else logging.INFO
    logging.basicConfig(
        level=level,
        format="%(message)s",
        handlers=[RichHandler(rich_tracebacks=True, log_time_format="%X")],
    )


def _load_settings(settings_path: Optional[Path], kube_context: Optional[str], kubeconfig: Optional[Path]) -> OperatorSettings:
    settings = OperatorSettings.from_file(settings_path) if settings_path else OperatorSettings.from_env()
    if kube_context:
        settings.context = kube_context
    if kubeconfig:
        settings.kubeconfig = str(kubeconfig)
    return settings


def _create_api(settings: OperatorSettings) -> KieAppAPI:
    return KieAppAPI(settings)


@app.command("reconcile")
def reconcile(
    namespace: str = typer.Argument(..., help="Namespace of the KieApp."),
    name: str = typer.Argument(..., help="Name of the KieApp."),
    settings_path: Optional[Path] = typer.Option(None, "--settings", help="Path to a settings YAML file."),
    environment_file: Optional[Path] = typer.Option(None, help="Environment template used to compile the KieApp."),
    kube_context: Optional[str] = typer.Option(None, "--context", help="Override kubeconfig context."),
    kubeconfig: Optional[Path] = typer.Option(None, help="Path to kubeconfig file."),
    watch: bool = typer.Option(False, "--watch", help="Keep reconciling until no requeue is requested."),
    verbose: bool = typer.Option(False, "--verbose", help="Enable debug logging."),
) -> None:
    """Run a reconciliation pass for a KieApp."""

    _configure_logging(verbose)
    settings = _load_settings(settings_path, kube_context, kubeconfig)
    template = environment_file or settings.environment_file
    if not template:
        raise typer.BadParameter("An environment template is required (--environment-file or settings).")

    reconciler = Reconciler(_create_api(settings), ManifestCompiler.from_file(template), settings)
    while True:
        try:
            result = reconciler.reconcile(namespace, name)
        except KieAppError as exc:
            rich_print(f"[red]Reconciliation failed:[/red] {exc}")
            raise typer.Exit(code=1)
        if not watch or not result.requeue:
            break
        if result.requeue_after:
            time.sleep(result.requeue_after.total_seconds())

    if result.requeue:
        rich_print("[yellow]Reconciliation requested a requeue.[/yellow]")
    else:
        rich_print("[green]KieApp reconciled.[/green]")


@app.command("status")
def show_status(
    namespace: str = typer.Argument(..., help="Namespace of the KieApp."),
    name: str = typer.Argument(..., help="Name of the KieApp."),
    settings_path: Optional[Path] = typer.Option(None, "--settings", help="Path to a settings YAML file."),
    kube_context: Optional[str] = typer.Option(None, "--context", help="Override kubeconfig context."),
    kubeconfig: Optional[Path] = typer.Option(None, help="Path to kubeconfig file."),
) -> None:
    """Show the status conditions of a KieApp."""

    settings = _load_settings(settings_path, kube_context, kubeconfig)
    api = _create_api(settings)
    try:
        cr = KieApp.from_dict(api.get(Kind.KIE_APP, name, namespace))
    except KieAppError as exc:
        rich_print(f"[red]Unable to read KieApp:[/red] {exc}")
        raise typer.Exit(code=1)

    table = Table(title=f"{namespace}/{name}", box=box.SIMPLE)
    table.add_column("Type")
    table.add_column("Status")
    table.add_column("Reason")
    table.add_column("Message")
    table.add_column("Last transition")
    for condition in cr.status.conditions:
        table.add_row(
            condition.type.value,
            condition.status,
            condition.reason or "",
            condition.message or "",
            condition.last_transition_time.isoformat(),
        )
    rich_print(table)
    if cr.status.console_host:
        rich_print(f"Console: {cr.status.console_host}")
    deployments = cr.status.deployments
    rich_print(
        f"Deployments ready: {len(deployments.ready)}, "
        f"starting: {len(deployments.starting)}, stopped: {len(deployments.stopped)}"
    )
