# Copyright 2026 Kezie Iwueke
# SPDX-License-Identifier: Apache-2.0

# src/foundry/cli/app.py
from __future__ import annotations

import signal
import threading
from contextlib import contextmanager
from typing import Iterator, List, Optional

import typer

from foundry.component.base import Substrate
from foundry.component.reconciler import InstallOptions, Reconciler
from foundry.component.registry import build_default_registry, resolve_install_order
from foundry.config.loader import config_dir, find_config, load_config
from foundry.errors import ComponentNotFoundError, FoundryError
from foundry.logging.log import init_logging
from foundry.observers.dispatcher import EventBus
from foundry.observers.logger import LoggerObserver
from foundry.state.store import StateStore


# ------------------------------------------------------------------------------
# CLI setup
# ------------------------------------------------------------------------------

app = typer.Typer(help="Foundry homelab stack CLI", no_args_is_help=True)
component_app = typer.Typer(help="Install and inspect individual components", no_args_is_help=True)
stack_app = typer.Typer(help="Operations across the whole stack", no_args_is_help=True)

app.add_typer(component_app, name="component")
app.add_typer(stack_app, name="stack")


ConfigOption = typer.Option(None, "--config", "-c", help="Stack config name or path")
VerboseOption = typer.Option(False, "--verbose", "-v", help="Debug output on the console")


# ------------------------------------------------------------------------------
# Helpers
# ------------------------------------------------------------------------------

def _fail(exc: Exception) -> None:
    typer.secho(f"Error: {exc}", err=True, fg=typer.colors.RED)
    raise typer.Exit(code=1)


@contextmanager
def _cancellable() -> Iterator[threading.Event]:
    """
    First Ctrl-C asks the running reconciliation to stop at its next wait;
    a second one interrupts immediately.
    """
    cancel = threading.Event()

    def on_sigint(signum, frame):
        cancel.set()
        signal.signal(signal.SIGINT, signal.default_int_handler)

    previous = signal.signal(signal.SIGINT, on_sigint)
    try:
        yield cancel
    finally:
        signal.signal(signal.SIGINT, previous)


def _build_reconciler(config: Optional[str], verbose: bool, cancel: threading.Event) -> Reconciler:
    logger, run_id, log_path = init_logging(base_dir=config_dir() / "logs", verbose=verbose)
    logger.debug("log file: %s", log_path)

    path = find_config(config)
    cfg = load_config(path)
    logger.debug("loaded config %s (cluster %s)", path, cfg.cluster.name)

    return Reconciler(
        build_default_registry(),
        cfg,
        path,
        bus=EventBus(observers=[LoggerObserver(logger)]),
        run_id=run_id,
        cancel=cancel,
    )


def _echo_result(result) -> None:
    prefix = "[dry-run] " if result.dry_run else ""
    typer.echo(f"{prefix}{result.component}: {result.action.value} ({result.substrate.value})")
    for warning in result.warnings:
        typer.secho(f"  warning: {warning}", fg=typer.colors.YELLOW)


# ------------------------------------------------------------------------------
# component
# ------------------------------------------------------------------------------

@component_app.command("install")
def component_install(
    name: str = typer.Argument(..., help="Component to install"),
    dry_run: bool = typer.Option(False, "--dry-run", "-n", help="Validate only, change nothing"),
    version: Optional[str] = typer.Option(None, "--version", help="Chart or image version"),
    backend: Optional[str] = typer.Option(None, "--backend", help="Storage backend: local-path or nfs (default: stack file, then local-path)"),
    nfs_server: Optional[str] = typer.Option(None, "--nfs-server", help="NFS server (nfs backend)"),
    nfs_path: Optional[str] = typer.Option(None, "--nfs-path", help="NFS export path (nfs backend)"),
    config: Optional[str] = ConfigOption,
    verbose: bool = VerboseOption,
):
    """Install one component after checking its dependencies."""
    opts = InstallOptions(
        dry_run=dry_run,
        version=version,
        backend=backend,
        nfs_server=nfs_server,
        nfs_path=nfs_path,
    )
    try:
        with _cancellable() as cancel:
            reconciler = _build_reconciler(config, verbose, cancel)
            result = reconciler.reconcile(name, opts)
    except FoundryError as exc:
        _fail(exc)
    _echo_result(result)


@component_app.command("list")
def component_list():
    """List the components this build knows about."""
    registry = build_default_registry()
    for name in sorted(registry.list()):
        component = registry.get(name)
        deps = ", ".join(component.dependencies) or "-"
        typer.echo(f"{name:<14} {component.substrate.value:<11} depends on: {deps}")


@component_app.command("status")
def component_status(
    name: Optional[str] = typer.Argument(None, help="Component (default: all)"),
    config: Optional[str] = ConfigOption,
    verbose: bool = VerboseOption,
):
    """Report installed version and health."""
    try:
        reconciler = _build_reconciler(config, verbose, threading.Event())
        names = [name] if name else sorted(reconciler.registry.list())
        if name and not reconciler.registry.has(name):
            raise ComponentNotFoundError(name)
    except FoundryError as exc:
        _fail(exc)

    for n in names:
        try:
            st = reconciler.status(n)
        except FoundryError as exc:
            typer.echo(f"{n:<14} error: {exc}")
            continue
        state = "healthy" if st.healthy else ("installed" if st.installed else "not installed")
        version = st.version or "-"
        typer.echo(f"{n:<14} {state:<13} {version:<12} {st.message}")


# ------------------------------------------------------------------------------
# stack
# ------------------------------------------------------------------------------

@stack_app.command("install")
def stack_install(
    names: Optional[List[str]] = typer.Argument(None, help="Components to install with their dependencies (default: all)"),
    dry_run: bool = typer.Option(False, "--dry-run", "-n", help="Show the order, change nothing"),
    config: Optional[str] = ConfigOption,
    verbose: bool = VerboseOption,
):
    """Install components in dependency order."""
    try:
        with _cancellable() as cancel:
            reconciler = _build_reconciler(config, verbose, cancel)
            wanted = names or sorted(reconciler.registry.list())
            order = resolve_install_order(reconciler.registry, wanted)
            typer.echo(f"Install order: {' -> '.join(order)}")
            if dry_run:
                return

            for n in order:
                component = reconciler.registry.get(n)
                # host services are not re-run once their setup flags are set
                if component.substrate == Substrate.SSH and reconciler.is_installed(n):
                    typer.echo(f"{n}: already installed")
                    continue
                _echo_result(reconciler.reconcile(n, InstallOptions()))
            if not names:
                reconciler.mark_stack_complete()
                typer.echo("stack complete")
    except FoundryError as exc:
        _fail(exc)


@stack_app.command("state")
def stack_state(config: Optional[str] = ConfigOption):
    """Show the persisted setup state."""
    try:
        state = StateStore(find_config(config)).load()
    except FoundryError as exc:
        _fail(exc)

    for flag in type(state).model_fields:
        mark = "x" if getattr(state, flag) else " "
        typer.echo(f"[{mark}] {flag}")
    typer.echo(f"next step: {state.next_step()}")


@stack_app.command("reset-state")
def stack_reset_state(
    config: Optional[str] = ConfigOption,
    yes: bool = typer.Option(False, "--yes", "-y", help="Do not prompt"),
):
    """Clear every setup flag. Installed software is left alone."""
    try:
        path = find_config(config)
    except FoundryError as exc:
        _fail(exc)
    if not yes:
        typer.confirm(f"Reset setup state in {path}?", abort=True)
    try:
        StateStore(path).reset()
    except FoundryError as exc:
        _fail(exc)
    typer.echo("setup state reset")


def main() -> None:
    app()


if __name__ == "__main__":
    main()
