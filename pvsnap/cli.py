from datetime import datetime
from pathlib import Path

import click
import yaml
from rich.console import Console
from rich.markup import escape
from rich.table import Table

from pvsnap.cluster import read_persistent_volume
from pvsnap.config import load_config, save_global_config
from pvsnap.coordinator import VolumeSnapshotter
from pvsnap.errors import PvsnapError
from pvsnap.log import LOGS_FILE, read_logs


def _parse_tags(values):
    tags = {}
    for item in values:
        if "=" not in item:
            raise click.BadParameter(f"expected KEY=VALUE, got {item!r}", param_hint="--tag")
        key, value = item.split("=", 1)
        tags[key.strip()] = value.strip()
    return tags


def _load_pv(source, kubeconfig=None):
    """Read a PV from a manifest file, or from the cluster when source isn't a file."""
    path = Path(source)
    if path.exists():
        try:
            data = yaml.safe_load(path.read_text())
        except yaml.YAMLError as e:
            raise click.ClickException(f"Invalid YAML in {path}: {e}")
        return data
    return read_persistent_volume(source, kubeconfig)


def _snapshotter(ctx):
    snapshotter = VolumeSnapshotter()
    snapshotter.init(ctx.obj["config"])
    return snapshotter


def _fail(console, e):
    console.print(f"[red]{escape(str(e))}[/red]")
    raise SystemExit(1)


@click.group()
@click.version_option(version="0.1.0")
@click.option("--options", "options_file", type=click.Path(dir_okay=False),
              help="KEY=VALUE options file, same keys the orchestrator passes in.")
@click.option("--namespace", default=None, help="Longhorn system namespace.")
@click.option("--kubeconfig", default=None, help="Kubeconfig path. In-cluster credentials otherwise.")
@click.pass_context
def main(ctx, options_file, namespace, kubeconfig):
    """pvsnap: Longhorn volume-snapshot coordinator."""
    console = Console()
    try:
        config = load_config(options_file, {"namespace": namespace, "kubeconfig": kubeconfig})
    except PvsnapError as e:
        _fail(console, e)
    config.setdefault("audit_log", str(LOGS_FILE))
    ctx.obj = {"config": config, "console": console}


@main.command("volume-id")
@click.argument("pv")
@click.pass_context
def volume_id(ctx, pv):
    """Print the volume id for a PersistentVolume (manifest file or PV name)."""
    console = ctx.obj["console"]
    try:
        result = VolumeSnapshotter().get_volume_id(_load_pv(pv, ctx.obj["config"].get("kubeconfig")))
    except PvsnapError as e:
        _fail(console, e)
    if not result:
        console.print("[dim]Not a snapshottable volume (no name or storage class).[/dim]")
        return
    click.echo(result)


@main.command()
@click.argument("pv")
@click.argument("volume_id")
@click.option("--source", default=None,
              help="PV recorded at backup time (manifest file or PV name). Defaults to PV itself.")
@click.pass_context
def rewrite(ctx, pv, volume_id, source):
    """Print PV renamed to the volume recorded as VOLUME_ID, as YAML.

    The source PV is registered first, the way a backup would have seen it;
    PV is then rewritten against that record. Without --source, PV registers
    itself and VOLUME_ID must be its own name.

    Example: pvsnap rewrite restored-pv.yaml pvc-0a1b2c --source backup-pv.yaml
    """
    console = ctx.obj["console"]
    kubeconfig = ctx.obj["config"].get("kubeconfig")
    snapshotter = VolumeSnapshotter()
    snapshotter.config = ctx.obj["config"]
    try:
        obj = _load_pv(pv, kubeconfig)
        snapshotter.get_volume_id(_load_pv(source, kubeconfig) if source else obj)
        updated = snapshotter.set_volume_id(obj, volume_id)
    except PvsnapError as e:
        _fail(console, e)
    click.echo(yaml.safe_dump(updated, sort_keys=False), nl=False)


@main.command()
@click.argument("volume")
@click.option("--zone", default="", help="Availability zone recorded with the snapshot.")
@click.option("--tag", "tags", multiple=True, help="Snapshot tag as KEY=VALUE. Repeatable.")
@click.pass_context
def snapshot(ctx, volume, zone, tags):
    """Snapshot a Longhorn volume and print the snapshot id."""
    console = ctx.obj["console"]
    tag_map = _parse_tags(tags)
    try:
        snapshot_id = _snapshotter(ctx).create_snapshot(volume, zone, tag_map)
    except PvsnapError as e:
        _fail(console, e)
    console.print(f"[green]Created[/green] [bold cyan]{snapshot_id}[/bold cyan] for {volume}")


@main.command()
@click.argument("snapshot_id")
@click.pass_context
def delete(ctx, snapshot_id):
    """Delete a snapshot from Longhorn."""
    console = ctx.obj["console"]
    try:
        _snapshotter(ctx).delete_snapshot(snapshot_id)
    except PvsnapError as e:
        _fail(console, e)
    console.print(f"  [red]Deleted[/red] {snapshot_id}")


@main.command("volume-info")
@click.argument("volume")
@click.option("--zone", default="", help="Availability zone.")
@click.pass_context
def volume_info(ctx, volume, zone):
    """Show type, IOPS and readiness for a Longhorn volume."""
    console = ctx.obj["console"]
    try:
        snapshotter = _snapshotter(ctx)
        volume_type, iops = snapshotter.get_volume_info(volume, zone)
        ready = snapshotter.is_volume_ready(volume, zone)
    except PvsnapError as e:
        _fail(console, e)

    table = Table(title=volume)
    table.add_column("Type", style="bold")
    table.add_column("IOPS", style="dim")
    table.add_column("Ready", style="bold")
    table.add_row(volume_type, "-" if iops is None else str(iops),
                  "[green]yes[/green]" if ready else "[red]no[/red]")
    console.print(table)


@main.command()
@click.option("-n", "--limit", default=20, help="Number of log entries to show.")
@click.pass_context
def logs(ctx, limit):
    """Show the snapshot audit log."""
    console = ctx.obj["console"]
    entries = read_logs(ctx.obj["config"].get("audit_log"))

    if not entries:
        console.print("[dim]No logs yet.[/dim]")
        return

    table = Table(title="Snapshot Log")
    table.add_column("Time", style="dim")
    table.add_column("Event", style="bold")
    table.add_column("Volume")
    table.add_column("Snapshot", style="cyan")
    table.add_column("Result", style="bold")

    for entry in entries[-limit:]:
        ts = entry.get("timestamp", "")
        if ts:
            try:
                ts = datetime.fromisoformat(ts).strftime("%m-%d %H:%M")
            except ValueError:
                pass
        result = entry.get("result", "")
        result_style = {
            "durable": "[green]durable[/green]",
            "deleted": "[green]deleted[/green]",
            "failed": "[red]failed[/red]",
            "error": "[red]error[/red]",
        }.get(result, result)
        table.add_row(
            ts,
            entry.get("event", ""),
            entry.get("volume_id", ""),
            entry.get("snapshot_id", ""),
            result_style,
        )

    console.print(table)


@main.command("config")
@click.argument("key")
@click.argument("value")
def config_cmd(key, value):
    """Save a default option to ~/.pvsnap/config.json.

    Example: pvsnap config namespace longhorn-system
    """
    save_global_config({key.lower(): value})
    click.echo(f"Saved {key.lower()} to ~/.pvsnap/config.json")
