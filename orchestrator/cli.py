"""
This file is the entry point for the 'vcloud-nodes' command-line tool.
Run 'vcloud-nodes --help' in your shell to use the CLI.
"""
import json
import logging
import re
from pathlib import Path
from typing import Callable, Iterable, List, Optional

import httpx
import typer
from rich.console import Console
from rich.table import Table

from common.app_setup import print_error, setup_logging
from common.config import DiscoveryConfig, load_config
from connectors.connections_manager import close_sessions, get_session
from connectors.mock_vcloud_connector import MockNodeFetcher, MockVCloudClient

from .location import FindLocationForResource, locations_from_inventory
from .models import ComputeMetadata, NodeMetadata
from .strategy import ListNodesStrategy

app = typer.Typer(add_completion=False, help="List the nodes (vApps) of a vCloud inventory.")
console = Console()


@app.callback()
def main(
    ctx: typer.Context,
    config: Optional[Path] = typer.Option(None, "--config", "-c", exists=True, dir_okay=False, help="YAML or JSON settings file"),
    endpoint: Optional[str] = typer.Option(None, help="vCloud API base URL"),
    user: Optional[str] = typer.Option(None, help="API user"),
    password: Optional[str] = typer.Option(None, help="API password"),
    blacklist: Optional[str] = typer.Option(None, help="Comma-separated vApp names to ignore"),
    log_file: Optional[str] = typer.Option(None, help="Log file (default ~/.vcloud_nodes/log.txt)"),
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Log at DEBUG level"),
):
    setup_logging(app_name="vcloud_nodes", loglevel=logging.DEBUG if verbose else logging.INFO, logfile=log_file)
    try:
        settings = load_config(config)
    except ValueError as exc:
        print_error(str(exc))
        raise typer.Exit(2)
    overrides = {"endpoint": endpoint, "user": user, "password": password, "blacklist_nodes": blacklist}
    ctx.obj = settings.model_copy(update={k: v for k, v in overrides.items() if v is not None})
    ctx.call_on_close(close_sessions)


def build_strategy(settings: DiscoveryConfig) -> ListNodesStrategy:
    """Wire a ListNodesStrategy to the endpoint described by ``settings``."""
    session = get_session(settings.hypervisor_type, settings.endpoint, settings.user, settings.password, settings.timeout)
    client = MockVCloudClient(session)
    find_location = FindLocationForResource(locations_from_inventory(client, provider_id=settings.endpoint))
    return ListNodesStrategy(
        client,
        MockNodeFetcher(session, find_location),
        find_location,
        blacklist_nodes=settings.blacklist_nodes,
        logger=logging.getLogger("orchestrator.strategy"),
    )


def name_predicate(names: Iterable[str], pattern: Optional[str]) -> Callable[[ComputeMetadata], bool]:
    """Match on exact names and/or a regex searched in the name. No criteria matches everything."""
    wanted = set(names)
    regex = re.compile(pattern) if pattern else None

    def predicate(node: ComputeMetadata) -> bool:
        if not wanted and regex is None:
            return True
        return node.name in wanted or bool(regex and regex.search(node.name))

    return predicate


def _row(node: ComputeMetadata, columns: List[str]) -> List[str]:
    values = {
        "name": node.name,
        "id": node.id,
        "location": node.location.description if node.location else "",
    }
    if isinstance(node, NodeMetadata):
        values["state"] = node.state.value
        values["addresses"] = ", ".join(node.public_addresses + node.private_addresses)
    return [values.get(column, "") for column in columns]


def _render(nodes: List[ComputeMetadata], as_json: bool, columns: List[str]) -> None:
    nodes = sorted(nodes, key=lambda n: (n.name, n.id))
    if as_json:
        typer.echo(json.dumps([n.model_dump(mode="json") for n in nodes], indent=2))
        return
    table = Table(*columns)
    for node in nodes:
        table.add_row(*_row(node, columns))
    console.print(table)
    console.print(f"{len(nodes)} node(s)")


@app.command("list")
def list_nodes(ctx: typer.Context, as_json: bool = typer.Option(False, "--json", help="Print JSON instead of a table")):
    """List every node without fetching its details."""
    try:
        nodes = build_strategy(ctx.obj).list_nodes()
    except (httpx.HTTPError, ConnectionError, LookupError, ValueError) as exc:
        print_error(f"Listing nodes failed: {exc}")
        raise typer.Exit(1)
    _render(list(nodes), as_json, ["name", "id", "location"])


@app.command("details")
def list_details(
    ctx: typer.Context,
    name: List[str] = typer.Option([], "--name", "-n", help="Node name to include (repeatable)"),
    pattern: Optional[str] = typer.Option(None, help="Regular expression searched in node names"),
    as_json: bool = typer.Option(False, "--json", help="Print JSON instead of a table"),
):
    """Fetch full details for the nodes whose name matches."""
    try:
        predicate = name_predicate(name, pattern)
    except re.error as exc:
        print_error(f"Invalid pattern {pattern!r}: {exc}")
        raise typer.Exit(2)
    try:
        nodes = build_strategy(ctx.obj).list_details_on_nodes_matching(predicate)
    except (httpx.HTTPError, ConnectionError, LookupError, ValueError) as exc:
        print_error(f"Fetching node details failed: {exc}")
        raise typer.Exit(1)
    _render(list(nodes), as_json, ["name", "id", "location", "state", "addresses"])


if __name__ == "__main__":
    app()
