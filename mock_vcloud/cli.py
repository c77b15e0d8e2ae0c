"""
This file is the entry point for the 'mockvcloud' command-line tool.
Run 'mockvcloud' in your shell to use the CLI.
"""
import json
import subprocess
import sys

import httpx
import psutil
import typer
from rich.console import Console
from rich.table import Table

from common.app_setup import print_and_log, print_error, setup_logging
from orchestrator.models import MEDIA_XML, VAPP_XML, VAPPTEMPLATE_XML

DAEMON_MODULE = "mock_vcloud.daemon"

app = typer.Typer(add_completion=False, help="Manage mock vCloud daemons.")

# Demo inventory created by `seed`: org -> vdc -> [(entity name, media type, lag)]
DEMO_INVENTORY = {
    "acme": {
        "acme-prod": [("web1", VAPP_XML, 0), ("web2", VAPP_XML, 0), ("disk1", MEDIA_XML, 0)],
        "acme-dev": [("build", VAPP_XML, 1), ("centos-template", VAPPTEMPLATE_XML, 0)],
    },
}


@app.callback()
def main():
    setup_logging(app_name="mockvcloud", daemon=False)


@app.command()
def start_server(port: int = typer.Option(None, help="Port to run the server on (auto if not set)")):
    """Start a new mock vCloud server (daemon) in the background."""
    cmd = [sys.executable, '-m', DAEMON_MODULE, '--port', str(port or 0)]
    try:
        proc = subprocess.Popen(cmd, stdout=subprocess.PIPE, stderr=subprocess.DEVNULL, text=True, close_fds=True)
        selected_port = None
        assert proc.stdout is not None
        # Read lines until we get the port info or process exits
        for _ in range(10):
            line = proc.stdout.readline()
            if not line:
                break
            try:
                msg = json.loads(line)
            except json.JSONDecodeError:
                continue
            if msg.get("event") in ("port_selected", "port_used"):
                selected_port = int(msg["port"])
                break
        print_and_log(f"Started mockvcloud daemon with PID {proc.pid} on port {selected_port or port or 'auto'}.")
    except OSError as e:
        print_error(f"Failed to start mockvcloud daemon: {e}")


def _daemon_processes():
    """Yield (process, listening ports) for every running mock vCloud daemon."""
    for proc in psutil.process_iter(['pid', 'cmdline']):
        cmdline = proc.info['cmdline'] or []
        if DAEMON_MODULE not in cmdline:
            continue
        try:
            ports = sorted(c.laddr.port for c in proc.net_connections(kind='inet') if c.status == psutil.CONN_LISTEN)
        except (psutil.NoSuchProcess, psutil.AccessDenied):
            ports = []
        yield proc, ports


@app.command()
def list_servers():
    """List running mock vCloud daemons and their listening ports."""
    table = Table("PID", "Ports", "Command")
    for proc, ports in _daemon_processes():
        table.add_row(str(proc.pid), ", ".join(map(str, ports)) or "-", " ".join(proc.info['cmdline']))
    if not table.row_count:
        print_and_log("No running mockvcloud daemons found.")
        return
    Console().print(table)


@app.command()
def stop_server(port: int = typer.Argument(..., help="Port of the server")):
    """Ask the server on localhost:PORT to shut down through its /shutdown endpoint."""
    try:
        httpx.post(f"http://127.0.0.1:{port}/shutdown", timeout=5).raise_for_status()
    except httpx.HTTPError as e:
        print_error(f"Error contacting server at 127.0.0.1:{port}: {e}")
        return
    print_and_log(f"Server at 127.0.0.1:{port} is shutting down.")


@app.command()
def kill_server(pid: int = typer.Argument(..., help="PID of the server process to kill")):
    """Terminate a daemon by PID. Only processes running the mock vCloud daemon are touched."""
    try:
        proc = psutil.Process(pid)
        if DAEMON_MODULE not in proc.cmdline():
            print_error(f"Refusing to kill PID {pid}: not a mockvcloud daemon")
            return
        proc.terminate()
    except psutil.Error as e:
        print_error(f"Failed to kill process {pid}: {e}")
        return
    print_and_log(f"Sent SIGTERM to process {pid}.")


def seed_inventory(client: httpx.Client, inventory: dict = DEMO_INVENTORY) -> int:
    """Create ``inventory`` through the REST API. Returns the number of entities created."""
    created = 0
    for org_name, vdcs in inventory.items():
        org = client.post("/orgs", json={"name": org_name})
        org.raise_for_status()
        org_id = org.json()["href"].rsplit("/", 1)[-1]
        for vdc_name, entities in vdcs.items():
            vdc = client.post(f"/orgs/{org_id}/vdcs", json={"name": vdc_name})
            vdc.raise_for_status()
            vdc_id = vdc.json()["href"].rsplit("/", 1)[-1]
            for name, media_type, lag in entities:
                r = client.post(f"/vdc/{vdc_id}/entities", json={"name": name, "type": media_type, "lag": lag})
                r.raise_for_status()
                created += 1
    return created


@app.command()
def seed(port: int = typer.Argument(..., help="Port of the server")):
    """Load a small demo inventory (one org, two VDCs) into a running server."""
    try:
        with httpx.Client(base_url=f"http://127.0.0.1:{port}", timeout=5) as client:
            created = seed_inventory(client)
    except httpx.HTTPError as e:
        print_error(f"Seeding server at 127.0.0.1:{port} failed: {e}")
        raise typer.Exit(1)
    print_and_log(f"Seeded {created} entities into 127.0.0.1:{port}.")


if __name__ == "__main__":
    app()
