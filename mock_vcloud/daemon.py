"""
mock_vcloud.daemon
------------------
A mock vCloud REST API built with FastAPI.
It keeps an in-memory inventory of organizations, VDCs and the resource
entities inside them (vApps, vApp templates, media), and serves it as JSON.
Intended for local development, testing, and demonstration purposes.

Entities can be created with a ``lag``: the first ``lag`` reads of the entity
href answer 404 even though the entity is already listed in its VDC, the way
a freshly created vApp behaves on a real vCloud director.
"""
import json
import logging
import socket
import threading
from dataclasses import dataclass, field

import typer
import uvicorn
from fastapi import FastAPI, HTTPException, Request
from pydantic import BaseModel, Field

from common.app_setup import setup_logging
from orchestrator.models import MEDIA_XML, ORG_XML, VAPP_XML, VAPPTEMPLATE_XML, VDC_XML

logger = logging.getLogger("mock_vcloud.daemon")

# URL segment used in entity hrefs, per media type
ENTITY_KINDS = {
    VAPP_XML: "vApp",
    VAPPTEMPLATE_XML: "vAppTemplate",
    MEDIA_XML: "media",
}
KIND_TYPES = {kind: media_type for media_type, kind in ENTITY_KINDS.items()}

VAPP_ACTIONS = {
    "powerOn": "POWERED_ON",
    "powerOff": "POWERED_OFF",
    "suspend": "SUSPENDED",
}


class NameModel(BaseModel):
    name: str = Field(..., min_length=1)


class EntityModel(NameModel):
    type: str = Field(default=VAPP_XML)
    lag: int = Field(default=0, ge=0, description="Detail reads answered with 404 before the entity shows up")
    status: str = Field(default="POWERED_OFF")
    ip_addresses: list[str] = Field(default_factory=list)


@dataclass
class OrgRecord:
    id: str
    name: str
    vdc_ids: list[str] = field(default_factory=list)


@dataclass
class VdcRecord:
    id: str
    name: str
    org_id: str
    entity_ids: list[str] = field(default_factory=list)


@dataclass
class EntityRecord:
    id: str
    name: str
    type: str
    vdc_id: str
    status: str
    lag: int = 0
    ip_addresses: list[str] = field(default_factory=list)

    @property
    def kind(self) -> str:
        return ENTITY_KINDS[self.type]


@dataclass
class MockInventory:
    """In-memory store behind the API."""

    orgs: dict[str, OrgRecord] = field(default_factory=dict)
    vdcs: dict[str, VdcRecord] = field(default_factory=dict)
    entities: dict[str, EntityRecord] = field(default_factory=dict)
    lock: threading.Lock = field(default_factory=threading.Lock, repr=False, compare=False)

    def clear(self) -> None:
        self.orgs.clear()
        self.vdcs.clear()
        self.entities.clear()

    def next_id(self, prefix: str, existing: dict) -> str:
        """Generate ids like org-1, vdc-1, vapp-1 ... skipping taken ones."""
        i = 1
        while True:
            candidate = f"{prefix}-{i}"
            if candidate not in existing:
                return candidate
            i += 1

    def consume_lag(self, entity: EntityRecord) -> bool:
        """Spend one lagging read of ``entity``. True while the entity must still answer 404."""
        with self.lock:
            if entity.lag <= 0:
                return False
            entity.lag -= 1
            return True


store = MockInventory()
app = FastAPI(title="mock vCloud")


def _href(request: Request, *parts: str) -> str:
    base = str(request.base_url).rstrip("/")
    return "/".join([base, *parts])


def _vdc_ref(request: Request, vdc: VdcRecord) -> dict:
    return {"href": _href(request, "vdc", vdc.id), "name": vdc.name, "type": VDC_XML}


def _entity_ref(request: Request, entity: EntityRecord) -> dict:
    return {"href": _href(request, entity.kind, entity.id), "name": entity.name, "type": entity.type}


def _org_body(request: Request, org: OrgRecord) -> dict:
    vdcs = [store.vdcs[vdc_id] for vdc_id in org.vdc_ids]
    return {
        "href": _href(request, "org", org.id),
        "name": org.name,
        "type": ORG_XML,
        "vdcs": {vdc.name: _vdc_ref(request, vdc) for vdc in vdcs},
    }


def get_server():
    # Helper to get the running server instance
    return getattr(app.state, "uvicorn_server", None)


@app.post("/shutdown")
def shutdown():
    """Shutdown the server gracefully."""
    logger.info("Shutdown requested via /shutdown endpoint.")
    server = get_server()
    if server:
        server.should_exit = True
    return {"message": "Server shutting down"}


@app.get("/status")
def status():
    """Health/status endpoint for the mock vCloud daemon."""
    server = get_server()
    state = "shutting_down" if server and server.should_exit else "ok"
    return {
        "status": state,
        "orgs": len(store.orgs),
        "vdcs": len(store.vdcs),
        "entities": len(store.entities),
    }


@app.get("/orgs")
def list_orgs(request: Request) -> list[dict]:
    """List every organization with its VDC references."""
    logger.info("Listing %d orgs", len(store.orgs))
    return [_org_body(request, org) for org in store.orgs.values()]


@app.post("/orgs", status_code=201)
def create_org(request: Request, body: NameModel) -> dict:
    with store.lock:
        if any(org.name == body.name for org in store.orgs.values()):
            logger.warning("Duplicate org name: %r", body.name)
            raise HTTPException(status_code=409, detail="Org with this name already exists")
        org = OrgRecord(id=store.next_id("org", store.orgs), name=body.name)
        store.orgs[org.id] = org
    logger.info("Created org: %s (%s)", org.name, org.id)
    return _org_body(request, org)


@app.get("/org/{org_id}")
def get_org(request: Request, org_id: str) -> dict:
    org = store.orgs.get(org_id)
    if not org:
        raise HTTPException(status_code=404, detail="Org not found")
    return _org_body(request, org)


@app.post("/orgs/{org_id}/vdcs", status_code=201)
def create_vdc(request: Request, org_id: str, body: NameModel) -> dict:
    org = store.orgs.get(org_id)
    if not org:
        raise HTTPException(status_code=404, detail="Org not found")
    with store.lock:
        if any(store.vdcs[vdc_id].name == body.name for vdc_id in org.vdc_ids):
            raise HTTPException(status_code=409, detail="VDC with this name already exists in org")
        vdc = VdcRecord(id=store.next_id("vdc", store.vdcs), name=body.name, org_id=org_id)
        store.vdcs[vdc.id] = vdc
        org.vdc_ids.append(vdc.id)
    logger.info("Created vdc: %s (%s) in org %s", vdc.name, vdc.id, org.name)
    return _vdc_ref(request, vdc)


@app.get("/vdc/{vdc_id}")
def get_vdc(request: Request, vdc_id: str) -> dict:
    """Return a VDC and its resource entities keyed by name."""
    vdc = store.vdcs.get(vdc_id)
    if not vdc:
        logger.warning("VDC not found: %s", vdc_id)
        raise HTTPException(status_code=404, detail="VDC not found")
    entities = [store.entities[entity_id] for entity_id in vdc.entity_ids]
    return {
        **_vdc_ref(request, vdc),
        "resource_entities": {entity.name: _entity_ref(request, entity) for entity in entities},
    }


@app.post("/vdc/{vdc_id}/entities", status_code=201)
def create_entity(request: Request, vdc_id: str, body: EntityModel) -> dict:
    vdc = store.vdcs.get(vdc_id)
    if not vdc:
        raise HTTPException(status_code=404, detail="VDC not found")
    if body.type not in ENTITY_KINDS:
        raise HTTPException(status_code=422, detail=f"Unsupported entity type: {body.type}")
    prefix = ENTITY_KINDS[body.type].lower()
    with store.lock:
        if any(store.entities[entity_id].name == body.name for entity_id in vdc.entity_ids):
            raise HTTPException(status_code=409, detail="Entity with this name already exists in vdc")
        entity = EntityRecord(
            id=store.next_id(prefix, store.entities),
            name=body.name,
            type=body.type,
            vdc_id=vdc_id,
            status=body.status,
            lag=body.lag,
            ip_addresses=list(body.ip_addresses),
        )
        store.entities[entity.id] = entity
        vdc.entity_ids.append(entity.id)
    logger.info("Created %s: %s (%s) in vdc %s, lag %d", entity.kind, entity.name, entity.id, vdc.name, entity.lag)
    return _entity_ref(request, entity)


def _lookup_entity(kind: str, entity_id: str) -> EntityRecord:
    entity = store.entities.get(entity_id)
    if entity is None or KIND_TYPES.get(kind) != entity.type:
        raise HTTPException(status_code=404, detail="Entity not found")
    return entity


@app.get("/{kind}/{entity_id}")
def get_entity(request: Request, kind: str, entity_id: str) -> dict:
    """Return one entity; answers 404 while the entity is still lagging."""
    entity = _lookup_entity(kind, entity_id)
    if store.consume_lag(entity):
        logger.info("%s %s not yet visible, %d reads to go", kind, entity_id, entity.lag)
        raise HTTPException(status_code=404, detail="Entity not yet present")
    vdc = store.vdcs[entity.vdc_id]
    return {
        **_entity_ref(request, entity),
        "status": entity.status,
        "vdc": _vdc_ref(request, vdc),
        "ip_addresses": entity.ip_addresses,
    }


@app.delete("/{kind}/{entity_id}", status_code=204)
def delete_entity(kind: str, entity_id: str):
    with store.lock:
        entity = _lookup_entity(kind, entity_id)
        store.vdcs[entity.vdc_id].entity_ids.remove(entity_id)
        del store.entities[entity_id]
    logger.info("Deleted %s: %s", kind, entity_id)


@app.post("/vApp/{vapp_id}/{action}")
def vapp_action(request: Request, vapp_id: str, action: str) -> dict:
    """Change the power state of a vApp (powerOn, powerOff, suspend)."""
    entity = _lookup_entity("vApp", vapp_id)
    if action not in VAPP_ACTIONS:
        raise HTTPException(status_code=400, detail="Invalid action")
    entity.status = VAPP_ACTIONS[action]
    logger.info("vApp %s action '%s' -> status '%s'", vapp_id, action, entity.status)
    return {**_entity_ref(request, entity), "status": entity.status}


app_cli = typer.Typer()


def _claim_port(port: int) -> int:
    """Return ``port`` if it can be bound on localhost, or a free one when ``port`` is 0."""
    with socket.socket(socket.AF_INET, socket.SOCK_STREAM) as s:
        s.bind(('127.0.0.1', port))
        return s.getsockname()[1]


@app_cli.command()
def run(port: int = typer.Option(0, help="Port to run the server on (auto if 0)")):
    """Serve the mock API on localhost. The port in use is announced as a JSON line on stdout."""
    setup_logging(app_name="mock_vcloud", daemon=True)
    try:
        bound = _claim_port(port)
    except OSError:
        logger.error("Port %d is already in use.", port)
        raise typer.Exit(98)  # EADDRINUSE
    print(json.dumps({"event": "port_used" if port else "port_selected", "port": bound}), flush=True)
    server = uvicorn.Server(uvicorn.Config(app, host="127.0.0.1", port=bound, log_level="info"))
    app.state.uvicorn_server = server
    logger.info("Serving mock vCloud on port %d", bound)
    server.run()
    logger.info("Server stopped")


if __name__ == "__main__":
    app_cli()
