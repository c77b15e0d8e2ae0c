from concurrent.futures import ThreadPoolExecutor

import pytest
from fastapi.testclient import TestClient

from mock_vcloud.cli import DEMO_INVENTORY, seed_inventory
from mock_vcloud.daemon import app, store
from orchestrator.models import MEDIA_XML, VAPP_XML, VDC_XML


@pytest.fixture
def client():
    store.clear()
    with TestClient(app) as c:
        yield c
    store.clear()


def create_org_and_vdc(client):
    org = client.post("/orgs", json={"name": "acme"}).json()
    org_id = org["href"].rsplit("/", 1)[-1]
    vdc = client.post(f"/orgs/{org_id}/vdcs", json={"name": "prod"}).json()
    return org_id, vdc["href"].rsplit("/", 1)[-1]


def test_status_counts_inventory(client):
    seed_inventory(client)
    r = client.get("/status")
    assert r.status_code == 200
    assert r.json() == {"status": "ok", "orgs": 1, "vdcs": 2, "entities": 5}


def test_seed_matches_demo_inventory(client):
    created = seed_inventory(client)
    assert created == sum(len(entities) for vdcs in DEMO_INVENTORY.values() for entities in vdcs.values())


def test_create_org_and_vdc(client):
    org_id, vdc_id = create_org_and_vdc(client)
    orgs = client.get("/orgs").json()
    assert [o["name"] for o in orgs] == ["acme"]
    assert orgs[0]["vdcs"]["prod"]["type"] == VDC_XML
    assert client.get(f"/org/{org_id}").json()["name"] == "acme"
    # Negative: duplicates and missing parents
    assert client.post("/orgs", json={"name": "acme"}).status_code == 409
    assert client.post(f"/orgs/{org_id}/vdcs", json={"name": "prod"}).status_code == 409
    assert client.post("/orgs/org-404/vdcs", json={"name": "x"}).status_code == 404
    assert client.post("/orgs", json={"name": ""}).status_code == 422


def test_vdc_lists_resource_entities(client):
    _, vdc_id = create_org_and_vdc(client)
    client.post(f"/vdc/{vdc_id}/entities", json={"name": "web1"})
    client.post(f"/vdc/{vdc_id}/entities", json={"name": "disk1", "type": MEDIA_XML})
    body = client.get(f"/vdc/{vdc_id}").json()
    entities = body["resource_entities"]
    assert entities["web1"]["type"] == VAPP_XML
    assert "/vApp/" in entities["web1"]["href"]
    assert "/media/" in entities["disk1"]["href"]
    assert client.get("/vdc/vdc-404").status_code == 404


def test_entity_validation(client):
    _, vdc_id = create_org_and_vdc(client)
    assert client.post(f"/vdc/{vdc_id}/entities", json={"name": "x", "type": "text/plain"}).status_code == 422
    assert client.post(f"/vdc/{vdc_id}/entities", json={"name": "x", "lag": -1}).status_code == 422
    assert client.post(f"/vdc/{vdc_id}/entities", json={"name": "web1"}).status_code == 201
    assert client.post(f"/vdc/{vdc_id}/entities", json={"name": "web1"}).status_code == 409


def test_lagging_entity_answers_404_until_visible(client):
    _, vdc_id = create_org_and_vdc(client)
    href = client.post(f"/vdc/{vdc_id}/entities", json={"name": "web1", "lag": 2}).json()["href"]
    # already listed in its VDC
    assert "web1" in client.get(f"/vdc/{vdc_id}").json()["resource_entities"]
    assert client.get(href).status_code == 404
    assert client.get(href).status_code == 404
    r = client.get(href)
    assert r.status_code == 200
    assert r.json()["vdc"]["name"] == "prod"


def test_entity_kind_must_match_href(client):
    _, vdc_id = create_org_and_vdc(client)
    href = client.post(f"/vdc/{vdc_id}/entities", json={"name": "disk1", "type": MEDIA_XML}).json()["href"]
    entity_id = href.rsplit("/", 1)[-1]
    assert client.get(f"/media/{entity_id}").status_code == 200
    assert client.get(f"/vApp/{entity_id}").status_code == 404


def test_power_actions_and_delete(client):
    _, vdc_id = create_org_and_vdc(client)
    href = client.post(f"/vdc/{vdc_id}/entities", json={"name": "web1"}).json()["href"]
    vapp_id = href.rsplit("/", 1)[-1]
    for action, expected in [("powerOn", "POWERED_ON"), ("suspend", "SUSPENDED"), ("powerOff", "POWERED_OFF")]:
        r = client.post(f"/vApp/{vapp_id}/{action}")
        assert r.status_code == 200
        assert r.json()["status"] == expected
    assert client.post(f"/vApp/{vapp_id}/reboot").status_code == 400
    assert client.delete(f"/vApp/{vapp_id}").status_code == 204
    assert client.get(href).status_code == 404
    assert client.get(f"/vdc/{vdc_id}").json()["resource_entities"] == {}


def test_concurrent_reads_spend_each_lag_once(client):
    _, vdc_id = create_org_and_vdc(client)
    client.post(f"/vdc/{vdc_id}/entities", json={"name": "web1", "lag": 40})
    entity = next(iter(store.entities.values()))

    with ThreadPoolExecutor(max_workers=8) as pool:
        lagging = list(pool.map(lambda _: store.consume_lag(entity), range(100)))

    assert lagging.count(True) == 40
    assert entity.lag == 0
