"""
API tests for tenant-scoped projects.
"""

import uuid

import pytest


async def create_project(client, name, **fields):
    resp = await client.post("/projects/", json={"name": name, **fields})
    assert resp.status_code == 201, resp.text
    return resp.json()


class TestProjects:

    @pytest.mark.asyncio
    async def test_create_and_get(self, client, tenant):
        project = await create_project(client, "Billing", code="BIL")

        assert project["tenant_id"] == str(tenant.id)
        assert project["active"] is True

        resp = await client.get(f"/projects/{project['id']}")
        assert resp.status_code == 200
        assert resp.json()["code"] == "BIL"

    @pytest.mark.asyncio
    async def test_duplicate_name_conflicts(self, client):
        await create_project(client, "Billing")

        resp = await client.post("/projects/", json={"name": "Billing"})

        assert resp.status_code == 409
        assert resp.json()["message"] == 'Project with name "Billing" already exists for this tenant'

    @pytest.mark.asyncio
    async def test_unknown_tenant(self, client):
        tenant_id = uuid.uuid4()

        resp = await client.post("/projects/", json={"name": "Nowhere"}, headers={"X-Tenant-ID": str(tenant_id)})

        assert resp.status_code == 400
        assert resp.json()["message"] == f"Tenant with ID {tenant_id} not found"

    @pytest.mark.asyncio
    async def test_update(self, client):
        project = await create_project(client, "Billing")

        resp = await client.patch(f"/projects/{project['id']}", json={"active": False, "code": "B2"})

        assert resp.status_code == 200
        assert resp.json()["active"] is False
        assert resp.json()["code"] == "B2"
        assert resp.json()["name"] == "Billing"

    @pytest.mark.asyncio
    async def test_list_reuses_query_rules(self, client):
        for name in ("Gamma", "Alpha", "Beta"):
            await create_project(client, name)
        await create_project(client, "Archive", active=False)

        resp = await client.get("/projects/", params={"sort": "name:asc", "active": True})
        body = resp.json()
        assert [p["name"] for p in body["data"]] == ["Alpha", "Beta", "Gamma"]
        assert body["total"] == 3

        resp = await client.get("/projects/", params={"sort": "owner:asc", "limit": 2})
        assert resp.json()["total"] == 4
        assert len(resp.json()["data"]) == 2

        resp = await client.get("/projects/", params={"search": "ALP"})
        assert [p["name"] for p in resp.json()["data"]] == ["Alpha"]

    @pytest.mark.asyncio
    async def test_page_beyond_any_offset_is_empty(self, client):
        await create_project(client, "Billing")

        resp = await client.get("/projects/", params={"page": "10000000000000000000", "limit": 1})

        assert resp.status_code == 200
        assert resp.json()["data"] == []
        assert resp.json()["total"] == 1

    @pytest.mark.asyncio
    async def test_delete_cascades_to_tasks(self, client):
        project = await create_project(client, "Short lived")
        resp = await client.post("/tasks/", json={"project_id": project["id"], "name": "Parent"})
        parent = resp.json()
        resp = await client.post(
            "/tasks/",
            json={"project_id": project["id"], "name": "Child", "parent_task_id": parent["id"]},
        )
        assert resp.status_code == 201

        resp = await client.delete(f"/projects/{project['id']}")
        assert resp.status_code == 204

        resp = await client.get("/tasks/", params={"project_id": project["id"]})
        assert resp.json()["total"] == 0

    @pytest.mark.asyncio
    async def test_other_tenant_cannot_see_project(self, client, other_tenant):
        project = await create_project(client, "Private")

        resp = await client.get(f"/projects/{project['id']}", headers={"X-Tenant-ID": str(other_tenant.id)})

        assert resp.status_code == 404


@pytest.mark.asyncio
async def test_health(client):
    resp = await client.get("/health")
    assert resp.json() == {"status": "healthy"}
