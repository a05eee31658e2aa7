"""Task API tests.

Learn: Tests cover:
1. Create with defaults, list with filters, read
2. Creator-only update / delete on top of the route's role check
3. Assign / unassign (OWNER/ADMIN only, assignee must be a member)
4. Tasks are scoped to their project
"""

import uuid

import pytest
import pytest_asyncio


def _tasks_url(project_id: str, suffix: str = "") -> str:
    return f"/api/v1/projects/{project_id}/tasks{suffix}"


@pytest_asyncio.fixture()
async def team(signup, make_project, add_member):
    """An OWNER and a MEMBER sharing one project."""
    owner = await signup(name="Owner")
    member = await signup(name="Member")
    project = await make_project(owner)
    r = await add_member(project["id"], owner, member)
    assert r.status_code == 201
    return {"owner": owner, "member": member, "project": project}


async def _create(client, project_id, actor, **fields):
    r = await client.post(
        _tasks_url(project_id), json={"title": "A task", **fields}, headers=actor["headers"]
    )
    assert r.status_code == 201, r.text
    return r.json()


# ═══════════════════════════════════════════════════════════
# Create / read
# ═══════════════════════════════════════════════════════════


@pytest.mark.asyncio
async def test_create_task_defaults(client, team):
    pid = team["project"]["id"]
    task = await _create(client, pid, team["member"], title="Write tests")
    assert task["title"] == "Write tests"
    assert task["status"] == "TODO"
    assert task["priority"] == "MEDIUM"
    assert task["description"] == ""
    assert task["project_id"] == pid
    assert task["created_by_id"] == team["member"]["id"]
    assert task["assigned_to_id"] is None


@pytest.mark.asyncio
async def test_create_task_empty_title(client, team):
    r = await client.post(
        _tasks_url(team["project"]["id"]),
        json={"title": ""},
        headers=team["owner"]["headers"],
    )
    assert r.status_code == 400


@pytest.mark.asyncio
async def test_create_task_assignee_must_be_member(client, team, signup):
    outsider = await signup()
    r = await client.post(
        _tasks_url(team["project"]["id"]),
        json={"title": "Nope", "assigned_to_id": outsider["id"]},
        headers=team["owner"]["headers"],
    )
    assert r.status_code == 400
    assert r.json()["message"] == "Assignee must be a member of this project"


@pytest.mark.asyncio
async def test_outsider_cannot_see_tasks(client, team, signup):
    outsider = await signup()
    r = await client.get(_tasks_url(team["project"]["id"]), headers=outsider["headers"])
    assert r.status_code == 403


@pytest.mark.asyncio
async def test_list_tasks_with_filters(client, team):
    pid = team["project"]["id"]
    owner, member = team["owner"], team["member"]
    a = await _create(client, pid, owner, title="A", priority="HIGH")
    b = await _create(client, pid, owner, title="B", status="DONE", assigned_to_id=member["id"])
    c = await _create(client, pid, member, title="C")

    r = await client.get(_tasks_url(pid), headers=member["headers"])
    assert r.status_code == 200
    assert {t["id"] for t in r.json()} == {a["id"], b["id"], c["id"]}

    r = await client.get(_tasks_url(pid), params={"priority": "HIGH"}, headers=member["headers"])
    assert [t["id"] for t in r.json()] == [a["id"]]

    r = await client.get(_tasks_url(pid), params={"status": "DONE"}, headers=member["headers"])
    assert [t["id"] for t in r.json()] == [b["id"]]

    r = await client.get(
        _tasks_url(pid), params={"assigned_to_id": member["id"]}, headers=member["headers"]
    )
    assert [t["id"] for t in r.json()] == [b["id"]]


@pytest.mark.asyncio
async def test_task_from_other_project_is_404(client, team, make_project):
    owner = team["owner"]
    other = await make_project(owner, name="Other")
    task = await _create(client, other["id"], owner)

    r = await client.get(
        _tasks_url(team["project"]["id"], f"/{task['id']}"), headers=owner["headers"]
    )
    assert r.status_code == 404
    assert r.json()["message"] == "Task not found"


@pytest.mark.asyncio
async def test_get_unknown_task(client, team):
    r = await client.get(
        _tasks_url(team["project"]["id"], f"/{uuid.uuid4()}"),
        headers=team["owner"]["headers"],
    )
    assert r.status_code == 404


# ═══════════════════════════════════════════════════════════
# Update / delete
# ═══════════════════════════════════════════════════════════


@pytest.mark.asyncio
async def test_creator_updates_task(client, team):
    pid = team["project"]["id"]
    member = team["member"]
    task = await _create(client, pid, member, title="Draft", description="keep me")

    r = await client.put(
        _tasks_url(pid, f"/{task['id']}"),
        json={"status": "IN_PROGRESS", "title": "Draft v2"},
        headers=member["headers"],
    )
    assert r.status_code == 200
    body = r.json()
    assert body["status"] == "IN_PROGRESS"
    assert body["title"] == "Draft v2"
    assert body["description"] == "keep me"


@pytest.mark.asyncio
async def test_non_creator_cannot_update(client, team):
    pid = team["project"]["id"]
    task = await _create(client, pid, team["member"])

    r = await client.put(
        _tasks_url(pid, f"/{task['id']}"),
        json={"title": "Taken over"},
        headers=team["owner"]["headers"],
    )
    assert r.status_code == 403
    assert r.json()["message"] == "Not allowed to update this task"


@pytest.mark.asyncio
async def test_update_task_blank_title(client, team):
    pid = team["project"]["id"]
    member = team["member"]
    task = await _create(client, pid, member, title="Keep this")

    r = await client.put(
        _tasks_url(pid, f"/{task['id']}"),
        json={"title": "   "},
        headers=member["headers"],
    )
    assert r.status_code == 400
    assert r.json()["message"] == "title cannot be empty"

    r = await client.get(_tasks_url(pid, f"/{task['id']}"), headers=member["headers"])
    assert r.json()["title"] == "Keep this"


@pytest.mark.asyncio
async def test_update_task_strips_title(client, team):
    pid = team["project"]["id"]
    member = team["member"]
    task = await _create(client, pid, member)

    r = await client.put(
        _tasks_url(pid, f"/{task['id']}"),
        json={"title": "  Tidy  "},
        headers=member["headers"],
    )
    assert r.status_code == 200
    assert r.json()["title"] == "Tidy"


@pytest.mark.asyncio
async def test_delete_task(client, team):
    pid = team["project"]["id"]
    owner = team["owner"]
    task = await _create(client, pid, owner)

    r = await client.delete(_tasks_url(pid, f"/{task['id']}"), headers=owner["headers"])
    assert r.status_code == 204

    r = await client.get(_tasks_url(pid, f"/{task['id']}"), headers=owner["headers"])
    assert r.status_code == 404


@pytest.mark.asyncio
async def test_member_cannot_delete_even_own_task(client, team):
    pid = team["project"]["id"]
    member = team["member"]
    task = await _create(client, pid, member)

    r = await client.delete(_tasks_url(pid, f"/{task['id']}"), headers=member["headers"])
    assert r.status_code == 403
    assert r.json()["message"] == "Insufficient permissions"


@pytest.mark.asyncio
async def test_owner_cannot_delete_someone_elses_task(client, team):
    pid = team["project"]["id"]
    task = await _create(client, pid, team["member"])

    r = await client.delete(
        _tasks_url(pid, f"/{task['id']}"), headers=team["owner"]["headers"]
    )
    assert r.status_code == 403
    assert r.json()["message"] == "Not allowed to delete this task"


# ═══════════════════════════════════════════════════════════
# Assignment
# ═══════════════════════════════════════════════════════════


@pytest.mark.asyncio
async def test_assign_and_unassign(client, team):
    pid = team["project"]["id"]
    owner, member = team["owner"], team["member"]
    task = await _create(client, pid, owner)

    r = await client.patch(
        _tasks_url(pid, f"/{task['id']}/assign"),
        json={"user_id": member["id"]},
        headers=owner["headers"],
    )
    assert r.status_code == 200
    assert r.json()["assigned_to_id"] == member["id"]

    r = await client.patch(
        _tasks_url(pid, f"/{task['id']}/unassign"), headers=owner["headers"]
    )
    assert r.status_code == 200
    assert r.json()["assigned_to_id"] is None


@pytest.mark.asyncio
async def test_member_cannot_assign(client, team):
    pid = team["project"]["id"]
    member = team["member"]
    task = await _create(client, pid, member)

    r = await client.patch(
        _tasks_url(pid, f"/{task['id']}/assign"),
        json={"user_id": member["id"]},
        headers=member["headers"],
    )
    assert r.status_code == 403


@pytest.mark.asyncio
async def test_assign_to_outsider(client, team, signup):
    pid = team["project"]["id"]
    owner = team["owner"]
    outsider = await signup()
    task = await _create(client, pid, owner)

    r = await client.patch(
        _tasks_url(pid, f"/{task['id']}/assign"),
        json={"user_id": outsider["id"]},
        headers=owner["headers"],
    )
    assert r.status_code == 400
    assert r.json()["message"] == "Assignee must be a member of this project"
