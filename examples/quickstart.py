"""
Quickstart: two people sharing one project.

Walks through the core flow against a running server:
  1. Alice and Bob sign up
  2. Alice creates a project (she becomes OWNER)
  3. Alice adds Bob and promotes him to ADMIN
  4. Bob creates a task, Alice assigns it to him
  5. The project's activity feed shows everything that happened

Prerequisites:
  crewboard init-db
  crewboard serve

Usage:
  python examples/quickstart.py
"""

import sys
import uuid

import httpx

BASE = "http://localhost:5000/api/v1"


def check_backend() -> None:
    try:
        resp = httpx.get(f"{BASE}/health", timeout=5)
    except httpx.ConnectError:
        print(f"ERROR: Backend not reachable at {BASE}")
        print("Start it with:  crewboard serve")
        sys.exit(1)

    health = resp.json()
    print("Backend health:")
    print(f"  Database: {health['database']}")
    print(f"  Redis:    {health['redis']}")
    if health["database"] != "ok":
        sys.exit(1)


def signup(name: str) -> dict:
    """Create a throwaway account; returns the user plus its auth header."""
    email = f"{name.lower()}-{uuid.uuid4().hex[:6]}@example.com"
    resp = httpx.post(f"{BASE}/auth/signup", json={
        "email": email,
        "name": name,
        "password": "quickstart-pass",
        "password_confirm": "quickstart-pass",
    })
    assert resp.status_code == 201, f"Signup failed: {resp.text}"
    body = resp.json()
    user = body["data"]["user"]
    print(f"   {name}: {email} ({user['id'][:8]}...)")
    return {**user, "headers": {"Authorization": f"Bearer {body['token']}"}}


def main():
    check_backend()

    # ── Accounts ──────────────────────────────────────────────────
    print("\n1. Signing up...")
    alice = signup("Alice")
    bob = signup("Bob")

    # ── Project ───────────────────────────────────────────────────
    print("\n2. Alice creates a project...")
    resp = httpx.post(f"{BASE}/projects", headers=alice["headers"], json={
        "name": "Task Tracker Alpha",
        "description": "Build the first version of the task tracker",
    })
    assert resp.status_code == 201, f"Failed: {resp.text}"
    project = resp.json()
    pid = project["id"]
    print(f"   Project: {project['name']} ({pid[:8]}...)")

    # ── Members ───────────────────────────────────────────────────
    print("\n3. Alice adds Bob and makes him ADMIN...")
    resp = httpx.post(f"{BASE}/projects/{pid}/members/add",
                      headers=alice["headers"], json={"email": bob["email"]})
    assert resp.status_code == 201, f"Failed: {resp.text}"
    resp = httpx.patch(f"{BASE}/projects/{pid}/members/role/makeAdmin",
                       headers=alice["headers"], json={"user_id": bob["id"]})
    assert resp.status_code == 200, f"Failed: {resp.text}"
    print(f"   Bob is now {resp.json()['role']}")

    # Bob can't touch the OWNER
    resp = httpx.patch(f"{BASE}/projects/{pid}/members/role/remove-admin",
                       headers=bob["headers"], json={"user_id": alice["id"]})
    print(f"   Bob demoting Alice → {resp.status_code}: {resp.json()['message']}")

    # ── Tasks ─────────────────────────────────────────────────────
    print("\n4. Bob creates a task, Alice assigns it...")
    resp = httpx.post(f"{BASE}/projects/{pid}/tasks", headers=bob["headers"], json={
        "title": "Implement authentication",
        "priority": "HIGH",
    })
    assert resp.status_code == 201, f"Failed: {resp.text}"
    task = resp.json()
    resp = httpx.patch(f"{BASE}/projects/{pid}/tasks/{task['id']}/assign",
                       headers=alice["headers"], json={"user_id": bob["id"]})
    assert resp.status_code == 200, f"Failed: {resp.text}"
    print(f"   {task['title']} → assigned to Bob")

    # ── Activity ──────────────────────────────────────────────────
    print("\n5. Activity feed (newest first):")
    resp = httpx.get(f"{BASE}/projects/{pid}/activity", headers=alice["headers"])
    for activity in resp.json():
        print(f"   [{activity['type']}]")

    print("\nDone.")


if __name__ == "__main__":
    main()
