"""
Shared helpers for the simple-quiz examples.

Checks the backend, hands out anonymous sessions and walks the two-phase
signup so each example can focus on its own flow.
"""

import sys
import uuid

import httpx

BASE = "http://localhost:8000"


def check_backend() -> None:
    """Verify the backend is reachable and its database answers."""
    try:
        resp = httpx.get(f"{BASE}/health", timeout=5)
    except httpx.ConnectError:
        print(f"ERROR: Backend not reachable at {BASE}")
        print("Start it with:  uvicorn simplequiz.main:app --reload --port 8000")
        sys.exit(1)

    health = resp.json()
    print("Backend health:")
    print(f"  Database: {'✓' if health['database'] == 'ok' else '✗'}")
    if health["database"] != "ok":
        print("\nERROR: the database is not reachable. Check SIMPLEQUIZ_DATABASE_URL.")
        sys.exit(1)


def new_session() -> httpx.Client:
    """Issue an anonymous session and return a client that sends it."""
    resp = httpx.get(f"{BASE}/auth/session_id", timeout=10)
    resp.raise_for_status()
    token = resp.json()["token"]
    print(f"  Session: {token[:8]}... (anonymous)")
    return httpx.Client(base_url=BASE, timeout=10, headers={"Authorization": token})


def register(client: httpx.Client, password: str = "demo-password-123") -> str:
    """Pre-signup a fresh user and confirm it on the client's session.

    The confirmation link is mailed; with no SMTP host configured the
    backend logs the mail instead (event "mail.logged"), so paste the
    token from the server log when asked.
    """
    run_id = uuid.uuid4().hex[:6]
    user_id = f"demo_{run_id}"
    resp = client.post("/auth/pre_signup", json={
        "user_id": user_id,
        "mail": f"{user_id}@example.com",
        "password": password,
        "user_name": f"Demo {run_id}",
    })
    if resp.status_code != 200:
        print(f"ERROR: pre-signup failed: {resp.status_code} {resp.text}")
        sys.exit(1)

    token = input("  Confirmation token from the mail (server log): ").strip()
    resp = client.post("/auth/signup", json={"token": token})
    if resp.status_code != 200:
        print(f"ERROR: signup failed: {resp.status_code} {resp.text}")
        sys.exit(1)
    print(f"  Registered as {user_id}")
    return user_id
