#!/usr/bin/env python3
"""
simple-quiz Quickstart: the whole identity lifecycle in one script.

Anonymous session → room → signup → the room follows the user → a second
visitor can read but not edit → sign out.
Run with: python examples/quickstart.py

Requires: pip install httpx
Backend must be running: http://localhost:8000
"""

from _common import check_backend, new_session, register


def main():
    check_backend()

    # ── Anonymous session + room ──────────────────────────────────
    print("\n1. Creating a room anonymously...")
    owner = new_session()
    resp = owner.post("/room", json={
        "room_name": "Quickstart quiz",
        "explanation": "Created before signing up",
        "is_public": True,
    })
    assert resp.status_code == 201, f"Failed: {resp.text}"
    room_id = resp.json()["room_id"]
    print(f"   Room: {room_id[:8]}...  {resp.headers['Location']}")

    # ── Signup on the same session ────────────────────────────────
    print("\n2. Registering...")
    user_id = register(owner)
    resp = owner.get("/auth/is_signin")
    print(f"   is_signin: {resp.json()}")

    # ── The room is still editable ────────────────────────────────
    print("\n3. Editing the room as the new user...")
    resp = owner.put(f"/room/{room_id}", json={"room_name": "Quickstart quiz v2"})
    assert resp.status_code == 200, f"Failed: {resp.text}"
    detail = owner.get(f"/room/{room_id}").json()
    print(f"   {detail['room_name']} owned by {detail['owner_name']} (is_owner={detail['is_owner']})")

    # ── Another visitor ───────────────────────────────────────────
    print("\n4. A second visitor...")
    visitor = new_session()
    listed = [r["room_id"] for r in visitor.get("/room/list").json()]
    print(f"   sees the room in the listing: {room_id in listed}")
    resp = visitor.put(f"/room/{room_id}", json={"room_name": "Hijacked"})
    print(f"   edit attempt → {resp.status_code} {resp.json()['kind']}")

    # ── Close + sign out ──────────────────────────────────────────
    print("\n5. Closing the room and signing out...")
    assert owner.post(f"/room/{room_id}/close").status_code == 200
    assert owner.delete("/auth/signout").status_code == 200
    print(f"   Done. {user_id} signed out.")


if __name__ == "__main__":
    main()
