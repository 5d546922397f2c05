"""simplequiz CLI: poke a running simple-quiz API from the terminal.

Usage:
    simplequiz session                                # Issue an anonymous session token
    simplequiz whoami                                 # Is the token signed in?
    simplequiz caniuse alice                          # Is a user ID still free?
    simplequiz pre-signup alice alice@example.com     # Stage a registration
    simplequiz signup <confirmation-token>            # Confirm it, bind the session
    simplequiz signin alice                           # Sign in, bind the session
    simplequiz signout
    simplequiz rooms                                  # Rooms visible to the token
    simplequiz room <room-id>
    simplequiz create-room "Friday quiz" --private
    simplequiz close-room <room-id>

The session token is read from --token or SIMPLEQUIZ_TOKEN.
"""

from __future__ import annotations

import asyncio
import concurrent.futures
import json
import os
import sys
from typing import Optional

import click
import httpx

# ---------------------------------------------------------------------------
# Config
# ---------------------------------------------------------------------------

DEFAULT_API_URL = "http://localhost:8000"


def _api_url() -> str:
    return os.environ.get("SIMPLEQUIZ_API_URL", DEFAULT_API_URL).rstrip("/")


def _client(token: Optional[str] = None) -> httpx.AsyncClient:
    """Async HTTP client for the API, carrying the session token if any."""
    headers = {"Authorization": token} if token else {}
    return httpx.AsyncClient(base_url=_api_url(), headers=headers, timeout=30.0)


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


def _run(coro):
    """Run a coroutine from a synchronous click handler.

    Inside an already running loop (CliRunner under pytest-asyncio) the
    coroutine gets its own loop in a worker thread.
    """
    try:
        asyncio.get_running_loop()
    except RuntimeError:
        return asyncio.run(coro)
    with concurrent.futures.ThreadPoolExecutor(max_workers=1) as pool:
        return pool.submit(asyncio.run, coro).result()


def _require_token(token: Optional[str]) -> str:
    tok = token or os.environ.get("SIMPLEQUIZ_TOKEN")
    if not tok:
        click.secho(
            "Error: --token required (or set SIMPLEQUIZ_TOKEN; get one with `simplequiz session`)",
            fg="red",
            err=True,
        )
        sys.exit(1)
    return tok


def _check(r: httpx.Response) -> dict | list:
    """Return the JSON body, or raise the API's error as a ClickException."""
    if r.is_success:
        return r.json()
    try:
        body = r.json()
        message = f"{body.get('kind', 'error')}: {body.get('detail', r.text)}"
    except ValueError:
        message = r.text or r.reason_phrase
    raise click.ClickException(f"({r.status_code}) {message}")


def _pretty_json(data: dict | list) -> str:
    return json.dumps(data, indent=2, default=str)


def _print_table(rows: list[dict], columns: list[tuple[str, str, int]]):
    """columns: (header, key, width)"""
    header = "  ".join(h.ljust(w) for h, _, w in columns)
    click.secho(header, bold=True)
    click.echo("-" * len(header))
    for row in rows:
        line = "  ".join(str(row.get(k, "-"))[:w].ljust(w) for _, k, w in columns)
        click.echo(line)


token_option = click.option("--token", "-t", help="Session token (or set SIMPLEQUIZ_TOKEN)")


# ---------------------------------------------------------------------------
# CLI group
# ---------------------------------------------------------------------------


@click.group()
@click.version_option(version="0.1.0", prog_name="simplequiz")
def main():
    """simple-quiz: sessions, registration and rooms."""


# ---------------------------------------------------------------------------
# Sessions
# ---------------------------------------------------------------------------


@main.command()
def session():
    """Issue a new anonymous session token."""
    _run(_session_impl())


async def _session_impl():
    async with _client() as c:
        data = _check(await c.get("/auth/session_id"))
    click.echo(data["token"])


@main.command()
@token_option
def whoami(token: Optional[str]):
    """Show whether the session is signed in, and as whom."""
    _run(_whoami_impl(_require_token(token)))


async def _whoami_impl(token: str):
    async with _client(token) as c:
        data = _check(await c.get("/auth/is_signin"))
    if data["is_login"]:
        click.secho(f"Signed in as {data['user_id']}", fg="green")
    else:
        click.echo("Anonymous session")


@main.command()
@token_option
def signout(token: Optional[str]):
    """Invalidate the session token."""
    _run(_signout_impl(_require_token(token)))


async def _signout_impl(token: str):
    async with _client(token) as c:
        _check(await c.delete("/auth/signout"))
    click.echo("Signed out")


# ---------------------------------------------------------------------------
# Registration + sign-in
# ---------------------------------------------------------------------------


@main.command()
@click.argument("user_id")
def caniuse(user_id: str):
    """Check whether USER_ID is still available."""
    _run(_caniuse_impl(user_id))


async def _caniuse_impl(user_id: str):
    async with _client() as c:
        data = _check(await c.get("/auth/caniuse", params={"user_id": user_id}))
    if data["caniuse"]:
        click.secho(f"{user_id} is available", fg="green")
    else:
        click.secho(f"{user_id} is taken", fg="yellow")


@main.command("pre-signup")
@click.argument("user_id")
@click.argument("mail")
@click.option("--name", "user_name", help="Display name (defaults to USER_ID)")
@click.option("--comment", help="Profile comment")
@click.password_option()
def pre_signup(user_id: str, mail: str, user_name: Optional[str],
               comment: Optional[str], password: str):
    """Stage a registration; a confirmation link is mailed to MAIL."""
    _run(_pre_signup_impl(user_id, mail, user_name or user_id, comment, password))


async def _pre_signup_impl(user_id: str, mail: str, user_name: str,
                           comment: Optional[str], password: str):
    async with _client() as c:
        _check(await c.post("/auth/pre_signup", json={
            "user_id": user_id,
            "mail": mail,
            "user_name": user_name,
            "comment": comment,
            "password": password,
        }))
    click.secho(f"Confirmation mail sent to {mail}", fg="green")


@main.command()
@click.argument("confirmation_token")
@token_option
def signup(confirmation_token: str, token: Optional[str]):
    """Confirm a registration and bind the session to the new user."""
    _run(_signup_impl(confirmation_token, _require_token(token)))


async def _signup_impl(confirmation_token: str, token: str):
    async with _client(token) as c:
        _check(await c.post("/auth/signup", json={"token": confirmation_token}))
        data = _check(await c.get("/auth/is_signin"))
    click.secho(f"Registered and signed in as {data['user_id']}", fg="green")


@main.command()
@click.argument("identifier")
@click.option("--password", prompt=True, hide_input=True)
@token_option
def signin(identifier: str, password: str, token: Optional[str]):
    """Sign in with a user ID or mail address."""
    _run(_signin_impl(identifier, password, _require_token(token)))


async def _signin_impl(identifier: str, password: str, token: str):
    async with _client(token) as c:
        _check(await c.post("/auth/signin", json={
            "identifier": identifier,
            "password": password,
        }))
        data = _check(await c.get("/auth/is_signin"))
    click.secho(f"Signed in as {data['user_id']}", fg="green")


# ---------------------------------------------------------------------------
# Rooms
# ---------------------------------------------------------------------------


@main.command()
@click.option("--since", default=0, show_default=True, help="Offset into the listing")
@click.option("--per-page", default=30, show_default=True, help="At most 30")
@click.option("--json", "as_json", is_flag=True, help="Raw JSON output")
@click.option("--token", "-t", help="Session token (optional for listings)")
def rooms(since: int, per_page: int, as_json: bool, token: Optional[str]):
    """List open rooms visible to the session."""
    _run(_rooms_impl(since, per_page, as_json, token or os.environ.get("SIMPLEQUIZ_TOKEN")))


async def _rooms_impl(since: int, per_page: int, as_json: bool, token: Optional[str]):
    async with _client(token) as c:
        data = _check(await c.get("/room/list", params={"since": since, "per_page": per_page}))
    if as_json:
        click.echo(_pretty_json(data))
        return
    if not data:
        click.echo("No rooms.")
        return
    _print_table(
        [{**r, "visibility": "public" if r["is_public"] else "private"} for r in data],
        [("ROOM ID", "room_id", 32), ("NAME", "room_name", 30),
         ("VISIBILITY", "visibility", 10), ("UPDATED", "updated_at", 25)],
    )


@main.command()
@click.argument("room_id")
@click.option("--token", "-t", help="Session token (needed for private rooms)")
def room(room_id: str, token: Optional[str]):
    """Show one room."""
    _run(_room_impl(room_id, token or os.environ.get("SIMPLEQUIZ_TOKEN")))


async def _room_impl(room_id: str, token: Optional[str]):
    async with _client(token) as c:
        data = _check(await c.get(f"/room/{room_id}"))
    click.echo(_pretty_json(data))


@main.command("create-room")
@click.argument("room_name")
@click.option("--explanation", help="Up to 100 characters")
@click.option("--password", "room_password", help="4-digit entry code")
@click.option("--private", "private", is_flag=True, help="Hide from other users' listings")
@token_option
def create_room(room_name: str, explanation: Optional[str], room_password: Optional[str],
                private: bool, token: Optional[str]):
    """Create a room owned by the session (or its user)."""
    _run(_create_room_impl(room_name, explanation, room_password, private,
                           _require_token(token)))


async def _create_room_impl(room_name: str, explanation: Optional[str],
                            room_password: Optional[str], private: bool, token: str):
    async with _client(token) as c:
        data = _check(await c.post("/room", json={
            "room_name": room_name,
            "explanation": explanation,
            "password": room_password,
            "is_public": not private,
        }))
    click.secho(f"Room {data['room_id']} created", fg="green")
    click.echo(data["uri"])


@main.command("close-room")
@click.argument("room_id")
@token_option
def close_room(room_id: str, token: Optional[str]):
    """Close a room. This cannot be undone."""
    _run(_close_room_impl(room_id, _require_token(token)))


async def _close_room_impl(room_id: str, token: str):
    async with _client(token) as c:
        _check(await c.post(f"/room/{room_id}/close"))
    click.echo(f"Room {room_id} closed")


if __name__ == "__main__":
    main()
