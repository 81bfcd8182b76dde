"""Admin and sharing CLI for SafeGuard Radar."""

from __future__ import annotations

import asyncio
import json
import os
import uuid

import click


def run_async(coro):
    """Run an async function in a new event loop."""
    return asyncio.run(coro)


@click.group()
def cli():
    """SafeGuard Radar command line."""
    pass


# --- Setup ---


@cli.command()
def setup():
    """Run database migrations."""
    click.echo("Running database migrations...")
    _run_migrations()
    click.echo("Setup complete.")


def _run_migrations():
    """Run Alembic migrations using the Python API."""
    from alembic import command
    from alembic.config import Config

    candidate = os.path.join(os.path.dirname(os.path.abspath(__file__)), "alembic.ini")
    if not os.path.exists(candidate):
        click.echo("  Warning: alembic.ini not found, skipping migrations.")
        return

    alembic_cfg = Config(candidate)
    alembic_cfg.set_main_option(
        "script_location", os.path.join(os.path.dirname(candidate), "alembic")
    )
    db_url = os.environ.get("DATABASE_URL")
    if db_url:
        alembic_cfg.set_main_option("sqlalchemy.url", db_url)
    command.upgrade(alembic_cfg, "head")


@cli.command()
@click.option("--host", default="0.0.0.0", help="Bind address")
@click.option("--port", default=8000, type=int, help="Bind port")
def serve(host, port):
    """Run the API server."""
    import uvicorn

    uvicorn.run("portal.main:app", host=host, port=port)


# --- Users ---


@cli.group()
def user():
    """Manage user profiles."""
    pass


@user.command("create")
@click.option("--email", required=True, help="Email address")
@click.option("--name", default=None, help="Display name")
def create_user(email, name):
    """Create a user profile and print a bearer token for it."""
    run_async(_create_user(email, name))


async def _create_user(email, name):
    from shared.database import dispose_engine, get_session_factory
    from shared.models.user import User
    from portal.auth import create_access_token

    factory = get_session_factory()
    async with factory() as session:
        profile = User(id=uuid.uuid4(), email=email, full_name=name)
        session.add(profile)
        await session.commit()
        click.echo(f"Created user {profile.id} ({email})")
        click.echo(f"Token: {create_access_token(profile.id, email)}")
    await dispose_engine()


@cli.command("token")
@click.option("--user-id", required=True, help="User UUID")
@click.option("--email", default="", help="Email claim")
def issue_token(user_id, email):
    """Issue a bearer token for an existing user id."""
    from portal.auth import create_access_token

    click.echo(create_access_token(uuid.UUID(user_id), email))


# --- Client commands ---


@cli.command()
@click.option("--lat", type=float, default=None)
@click.option("--lng", type=float, default=None)
@click.option("--radius", type=float, default=None, help="Query radius in km")
def alerts(lat, lng, radius):
    """List hazard alerts, optionally near a point."""
    run_async(_alerts(lat, lng, radius))


async def _alerts(lat, lng, radius):
    from tracker.api_client import RadarClient
    from tracker.view import ViewState, view_for

    async with RadarClient() as client:
        view = view_for(await client.get_alerts(lat=lat, lng=lng, radius=radius))

    if view.state == ViewState.FAILED:
        raise click.ClickException(f"Could not load alerts: {view.message}")
    if view.state == ViewState.DEGRADED:
        click.echo(f"[degraded] {view.message}")
    for alert in view.data or []:
        click.echo(
            f"  [{alert['severity']:<6}] {alert['title']} "
            f"({alert['coordinates']['lat']:.4f}, {alert['coordinates']['lng']:.4f}, r={alert['radius']}km)"
        )
    click.echo(f"{len(view.data or [])} alert(s)")


@cli.command()
@click.option("--include-own", is_flag=True, help="Include your own live location")
def locations(include_own):
    """Show live locations shared with you."""
    run_async(_locations(include_own))


async def _locations(include_own):
    from tracker.api_client import RadarClient

    async with RadarClient() as client:
        shared = await client.get_live_locations(include_own=include_own)
    for loc in shared:
        click.echo(
            f"  {loc['user_id']}  {loc['name']:<16} "
            f"({loc['lat']:.5f}, {loc['lng']:.5f})  updated {loc['last_updated']}"
        )
    click.echo(f"{len(shared)} location(s)")


@cli.command()
@click.option("--track", "track_path", required=True, type=click.Path(exists=True), help="JSON track file")
@click.option("--to", "recipients", multiple=True, help="Recipient user id (repeatable)")
@click.option("--interval", default=1.0, type=float, help="Seconds between track points")
@click.option("--refresh", default=30.0, type=float, help="Forced refresh interval in seconds")
@click.option("--duration", default=None, type=float, help="Stop after this many seconds")
def share(track_path, recipients, interval, refresh, duration):
    """Share a recorded track as a live location."""
    run_async(_share(track_path, list(recipients), interval, refresh, duration))


async def _share(track_path, recipients, interval, refresh, duration):
    from tracker.api_client import RadarClient
    from tracker.controller import SharingController
    from shared.errors import AppError
    from tracker.geolocation import GeolocationError, ReplayGeolocationSource

    source = ReplayGeolocationSource.from_file(track_path, interval=interval)
    async with RadarClient() as client:
        controller = SharingController(source, client, refresh_interval=refresh)
        try:
            await controller.start_sharing(recipients)
        except GeolocationError as e:
            raise click.ClickException(e.message)
        except AppError as e:
            raise click.ClickException(e.public_message)
        click.echo(f"Sharing with {len(recipients)} recipient(s). Ctrl+C to stop.")
        try:
            if duration is not None:
                await asyncio.sleep(duration)
            else:
                await asyncio.Event().wait()
        finally:
            await _stop_sharing(controller)
            click.echo("Sharing stopped.")


async def _stop_sharing(controller):
    """Delete the live location, then close the controller even if the delete failed."""
    try:
        await controller.stop_sharing()
    finally:
        await controller.aclose()


if __name__ == "__main__":
    cli()
