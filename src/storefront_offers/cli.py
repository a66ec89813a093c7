"""
Storefront offers CLI.

Usage:
    storefront-offers [OPTIONS] COMMAND [ARGS]...
"""
from __future__ import annotations

import asyncio
import logging
from datetime import datetime, timezone
from typing import Any, Optional

import click
from rich.console import Console
from rich.table import Table

from .auth import FileSessionStore, Session, SessionStore
from .catalog import FeedSource, OfferCatalogClient
from .client import StorefrontClient
from .config import StorefrontSettings
from .logging import configure_logging, mask_value
from .models.cart import CartView
from .synchronizer import CartSynchronizer
from .views import NoticeLevel, OffersPage

console = Console()

_NOTICE_STYLES = {
    NoticeLevel.SUCCESS: "green",
    NoticeLevel.INFO: "cyan",
    NoticeLevel.WARNING: "yellow",
    NoticeLevel.ERROR: "red",
}


def _client(ctx: click.Context) -> StorefrontClient:
    settings: StorefrontSettings = ctx.obj["settings"]
    return StorefrontClient.from_settings(settings, transport=ctx.obj.get("transport"))


def _sessions(ctx: click.Context) -> SessionStore:
    return ctx.obj["sessions"]


def _print_cart(cart: Optional[CartView]) -> None:
    if cart is None or not cart.items:
        console.print("[dim]Your cart is empty[/dim]")
        return

    table = Table(title="Cart")
    table.add_column("Product", style="cyan")
    table.add_column("Name")
    table.add_column("Qty", justify="right")
    table.add_column("Price", style="yellow", justify="right")
    table.add_column("Discount", style="green")

    for item in cart.items:
        discount = ""
        if item.applied_discount is not None:
            d = item.applied_discount
            suffix = "%" if d.kind == "percentage" else " off"
            discount = f"{d.value:g}{suffix} ({d.offer_id})"
        table.add_row(
            item.product_id,
            item.name or "",
            str(item.quantity),
            f"{item.price:,.2f}" if item.price is not None else "",
            discount,
        )
    console.print(table)


@click.group()
@click.version_option(package_name="storefront-offers", message="%(prog)s %(version)s")
@click.option("--api-url", envvar="STOREFRONT_API_BASE_URL", help="API base URL")
@click.option("-v", "--verbose", is_flag=True, help="Enable verbose output")
@click.pass_context
def cli(ctx: click.Context, api_url: Optional[str], verbose: bool):
    """Storefront offers - browse and claim promotional offers."""
    ctx.ensure_object(dict)

    settings = ctx.obj.get("settings") or StorefrontSettings()
    if api_url:
        settings = settings.model_copy(update={"api_base_url": api_url.rstrip("/")})

    ctx.obj["settings"] = settings
    ctx.obj.setdefault("sessions", FileSessionStore(settings.token_file))
    ctx.obj["verbose"] = verbose

    configure_logging(logging.DEBUG if verbose else logging.WARNING)


@cli.command()
@click.pass_context
def status(ctx: click.Context):
    """Show current configuration and session."""
    settings: StorefrontSettings = ctx.obj["settings"]
    console.print("\n[bold blue]Storefront Offers Status[/bold blue]\n")
    console.print(f"API URL: [cyan]{settings.api_base_url}[/cyan]")

    session = _sessions(ctx).current()
    if session is None:
        console.print("Session: [yellow]Not signed in[/yellow]")
    else:
        console.print(f"User: [green]{session.user_id}[/green]")
        console.print(f"Token: [green]{mask_value(session.token)}[/green]")
    console.print()


@cli.command()
@click.option("--user-id", required=True, help="Storefront user ID")
@click.option("--token", prompt=True, hide_input=True, help="Bearer token")
@click.option("--expires-at", type=click.DateTime(), help="Token expiry (UTC)")
@click.pass_context
def login(ctx: click.Context, user_id: str, token: str, expires_at: Optional[datetime]):
    """Store a session for authenticated calls."""
    if expires_at is not None and expires_at.tzinfo is None:
        expires_at = expires_at.replace(tzinfo=timezone.utc)
    _sessions(ctx).save(Session(user_id=user_id, token=token, expires_at=expires_at))
    console.print("[green]✓ Session saved[/green]")


@cli.command()
@click.pass_context
def logout(ctx: click.Context):
    """Remove the stored session."""
    _sessions(ctx).clear()
    console.print("[green]✓ Logged out successfully[/green]")


@cli.group()
def offers():
    """Promotional offer commands."""
    pass


@offers.command("list")
@click.pass_context
def list_offers(ctx: click.Context):
    """List active offers."""
    settings: StorefrontSettings = ctx.obj["settings"]

    async def run() -> Any:
        async with _client(ctx) as client:
            feed = await OfferCatalogClient.from_settings(client, settings).fetch_offers()
            return feed, list(feed)

    feed, items = asyncio.run(run())

    if feed.source is FeedSource.PLACEHOLDER:
        console.print("[yellow]Offers are rate limited; showing sample offers[/yellow]")
    elif feed.error is not None:
        console.print(f"[yellow]Offers unavailable: {feed.error.message}[/yellow]")

    if not items:
        console.print("[dim]No offers found[/dim]")
        return

    session = _sessions(ctx).current()
    table = Table(title="Offers")
    table.add_column("ID", style="cyan")
    table.add_column("Title")
    table.add_column("Discount", style="yellow", justify="right")
    table.add_column("Products", justify="right")
    table.add_column("Ends")
    table.add_column("Status")

    for offer in items:
        if session is not None and offer.is_claimed_by(session.user_id):
            state = "[green]Claimed[/green]"
        elif offer.is_claimable():
            state = "Claimable"
        else:
            state = "[dim]Expired[/dim]"
        suffix = "%" if offer.discount_kind == "percentage" else " off"
        table.add_row(
            offer.offer_id,
            offer.title,
            f"{offer.discount_value:g}{suffix}",
            str(len(offer.applicable_products)) if offer.applicable_products else "all",
            offer.end_date.date().isoformat(),
            state,
        )
    console.print(table)


@offers.command("claim")
@click.argument("offer_id")
@click.pass_context
def claim_offer(ctx: click.Context, offer_id: str):
    """Claim an offer and show the updated cart."""
    settings: StorefrontSettings = ctx.obj["settings"]

    async def run() -> Any:
        async with _client(ctx) as client:
            page = OffersPage.create(client, settings, _sessions(ctx))
            await page.mount()
            outcome = await page.claim(offer_id)
            await page.coordinator.drain()
            page.unmount()
            return page, outcome

    page, outcome = asyncio.run(run())

    if outcome is None:
        console.print(f"[red]Error: offer {offer_id} is not in the current offer list[/red]")
        ctx.exit(1)

    for notice in page.notices:
        style = _NOTICE_STYLES[notice.level]
        console.print(f"[{style}]{notice.title}[/{style}]: {notice.message}")

    if outcome.claimed:
        _print_cart(page.cart)
    elif page.errors:
        ctx.exit(1)


@cli.group()
def cart():
    """Cart commands."""
    pass


@cart.command("show")
@click.pass_context
def show_cart(ctx: click.Context):
    """Show the current cart."""
    session = _sessions(ctx).current()
    if session is None:
        console.print("[yellow]Not signed in[/yellow]")
        ctx.exit(1)

    settings: StorefrontSettings = ctx.obj["settings"]

    async def run() -> Optional[CartView]:
        async with _client(ctx) as client:
            return await CartSynchronizer.from_settings(client, settings).load(session)

    view = asyncio.run(run())
    if view is None:
        console.print("[red]Error: could not load cart[/red]")
        ctx.exit(1)
    _print_cart(view)
