"""
auctionhouse CLI - offline tools for the auction client.

Salts and commitments, Dutch price curves, Vickrey phases, the local
watchlist and stored sealed-bid secrets. Nothing here talks to a chain.
"""

import time

import click

from auctionhouse.utils.logger import get_logger, setup_logging

logger = get_logger("cli")

REFERENCES_BUCKET = "references"
SECRETS_BUCKET = "secrets"


def parse_ref(value: str):
    """Accept a storage token (100000042) or Protocol#id (English#42)."""
    from auctionhouse.core.refs import AuctionRef, ProtocolTag, decode
    from auctionhouse.errors import DecodeError, UnsupportedProtocol

    try:
        if "#" in value:
            protocol, _, auction_id = value.partition("#")
            return AuctionRef(ProtocolTag.parse(protocol), int(auction_id))
        return decode(value)
    except (DecodeError, UnsupportedProtocol, ValueError) as e:
        raise click.BadParameter(str(e), param_hint="AUCTION")


def _store(ctx, bucket: str):
    from auctionhouse.core.storage import SQLiteStore

    return SQLiteStore(ctx.obj["config"].db_path, bucket=bucket)


def _secret_store(ctx):
    from auctionhouse.core.auction import SecretStore
    from auctionhouse.errors import ConfigurationError

    try:
        return SecretStore(_store(ctx, SECRETS_BUCKET), passphrase=ctx.obj["config"].secret_passphrase)
    except ConfigurationError as e:
        raise click.ClickException(str(e))


@click.group()
@click.option("--debug", is_flag=True, help="Enable debug logging")
@click.option("--data-dir", default=None, help="Data directory (default ~/.auctionhouse)")
@click.option("--config", "config_path", default=None, help="JSON config file")
@click.version_option(version="0.1.0")
@click.pass_context
def cli(ctx, debug, data_dir, config_path):
    """auctionhouse - client tools for on-chain auctions"""
    from auctionhouse.core.config import load_config
    from auctionhouse.errors import ConfigurationError

    try:
        config = load_config(config_path, data_dir=data_dir)
    except ConfigurationError as e:
        raise click.ClickException(str(e))

    setup_logging(level="DEBUG" if debug else config.log_level, force=True)

    ctx.ensure_object(dict)
    ctx.obj["config"] = config


# =============================================================================
# Commitment Commands
# =============================================================================

@cli.command("salt")
@click.option("--bytes", "nbytes", default=32, show_default=True, help="Random bytes")
def salt(nbytes):
    """Generate a random salt for a sealed bid"""
    from auctionhouse.crypto import generate_salt

    try:
        click.echo(generate_salt(nbytes))
    except ValueError as e:
        raise click.BadParameter(str(e), param_hint="--bytes")


@cli.command("commitment")
@click.argument("amount")
@click.argument("salt")
@click.option("--wei", is_flag=True, help="AMOUNT is already in base units")
def commitment(amount, salt, wei):
    """Compute the commitment for a sealed bid of AMOUNT with SALT"""
    from auctionhouse.core.auction import create_commitment
    from auctionhouse.utils.units import to_wei
    from auctionhouse.utils.validation import validate_salt

    ok, err = validate_salt(salt)
    if not ok:
        raise click.BadParameter(err, param_hint="SALT")

    try:
        value = int(amount) if wei else to_wei(amount)
        c = create_commitment(value, salt)
    except ValueError as e:
        raise click.BadParameter(str(e), param_hint="AMOUNT")

    click.echo(c.hex)


# =============================================================================
# Price Commands
# =============================================================================

@cli.group()
def price():
    """Dutch auction price curves"""
    pass


@price.command("at")
@click.option("--shape", type=click.Choice(["linear", "exponential", "logarithmic"]), default="linear")
@click.option("--start", "start_price", type=float, required=True, help="Starting price")
@click.option("--reserved", "reserved_price", type=float, required=True, help="Reserved price")
@click.option("--duration", type=float, required=True, help="Duration in seconds")
@click.option("--decay-factor", type=float, default=0.0, help="Decay factor k")
@click.option("--elapsed", type=float, required=True, help="Seconds since the start")
def price_at_cmd(shape, start_price, reserved_price, duration, decay_factor, elapsed):
    """Price of one curve after ELAPSED seconds"""
    from auctionhouse.core.pricing import PriceCurveParams, price_at
    from auctionhouse.errors import ConfigurationError

    try:
        params = PriceCurveParams(start_price, reserved_price, duration, decay_factor, shape)
    except ConfigurationError as e:
        raise click.ClickException(str(e))

    click.echo(f"{price_at(params, elapsed):.6f}")


@price.command("preview")
@click.option("--start", "start_price", type=float, required=True, help="Starting price")
@click.option("--reserved", "reserved_price", type=float, required=True, help="Reserved price")
@click.option("--duration", type=float, required=True, help="Duration in seconds")
@click.option("--decay-factor", type=float, default=0.0, help="Decay factor k")
@click.option("--steps", type=int, default=10, show_default=True, help="Sample intervals")
def price_preview(start_price, reserved_price, duration, decay_factor, steps):
    """Sample all three curve shapes side by side"""
    from auctionhouse.core.pricing import DecayPreview
    from auctionhouse.errors import ConfigurationError

    try:
        preview = DecayPreview(start_price, reserved_price, duration, decay_factor, steps)
    except ConfigurationError as e:
        raise click.ClickException(str(e))

    def cell(value):
        return f"{value:>14.4f}" if value is not None else f"{'-':>14}"

    click.echo(f"{'time':>10} {'linear':>14} {'exponential':>14} {'logarithmic':>14}")
    for point in preview:
        click.echo(
            f"{point.time:>10.1f} {cell(point.linear)} {cell(point.exponential)} {cell(point.logarithmic)}"
        )


# =============================================================================
# Vickrey Commands
# =============================================================================

@cli.command("phase")
@click.option("--commit-end", type=int, required=True, help="Commit phase end (unix seconds)")
@click.option("--deadline", type=int, required=True, help="Reveal phase end (unix seconds)")
@click.option("--start", type=int, default=None, help="Auction start (unix seconds)")
@click.option("--now", type=int, default=None, help="Evaluate at this time instead of now")
def phase(commit_end, deadline, start, now):
    """Vickrey phase for the given timestamps"""
    from auctionhouse.core.auction import vickrey_phase
    from auctionhouse.errors import ConfigurationError

    at = time.time() if now is None else now
    try:
        click.echo(vickrey_phase(at, commit_end, deadline, start=start).value)
    except ConfigurationError as e:
        raise click.ClickException(str(e))


@cli.group()
def secret():
    """Stored sealed-bid secrets"""
    pass


@secret.command("list")
@click.option("--bidder", default=None, help="Only this bidder's secrets")
@click.pass_context
def secret_list(ctx, bidder):
    """List stored secrets awaiting reveal"""
    from auctionhouse.utils.units import format_amount

    secrets_found = _secret_store(ctx).list_secrets(bidder)
    if not secrets_found:
        click.echo("No stored secrets.")
        return
    for s in secrets_found:
        flag = "  [reveal refused]" if s.reveal_failed else ""
        click.echo(f"  {s.ref} {s.ref.token}  bidder={s.bidder}  amount={format_amount(s.amount)}{flag}")


@secret.command("show")
@click.argument("auction")
@click.option("--bidder", required=True, help="Bidder address")
@click.pass_context
def secret_show(ctx, auction, bidder):
    """Show the stored secret for AUCTION, including the salt"""
    from auctionhouse.errors import DecodeError
    from auctionhouse.utils.units import format_amount

    ref = parse_ref(auction)
    try:
        s = _secret_store(ctx).load(ref, bidder)
    except DecodeError as e:
        raise click.ClickException(str(e))
    if s is None:
        raise click.ClickException(f"No stored secret for {ref} / {bidder}")

    click.echo(f"Auction:    {s.ref} ({s.ref.token})")
    click.echo(f"Bidder:     {s.bidder}")
    click.echo(f"Amount:     {format_amount(s.amount)} ({s.amount} wei)")
    click.echo(f"Salt:       {s.salt}")
    click.echo(f"Commitment: {s.commitment.hex}")
    click.echo(f"Created:    {time.strftime('%Y-%m-%d %H:%M:%S', time.localtime(s.created_at))}")
    if s.reveal_failed:
        click.echo("Status:     reveal refused by the ledger")


@secret.command("forget")
@click.argument("auction")
@click.option("--bidder", required=True, help="Bidder address")
@click.confirmation_option(prompt="The bid cannot be revealed without its secret. Forget it?")
@click.pass_context
def secret_forget(ctx, auction, bidder):
    """Abandon the sealed bid on AUCTION by erasing its secret"""
    ref = parse_ref(auction)
    _secret_store(ctx).erase(ref, bidder)
    click.echo(f"✓ Forgot secret for {ref}")


# =============================================================================
# Watchlist Commands
# =============================================================================

def _watchlist(ctx, account):
    from auctionhouse.core.storage import ListPurpose, ReferenceListStore, list_key

    references = ReferenceListStore(_store(ctx, REFERENCES_BUCKET))
    key = list_key(ListPurpose.WATCHLIST, ctx.obj["config"].chain_id, account)
    return references, key


@cli.group()
def watchlist():
    """Locally tracked auctions"""
    pass


@watchlist.command("add")
@click.argument("auction")
@click.option("--account", required=True, envvar="AUCTIONHOUSE_ACCOUNT", help="Account address")
@click.pass_context
def watchlist_add(ctx, auction, account):
    """Add AUCTION to the watchlist"""
    ref = parse_ref(auction)
    references, key = _watchlist(ctx, account)
    if references.append(key, ref):
        click.echo(f"✓ Watching {ref}")
    else:
        click.echo(f"Already watching {ref}")


@watchlist.command("remove")
@click.argument("auction")
@click.option("--account", required=True, envvar="AUCTIONHOUSE_ACCOUNT", help="Account address")
@click.pass_context
def watchlist_remove(ctx, auction, account):
    """Remove AUCTION from the watchlist"""
    ref = parse_ref(auction)
    references, key = _watchlist(ctx, account)
    if references.remove(key, ref):
        click.echo(f"✓ Stopped watching {ref}")
    else:
        click.echo(f"Not watching {ref}")


@watchlist.command("list")
@click.option("--account", required=True, envvar="AUCTIONHOUSE_ACCOUNT", help="Account address")
@click.pass_context
def watchlist_list(ctx, account):
    """List watched auctions"""
    references, key = _watchlist(ctx, account)
    refs = references.load(key)
    if not refs:
        click.echo("Watchlist is empty.")
        return
    for ref in refs:
        click.echo(f"  {ref}  {ref.token}")


if __name__ == "__main__":
    cli()
