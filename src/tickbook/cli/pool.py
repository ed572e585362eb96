import dataclasses
from fractions import Fraction
from pathlib import Path

import click
from pydantic import TypeAdapter

from tickbook.cli import cli
from tickbook.cli.utils import ledger_errors, load_ledger, snapshot_option, validate_address
from tickbook.clmm.functions import price_to_sqrt_price_x64, sqrt_price_x64_to_price
from tickbook.clmm.snapshot import LedgerSnapshot


@cli.group()
def pool() -> None:
    """
    Pool commands
    """


@pool.command("create")
@click.argument("token0", callback=validate_address)
@click.argument("token1", callback=validate_address)
@click.option("--spacing", "tick_spacing", type=int, required=True, help="The pool tick spacing.")
@click.option("--price", type=str, required=True, help="The initial nominal price of token0.")
@click.option("--decimals0", default=0, show_default=True, help="Decimal places of token0.")
@click.option("--decimals1", default=0, show_default=True, help="Decimal places of token1.")
@snapshot_option
def pool_create(
    token0: str,
    token1: str,
    tick_spacing: int,
    price: str,
    decimals0: int,
    decimals1: int,
    snapshot_path: Path,
) -> None:
    """
    Create an empty pool and record it in the ledger snapshot.
    """

    try:
        nominal_price = Fraction(price)
    except ValueError:
        raise click.BadParameter(f"{price} is not a number", param_hint="--price") from None

    ledger = load_ledger(snapshot_path, create=True)
    with ledger_errors():
        pool_state = ledger.create_pool(
            token0=token0,
            token1=token1,
            tick_spacing=tick_spacing,
            sqrt_price_x64=price_to_sqrt_price_x64(nominal_price, decimals0, decimals1),
            mint0_decimals=decimals0,
            mint1_decimals=decimals1,
        )
    LedgerSnapshot.save(ledger, snapshot_path)

    click.echo(pool_state.address)


@pool.command("show")
@click.argument("pool_address", callback=validate_address)
@snapshot_option
def pool_show(pool_address: str, snapshot_path: Path) -> None:
    """
    Show the state of a pool in JSON format.
    """

    ledger = load_ledger(snapshot_path)
    with ledger_errors():
        pool_state = ledger.get_pool(pool_address)

    price = sqrt_price_x64_to_price(
        pool_state.sqrt_price_x64,
        pool_state.mint0_decimals,
        pool_state.mint1_decimals,
    )
    click.echo(
        TypeAdapter(dict).dump_json(
            dataclasses.asdict(pool_state) | {"price": str(float(price))},
            indent=2,
        ),
    )
