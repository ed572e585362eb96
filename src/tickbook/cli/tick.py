from fractions import Fraction

import click

from tickbook.cli import cli
from tickbook.cli.utils import ledger_errors, validate_address
from tickbook.clmm.functions import (
    generate_tick_array_address,
    get_tick_at_price,
    sqrt_price_x64_to_price,
)
from tickbook.clmm.libraries.tick_array import (
    get_tick_array_start_index,
    get_tick_offset_in_array,
)
from tickbook.clmm.libraries.tick_math import get_sqrt_price_at_tick
from tickbook.config import settings

decimals_options = (
    click.option("--decimals0", default=0, show_default=True, help="Decimal places of token0."),
    click.option("--decimals1", default=0, show_default=True, help="Decimal places of token1."),
)


def _format_price(price: Fraction, places: int = 18) -> str:
    # Round half up at the requested number of decimal places
    scaled = round(price * 10**places)
    whole, fraction = divmod(scaled, 10**places)
    return f"{whole}.{fraction:0{places}d}".rstrip("0").rstrip(".")


@cli.group()
def tick() -> None:
    """
    Tick math commands
    """


@tick.command("price")
@click.argument("tick_index", type=int)
@decimals_options[0]
@decimals_options[1]
def tick_price(tick_index: int, decimals0: int, decimals1: int) -> None:
    """
    Show the sqrt price and nominal price at a tick.
    """

    with ledger_errors():
        sqrt_price_x64 = get_sqrt_price_at_tick(tick_index)
        price = sqrt_price_x64_to_price(sqrt_price_x64, decimals0, decimals1)

    click.echo(f"Tick: {tick_index}")
    click.echo(f"SqrtPriceX64: {sqrt_price_x64}")
    click.echo(f"Price: {_format_price(price)}")


@tick.command("from-price")
@click.argument("price", type=str)
@decimals_options[0]
@decimals_options[1]
def tick_from_price(price: str, decimals0: int, decimals1: int) -> None:
    """
    Show the greatest tick at or below a nominal price.
    """

    try:
        nominal_price = Fraction(price)
    except ValueError:
        raise click.BadParameter(f"{price} is not a number", param_hint="PRICE") from None

    with ledger_errors():
        click.echo(get_tick_at_price(nominal_price, decimals0, decimals1))


@tick.command("array")
@click.argument("tick_index", type=int)
@click.option("--spacing", "tick_spacing", type=int, required=True, help="The pool tick spacing.")
@click.option(
    "--size",
    "tick_array_size",
    type=int,
    default=lambda: settings.tick_array_size,
    show_default="from config",
    help="The number of ticks held by each tick array.",
)
@click.option(
    "--pool",
    "pool_address",
    callback=lambda ctx, param, value: (
        None if value is None else validate_address(ctx, param, value)
    ),
    help="Also show the tick array address for this pool.",
)
def tick_array(
    tick_index: int,
    tick_spacing: int,
    tick_array_size: int,
    pool_address: str | None,
) -> None:
    """
    Show the tick array holding a tick and the tick's offset within it.
    """

    with ledger_errors():
        start_tick_index = get_tick_array_start_index(tick_index, tick_spacing, tick_array_size)
        offset = get_tick_offset_in_array(tick_index, tick_spacing, tick_array_size)

    click.echo(f"Start tick index: {start_tick_index}")
    click.echo(f"Offset: {offset}")
    if pool_address is not None:
        click.echo(f"Address: {generate_tick_array_address(pool_address, start_tick_index)}")
