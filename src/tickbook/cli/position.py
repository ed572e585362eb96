import tomllib
from decimal import Decimal
from pathlib import Path
from typing import Annotated

import click
import pydantic
from pydantic import Field

from tickbook.checksum_cache import get_checksum_address
from tickbook.cli import cli
from tickbook.cli.utils import ledger_errors, load_ledger, snapshot_option, validate_address
from tickbook.clmm.functions import get_amount_limits_with_slippage
from tickbook.clmm.snapshot import LedgerSnapshot
from tickbook.clmm.types import LiquidityMutationResult

type Slippage = Annotated[Decimal, Field(ge=0, le=1)]


class IncreaseLiquidityParams(pydantic.BaseModel):
    position: str
    owner: str
    liquidity: Annotated[int, Field(gt=0)]
    amount_slippage: Slippage = Decimal(0)

    @pydantic.field_validator("position", "owner", mode="after")
    @classmethod
    def validate_address(cls, value: str) -> str:
        return get_checksum_address(value)


class IncreaseLiquidityParamsFile(pydantic.BaseModel):
    increase_liquidity: list[IncreaseLiquidityParams] = Field(alias="increase-liquidity")


def _echo_result(
    result: LiquidityMutationResult,
    pool_liquidity_before: int,
    position_liquidity_before: int,
) -> None:
    click.echo(f"Position: {result.position.address}")
    click.echo(f"• Liquidity: {position_liquidity_before} -> {result.position.liquidity}")
    click.echo(f"• Pool liquidity: {pool_liquidity_before} -> {result.pool.liquidity}")
    click.echo(f"• Token 0 amount: {result.amount_0}")
    click.echo(f"• Token 1 amount: {result.amount_1}")
    for update in result.tick_updates:
        click.echo(
            f"• Tick {update.tick}: gross {update.before.liquidity_gross} -> {update.after.liquidity_gross}, net {update.before.liquidity_net} -> {update.after.liquidity_net}"  # noqa: E501
        )
    click.echo(f"• Pool version: {result.pool.version}")


@cli.group()
def position() -> None:
    """
    Position commands
    """


@position.command("open")
@click.argument("pool_address", callback=validate_address)
@click.argument("owner", callback=validate_address)
@click.option("--lower", "tick_lower", type=int, required=True, help="The lower tick (inclusive).")
@click.option("--upper", "tick_upper", type=int, required=True, help="The upper tick (exclusive).")
@click.option(
    "--init-tick-arrays",
    is_flag=True,
    help="Create any missing tick arrays holding the position's boundary ticks.",
)
@snapshot_option
def position_open(
    pool_address: str,
    owner: str,
    tick_lower: int,
    tick_upper: int,
    snapshot_path: Path,
    *,
    init_tick_arrays: bool,
) -> None:
    """
    Open an empty position over [LOWER, UPPER).
    """

    ledger = load_ledger(snapshot_path)
    with ledger_errors():
        new_position = ledger.open_position(pool_address, owner, tick_lower, tick_upper)
        if init_tick_arrays:
            for tick in (tick_lower, tick_upper):
                ledger.initialize_tick_arrays_for_range(pool_address, tick, tick)
    LedgerSnapshot.save(ledger, snapshot_path)

    click.echo(new_position.address)


@position.command("increase")
@click.option(
    "--params",
    "params_path",
    type=click.Path(exists=True, dir_okay=False, path_type=Path),
    required=True,
    help="A TOML file with one or more [[increase-liquidity]] tables.",
)
@snapshot_option
def position_increase(params_path: Path, snapshot_path: Path) -> None:
    """
    Add liquidity to positions listed in a parameter file.

    The maximum token deposits are computed from the pool state before each increase and scaled up
    by the entry's `amount_slippage`.
    """

    try:
        params_file = IncreaseLiquidityParamsFile.model_validate(
            tomllib.loads(params_path.read_text())
        )
    except (tomllib.TOMLDecodeError, pydantic.ValidationError) as exc:
        msg = f"Invalid parameter file {params_path}: {exc}"
        raise click.ClickException(msg) from exc

    ledger = load_ledger(snapshot_path)
    for params in params_file.increase_liquidity:
        with ledger_errors():
            position_state = ledger.get_position(params.position)
            pool_state = ledger.get_pool(position_state.pool)
            amount_0_max, amount_1_max = get_amount_limits_with_slippage(
                pool_state,
                position_state.tick_lower,
                position_state.tick_upper,
                params.liquidity,
                params.amount_slippage,
            )
            result = ledger.increase_liquidity(
                position=params.position,
                owner=params.owner,
                liquidity=params.liquidity,
                amount_0_max=amount_0_max,
                amount_1_max=amount_1_max,
                expected_pool_version=pool_state.version,
            )
        _echo_result(result, pool_state.liquidity, position_state.liquidity)

    LedgerSnapshot.save(ledger, snapshot_path)


@position.command("decrease")
@click.argument("position_address", callback=validate_address)
@click.argument("owner", callback=validate_address)
@click.option("--liquidity", type=click.IntRange(min=0), required=True, help="Liquidity to remove.")
@click.option(
    "--slippage",
    type=click.FloatRange(min=0, max=1),
    default=0.0,
    show_default=True,
    help="Fractional tolerance applied to the minimum token withdrawals.",
)
@snapshot_option
def position_decrease(
    position_address: str,
    owner: str,
    liquidity: int,
    slippage: float,
    snapshot_path: Path,
) -> None:
    """
    Remove liquidity from a position.
    """

    ledger = load_ledger(snapshot_path)
    with ledger_errors():
        position_state = ledger.get_position(position_address)
        pool_state = ledger.get_pool(position_state.pool)
        amount_0_min, amount_1_min = get_amount_limits_with_slippage(
            pool_state,
            position_state.tick_lower,
            position_state.tick_upper,
            -liquidity,
            str(slippage),
        )
        result = ledger.decrease_liquidity(
            position=position_address,
            owner=owner,
            liquidity=liquidity,
            amount_0_min=amount_0_min,
            amount_1_min=amount_1_min,
            expected_pool_version=pool_state.version,
        )
    _echo_result(result, pool_state.liquidity, position_state.liquidity)

    LedgerSnapshot.save(ledger, snapshot_path)
