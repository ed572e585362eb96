import contextlib
from collections.abc import Callable, Generator
from pathlib import Path
from typing import Any

import click
from eth_typing import ChecksumAddress

from tickbook.checksum_cache import get_checksum_address
from tickbook.clmm.ledger import ConcentratedLiquidityLedger
from tickbook.clmm.snapshot import LedgerSnapshot
from tickbook.config import settings
from tickbook.exceptions import TickbookError


def snapshot_option[F: Callable[..., Any]](func: F) -> F:
    return click.option(
        "--snapshot",
        "snapshot_path",
        type=click.Path(dir_okay=False, path_type=Path),
        default=lambda: settings.ledger_snapshot,
        show_default="from config",
        help="The ledger snapshot file to read and update.",
    )(func)


def validate_address(
    ctx: click.Context,  # noqa: ARG001
    param: click.Parameter,  # noqa: ARG001
    value: str,
) -> ChecksumAddress:
    try:
        return get_checksum_address(value)
    except ValueError:
        raise click.BadParameter(f"{value} is not a valid address") from None


def load_ledger(snapshot_path: Path, *, create: bool = False) -> ConcentratedLiquidityLedger:
    if snapshot_path.exists():
        return LedgerSnapshot.load(snapshot_path)
    if create:
        return ConcentratedLiquidityLedger(silent=True)
    msg = f"No ledger snapshot found at {snapshot_path}"
    raise click.ClickException(msg)


@contextlib.contextmanager
def ledger_errors() -> Generator[None, None, None]:
    """
    Report package exceptions as CLI errors instead of tracebacks.
    """

    try:
        yield
    except TickbookError as exc:
        raise click.ClickException(exc.message or exc.__class__.__name__) from exc
