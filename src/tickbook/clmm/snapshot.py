import dataclasses
import pathlib
from typing import Any

import pydantic_core

from tickbook.checksum_cache import get_checksum_address
from tickbook.clmm.ledger import ConcentratedLiquidityLedger
from tickbook.clmm.types import PersonalPositionState, PoolState, TickArrayState, TickState
from tickbook.exceptions import TickbookValueError
from tickbook.logging import logger

SNAPSHOT_FORMAT_VERSION = 1


class LedgerSnapshot:
    """
    Persists a ledger to a single JSON file with this structure:

    {
        "format_version": 1,
        "tick_array_size": 60,
        "pools": [
            {"address": "0x...", "token0": "0x...", "tick_current": int, "version": int, ...},
            ...
        ],
        "positions": [
            {"address": "0x...", "pool": "0x...", "owner": "0x...", "liquidity": int, ...},
            ...
        ],
        "tick_arrays": [
            {
                "address": "0x...",
                "pool": "0x...",
                "start_tick_index": int,
                "tick_spacing": int,
                "ticks": {
                    "<offset>": {
                        "tick": int,
                        "liquidity_net": int,
                        "liquidity_gross": int,
                        "initialized": bool,
                    },
                    ...
                }
            },
            ...
        ]
    }

    Only initialized tick records are written. Every other slot holds an empty record.
    """

    @staticmethod
    def _tick_array_to_dict(tick_array: TickArrayState) -> dict[str, Any]:
        return {
            "address": tick_array.address,
            "pool": tick_array.pool,
            "start_tick_index": tick_array.start_tick_index,
            "tick_spacing": tick_array.tick_spacing,
            "ticks": {
                str(offset): tick.model_dump()
                for offset, tick in enumerate(tick_array.ticks)
                if tick.initialized
            },
        }

    @staticmethod
    def _tick_array_from_dict(data: dict[str, Any], tick_array_size: int) -> TickArrayState:
        tick_array = TickArrayState.empty(
            address=get_checksum_address(data["address"]),
            pool=get_checksum_address(data["pool"]),
            start_tick_index=data["start_tick_index"],
            tick_spacing=data["tick_spacing"],
            tick_array_size=tick_array_size,
        )
        for offset, tick_data in data["ticks"].items():
            tick = TickState(**tick_data)
            if tick.tick != tick_array.ticks[int(offset)].tick:
                raise TickbookValueError(
                    message=f"Snapshot tick {tick.tick} does not belong at offset {offset} of tick array {tick_array.address}"  # noqa: E501
                )
            tick_array.ticks[int(offset)] = tick
        tick_array.initialized_tick_count = len(tick_array.initialized_ticks())
        return tick_array

    @classmethod
    def save(cls, ledger: ConcentratedLiquidityLedger, path: pathlib.Path | str) -> None:
        path = pathlib.Path(path).expanduser().absolute()

        snapshot = {
            "format_version": SNAPSHOT_FORMAT_VERSION,
            "tick_array_size": ledger.tick_array_size,
            "pools": [dataclasses.asdict(pool) for pool in ledger.pools],
            "positions": [dataclasses.asdict(position) for position in ledger.positions()],
            "tick_arrays": [
                cls._tick_array_to_dict(tick_array)
                for pool in ledger.pools
                for tick_array in ledger.tick_arrays(pool.address)
            ],
        }

        # Write to a temporary file first, so an interrupted save never leaves a truncated snapshot
        path.parent.mkdir(parents=True, exist_ok=True)
        temp_path = path.with_suffix(path.suffix + ".tmp")
        temp_path.write_bytes(pydantic_core.to_json(snapshot, indent=2))
        temp_path.replace(path)

        logger.debug(
            f"Saved ledger snapshot to {path}: {len(snapshot['pools'])} pools, {len(snapshot['positions'])} positions, {len(snapshot['tick_arrays'])} tick arrays"  # noqa: E501
        )

    @classmethod
    def load(cls, path: pathlib.Path | str, **kwargs: Any) -> ConcentratedLiquidityLedger:
        """
        Rebuild a ledger from a snapshot file. Keyword arguments are passed to the ledger
        constructor.
        """

        path = pathlib.Path(path).expanduser().absolute()
        snapshot: dict[str, Any] = pydantic_core.from_json(path.read_bytes())

        format_version = snapshot.get("format_version")
        if format_version != SNAPSHOT_FORMAT_VERSION:
            raise TickbookValueError(
                message=f"Unsupported snapshot format version {format_version} in {path}"
            )

        tick_array_size: int = kwargs.pop("tick_array_size", snapshot["tick_array_size"])
        if tick_array_size != snapshot["tick_array_size"]:
            raise TickbookValueError(
                message=f"Snapshot {path} uses tick arrays of size {snapshot['tick_array_size']}, not {tick_array_size}"  # noqa: E501
            )

        address_fields = ("address", "pool", "owner", "token0", "token1")
        ledger = ConcentratedLiquidityLedger.from_states(
            pools=[
                PoolState(
                    **{
                        k: get_checksum_address(v) if k in address_fields else v
                        for k, v in pool.items()
                    }
                )
                for pool in snapshot["pools"]
            ],
            positions=[
                PersonalPositionState(
                    **{
                        k: get_checksum_address(v) if k in address_fields else v
                        for k, v in position.items()
                    }
                )
                for position in snapshot["positions"]
            ],
            tick_arrays=[
                cls._tick_array_from_dict(tick_array, tick_array_size)
                for tick_array in snapshot["tick_arrays"]
            ],
            tick_array_size=tick_array_size,
            **kwargs,
        )

        logger.debug(f"Loaded ledger snapshot from {path}: {ledger!r}")
        return ledger
