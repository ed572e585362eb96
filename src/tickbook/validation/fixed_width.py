from typing import Annotated

from pydantic import Field

from tickbook.constants import (
    MAX_INT32,
    MAX_INT128,
    MAX_UINT8,
    MAX_UINT128,
    MIN_INT32,
    MIN_INT128,
    MIN_UINT8,
    MIN_UINT128,
)

type ValidatedInt32 = Annotated[int, Field(strict=True, ge=MIN_INT32, le=MAX_INT32)]
type ValidatedInt128 = Annotated[int, Field(strict=True, ge=MIN_INT128, le=MAX_INT128)]

type ValidatedUint8 = Annotated[int, Field(strict=True, ge=MIN_UINT8, le=MAX_UINT8)]
type ValidatedUint128 = Annotated[int, Field(strict=True, ge=MIN_UINT128, le=MAX_UINT128)]
