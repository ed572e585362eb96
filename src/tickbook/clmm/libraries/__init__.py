from . import full_math as FullMath
from . import liquidity_math as LiquidityMath
from . import sqrt_price_math as SqrtPriceMath
from . import tick as Tick
from . import tick_array as TickArray
from . import tick_math as TickMath
from . import unsafe_math as UnsafeMath

__all__ = (
    "FullMath",
    "LiquidityMath",
    "SqrtPriceMath",
    "Tick",
    "TickArray",
    "TickMath",
    "UnsafeMath",
)
