def div_rounding_up(x: int, y: int) -> int:
    """
    Perform an x//y floored division, rounding up any remainder.
    """

    # x and y are unsigned values, so negative value floor division workarounds are unnecessary
    return x // y + (x % y > 0)
