from typing import Any

from eth_typing import ChecksumAddress

from tickbook.exceptions.base import TickbookError


class TickArrayError(TickbookError):
    """
    Exception raised by the tick array store.
    """


class TickArrayNotFound(TickArrayError):
    """
    Raised when a required tick array has not been initialized.
    """

    def __init__(self, address: ChecksumAddress) -> None:
        self.address = address
        super().__init__(message=f"Tick array {address} not found")

    def __reduce__(self) -> tuple[Any, ...]:
        return self.__class__, (self.address,)


class TickArrayAlreadyInitialized(TickArrayError):
    def __init__(self, address: ChecksumAddress) -> None:
        self.address = address
        super().__init__(message=f"Tick array {address} is already initialized")

    def __reduce__(self) -> tuple[Any, ...]:
        return self.__class__, (self.address,)
