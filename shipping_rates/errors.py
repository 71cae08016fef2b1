from __future__ import annotations


class ShippingRatesError(RuntimeError):
    pass


class ShippingConfigError(ShippingRatesError):
    """Missing or malformed configuration (sheet ID, credentials). Not retried."""


class SheetFetchError(ShippingRatesError):
    """Reading the remote rate tables failed."""

    def __init__(self, message: str, *, range_a1: str | None = None) -> None:
        super().__init__(message)
        self.range_a1 = range_a1


class UnsupportedMethodError(ShippingRatesError):
    def __init__(self, method: str, supported_methods: tuple[str, ...] | list[str]) -> None:
        self.method = method
        self.supported_methods = tuple(supported_methods)
        super().__init__(
            f'Unsupported shipping method "{method}". Supported methods: {", ".join(self.supported_methods)}'
        )
