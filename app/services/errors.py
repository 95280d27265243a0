"""
Errors raised by the payment processor clients.
"""


class PaymentProviderError(Exception):
    """A call to an external payment processor failed or is not configured."""

    def __init__(self, provider: str, message: str):
        self.provider = provider
        self.message = message
        super().__init__(f"{provider}: {message}")
