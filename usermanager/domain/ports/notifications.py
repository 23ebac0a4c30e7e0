from typing import Protocol


class NotificationGateway(Protocol):
    """Outbound email transport used for confirmation and reset links."""

    def send(self, to_address: str, subject: str, html_body: str) -> None:
        """Deliver a message or raise DeliveryError."""
        ...
