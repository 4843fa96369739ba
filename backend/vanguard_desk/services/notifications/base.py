"""Abstract notifier interface for outgoing mail."""

from abc import ABC, abstractmethod


class BaseNotifier(ABC):
    @property
    @abstractmethod
    def is_configured(self) -> bool:
        """Whether the notifier has what it needs to deliver."""
        ...

    @abstractmethod
    def send(self, to: str, subject: str, html: str) -> None:
        """Deliver one HTML message. Raises on delivery failure."""
        ...


class NullNotifier(BaseNotifier):
    """Used when no mail transport is configured."""

    @property
    def is_configured(self) -> bool:
        return False

    def send(self, to: str, subject: str, html: str) -> None:
        return None
