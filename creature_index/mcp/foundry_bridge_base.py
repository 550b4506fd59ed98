"""Interface for the channel between the index service and a Foundry world."""

from abc import ABC, abstractmethod
from collections.abc import Callable


class FoundryBridgeBase(ABC):
    """Command channel to the companion Foundry module.

    The module answers pack and file commands (``listPacks``,
    ``getPackDocuments``, ``uploadFile``, ...) and pushes document and
    compendium hook events back over the same channel. FoundryContentHost
    and BridgeFileStorage only depend on this interface.
    """

    @abstractmethod
    def is_connected(self) -> bool:
        """Whether a Foundry client is attached and can answer commands."""
        ...

    @abstractmethod
    def send_command(
        self, command: str, data: dict | None = None, timeout: float = 5.0
    ) -> dict:
        """Run a command in the Foundry world and return its response data.

        Raises:
            ConnectionError: No Foundry client is attached
            TimeoutError: No answer arrived within ``timeout`` seconds
            RuntimeError: Foundry reported the command as failed
        """
        ...

    @abstractmethod
    def on_event(self, event_type: str, handler: Callable[[dict], None]) -> None:
        """Subscribe ``handler`` to a hook event such as ``updateDocument``."""
        ...
