from abc import ABC, abstractmethod

from lanmon.schemas.services import LoadedModel


class InferenceBackend(ABC):
    @abstractmethod
    async def list_models(self) -> list[LoadedModel]:
        """List models installed on the server."""
        ...

    @abstractmethod
    async def list_loaded_models(self) -> list[LoadedModel]:
        """List models currently resident in memory."""
        ...

    @abstractmethod
    async def health_check(self) -> bool:
        """Check if backend is responsive."""
        ...
