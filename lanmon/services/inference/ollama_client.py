import httpx
import structlog

from lanmon.core.exceptions import BackendUnavailableError
from lanmon.schemas.services import LoadedModel
from lanmon.services.inference.base import InferenceBackend

logger = structlog.get_logger()

_GIB = 1024**3


def size_in_gb(size_bytes: int | None) -> float | None:
    if size_bytes is None:
        return None
    return round(size_bytes / _GIB, 2)


class OllamaClient(InferenceBackend):
    """Introspection client for an Ollama-compatible inference server."""

    def __init__(self, base_url: str, http_client: httpx.AsyncClient | None = None, timeout: float = 5.0):
        self.base_url = base_url.rstrip("/")
        self._owns_client = http_client is None
        self._client = http_client or httpx.AsyncClient(timeout=timeout)
        self._timeout = timeout

    async def list_models(self) -> list[LoadedModel]:
        """Installed models, from Ollama /api/tags."""
        data = await self._get_json("/api/tags")
        return self._parse_models(data)

    async def list_loaded_models(self) -> list[LoadedModel]:
        """Models currently loaded into memory, from Ollama /api/ps."""
        data = await self._get_json("/api/ps")
        return self._parse_models(data)

    async def health_check(self) -> bool:
        """Ollama answers ``GET /`` with 200 "Ollama is running"."""
        try:
            response = await self._client.get(f"{self.base_url}/", timeout=self._timeout)
            return response.status_code == 200
        except httpx.HTTPError:
            return False

    async def close(self):
        if self._owns_client:
            await self._client.aclose()

    async def _get_json(self, path: str) -> dict:
        url = f"{self.base_url}{path}"
        try:
            response = await self._client.get(url, timeout=self._timeout)
            response.raise_for_status()
            return response.json()
        except httpx.ConnectError as e:
            raise BackendUnavailableError(f"Cannot connect to inference server at {self.base_url}: {e}")
        except httpx.HTTPStatusError as e:
            raise BackendUnavailableError(f"Inference server returned error: {e.response.status_code}")
        except httpx.TimeoutException:
            raise BackendUnavailableError("Inference server request timed out.")
        except ValueError:
            raise BackendUnavailableError(f"Inference server returned invalid JSON for {path}.")

    @staticmethod
    def _parse_models(data: dict) -> list[LoadedModel]:
        if not isinstance(data, dict):
            raise BackendUnavailableError("Inference server returned an unexpected payload.")
        models = []
        for m in data.get("models") or []:
            size_bytes = m.get("size")
            models.append(LoadedModel(
                name=m.get("name") or m.get("model", ""),
                size_bytes=size_bytes,
                size_gb=size_in_gb(size_bytes),
            ))
        return models
