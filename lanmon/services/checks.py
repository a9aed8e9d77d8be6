"""Protocol checkers: HTTP reachability, ICMP ping and inference-server checks.

Every checker returns a plain result dict and never raises: failures are
reported as ``status="down"`` with ``error`` set. ``CheckRunner`` turns those
into immutable ``CheckOutcome`` objects and runs full sweeps concurrently.
"""

import asyncio
import platform
import time
from datetime import datetime, timezone

import httpx
import structlog

from lanmon.schemas.services import CheckOutcome, Target
from lanmon.services.inference.base import InferenceBackend
from lanmon.services.inference.ollama_client import OllamaClient

logger = structlog.get_logger()

USER_AGENT = "lan-monitor/1.0"
DEFAULT_HTTP_TIMEOUT_MS = 5000
DEFAULT_PING_TIMEOUT_S = 2
PING_FAILED = "Ping failed"

# Extra time allowed for the ping process to start and exit before it is killed
_PING_GRACE_SECONDS = 0.5


def _elapsed_ms(start: float) -> int:
    return int(round((time.monotonic() - start) * 1000))


def _base_url(url: str) -> str:
    parsed = httpx.URL(url)
    return f"{parsed.scheme}://{parsed.netloc.decode('ascii')}"


async def check_http(
    client: httpx.AsyncClient,
    url: str,
    timeout_ms: int = DEFAULT_HTTP_TIMEOUT_MS,
    user_agent: str = USER_AGENT,
) -> dict:
    """GET ``url``; ``up`` iff the response is 2xx.

    The whole request, including redirects and body, is cancelled once
    ``timeout_ms`` elapses. Non-2xx responses are reachable-but-down and keep
    their status code.
    """
    timeout_s = timeout_ms / 1000
    start = time.monotonic()
    try:
        response = await asyncio.wait_for(
            client.get(
                url,
                headers={"User-Agent": user_agent},
                follow_redirects=True,
                timeout=timeout_s,
            ),
            timeout=timeout_s,
        )
        return {
            "status": "up" if response.is_success else "down",
            "response_ms": _elapsed_ms(start),
            "status_code": response.status_code,
        }
    except (asyncio.TimeoutError, httpx.TimeoutException):
        return {
            "status": "down",
            "response_ms": _elapsed_ms(start),
            "error": f"Request timed out after {timeout_ms}ms",
        }
    except Exception as e:
        return {
            "status": "down",
            "response_ms": _elapsed_ms(start),
            "error": str(e)[:500] or e.__class__.__name__,
        }


def ping_command(host: str, timeout_s: float = DEFAULT_PING_TIMEOUT_S, system: str | None = None) -> list[str]:
    """Single-echo ping. macOS takes ``-W`` in milliseconds, Linux in seconds."""
    system = system or platform.system()
    if system == "Darwin":
        wait = str(int(timeout_s * 1000))
    else:
        wait = str(max(1, int(round(timeout_s))))
    return ["ping", "-c", "1", "-W", wait, host]


async def check_ping(
    host: str,
    timeout_s: float = DEFAULT_PING_TIMEOUT_S,
    command: list[str] | None = None,
) -> dict:
    """One ICMP echo through the platform ping utility.

    Any failure (missing binary, non-zero exit, overrun) is reported with the
    generic ``PING_FAILED`` detail; ping's own error output is not parsed.
    """
    cmd = command or ping_command(host, timeout_s)
    start = time.monotonic()
    try:
        proc = await asyncio.create_subprocess_exec(
            *cmd,
            stdout=asyncio.subprocess.DEVNULL,
            stderr=asyncio.subprocess.DEVNULL,
        )
    except OSError:
        return {"status": "down", "response_ms": _elapsed_ms(start), "error": PING_FAILED}

    try:
        returncode = await asyncio.wait_for(proc.wait(), timeout=timeout_s + _PING_GRACE_SECONDS)
    except asyncio.TimeoutError:
        try:
            proc.kill()
        except ProcessLookupError:
            pass  # exited between the deadline and the kill
        await proc.wait()
        return {"status": "down", "response_ms": _elapsed_ms(start), "error": PING_FAILED}

    if returncode != 0:
        return {"status": "down", "response_ms": _elapsed_ms(start), "error": PING_FAILED}
    return {"status": "up", "response_ms": _elapsed_ms(start)}


async def check_inference_server(
    client: httpx.AsyncClient,
    url: str,
    timeout_ms: int = DEFAULT_HTTP_TIMEOUT_MS,
    backend: InferenceBackend | None = None,
    user_agent: str = USER_AGENT,
) -> dict:
    """HTTP health check, then a best-effort listing of loaded models.

    The model listing only runs when the health check is ``up`` and can never
    turn the outcome ``down``: on failure ``extra.models`` is left empty. Both
    calls share one ``timeout_ms`` budget; the listing gets whatever the
    health check left over and is skipped when nothing is left.
    """
    deadline = time.monotonic() + timeout_ms / 1000
    result = await check_http(client, url, timeout_ms=timeout_ms, user_agent=user_agent)
    if result["status"] != "up":
        return result

    backend = backend or OllamaClient(_base_url(url), http_client=client, timeout=timeout_ms / 1000)
    models: list[dict] = []
    remaining = deadline - time.monotonic()
    if remaining <= 0:
        logger.debug("model_list_skipped", url=url, timeout_ms=timeout_ms)
    else:
        try:
            loaded = await asyncio.wait_for(backend.list_loaded_models(), timeout=remaining)
            models = [m.model_dump(by_alias=True) for m in loaded]
        except Exception as e:
            logger.debug("model_list_unavailable", url=url, reason=str(e) or e.__class__.__name__)

    result["extra"] = {"models": models}
    return result


class CheckRunner:
    """Dispatches targets to the checker matching their protocol kind."""

    def __init__(
        self,
        http_client: httpx.AsyncClient,
        http_timeout_ms: int = DEFAULT_HTTP_TIMEOUT_MS,
        ping_timeout_s: float = DEFAULT_PING_TIMEOUT_S,
        user_agent: str = USER_AGENT,
        inference_backends: dict[str, InferenceBackend] | None = None,
    ):
        self._client = http_client
        self._http_timeout_ms = http_timeout_ms
        self._ping_timeout_s = ping_timeout_s
        self._user_agent = user_agent
        self._inference_backends = inference_backends or {}

    async def check(self, target: Target) -> CheckOutcome:
        base = {
            "id": target.id,
            "name": target.name,
            "host": target.host,
            "last_checked": datetime.now(timezone.utc),
        }

        if target.type == "http":
            result = await self._check_url(target, check_http)
        elif target.type == "ping":
            result = await check_ping(target.host, timeout_s=self._ping_timeout_s)
        elif target.type == "ollama":
            result = await self._check_url(
                target, check_inference_server, backend=self._inference_backends.get(target.id)
            )
        else:
            return CheckOutcome(**base, status="unknown")

        return CheckOutcome(**base, **result)

    def inference_backend(self, target: Target) -> InferenceBackend:
        """Registered backend for ``target``, else an Ollama client on the shared pool."""
        backend = self._inference_backends.get(target.id)
        if backend is None:
            backend = OllamaClient(
                _base_url(target.url), http_client=self._client, timeout=self._http_timeout_ms / 1000
            )
        return backend

    async def sweep(self, targets: list[Target]) -> list[CheckOutcome]:
        """Check every target concurrently; results keep registry order."""
        return list(await asyncio.gather(*(self.check(t) for t in targets)))

    async def _check_url(self, target: Target, checker, **kwargs) -> dict:
        if not target.url:
            return {"status": "down", "response_ms": 0, "error": "No URL configured"}
        return await checker(
            self._client,
            target.url,
            timeout_ms=self._http_timeout_ms,
            user_agent=self._user_agent,
            **kwargs,
        )
