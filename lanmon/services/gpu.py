"""GPU telemetry via the vendor query tool (nvidia-smi)."""

import asyncio
import csv
import io
from datetime import datetime, timezone
from decimal import ROUND_HALF_UP, Decimal

import structlog

from lanmon.schemas.gpu import GpuReading, GpuStatus

logger = structlog.get_logger()

QUERY_FIELDS = (
    "index",
    "name",
    "utilization.gpu",
    "temperature.gpu",
    "memory.used",
    "memory.total",
    "power.draw",
)
DEFAULT_WARNING_TEMP_C = 85.0


class GpuQueryError(Exception):
    """The telemetry tool is missing, failed or produced unusable output."""


def gpu_query_command(binary: str = "nvidia-smi") -> list[str]:
    return [
        binary,
        f"--query-gpu={','.join(QUERY_FIELDS)}",
        "--format=csv,noheader,nounits",
    ]


def _parse_number(raw: str) -> float | None:
    """Numeric cell, or None for N/A-style markers ("[N/A]", "[Not Supported]")."""
    value = raw.strip()
    if not value or value.startswith("[") or value.upper() == "N/A":
        return None
    try:
        return float(value)
    except ValueError:
        return None


def _memory_utilization(used: float | None, total: float | None) -> float | None:
    if used is None or not total:
        return None
    percent = Decimal(str(used)) / Decimal(str(total)) * 100
    return float(percent.quantize(Decimal("0.1"), rounding=ROUND_HALF_UP))


def parse_gpu_csv(
    output: str,
    checked_at: datetime | None = None,
    warning_temp_c: float = DEFAULT_WARNING_TEMP_C,
) -> list[GpuReading]:
    """Parse ``--format=csv,noheader,nounits`` output into one reading per row."""
    checked_at = checked_at or datetime.now(timezone.utc)
    readings = []
    for row in csv.reader(io.StringIO(output.strip()), skipinitialspace=True):
        if not row or not any(cell.strip() for cell in row):
            continue
        if len(row) != len(QUERY_FIELDS):
            raise GpuQueryError(f"Expected {len(QUERY_FIELDS)} fields, got {len(row)}: {row!r}")

        index_raw, name, util, temp, mem_used, mem_total, power = (cell.strip() for cell in row)
        index = _parse_number(index_raw)
        position = len(readings)
        gpu_id = int(index) if index is not None else position

        temperature = _parse_number(temp)
        used = _parse_number(mem_used)
        total = _parse_number(mem_total)
        # Unknown temperature is not a warning signal
        status = "warning" if temperature is not None and temperature >= warning_temp_c else "up"

        readings.append(GpuReading(
            id=gpu_id,
            name=name or f"GPU {gpu_id}",
            utilization=_parse_number(util),
            memory_utilization=_memory_utilization(used, total),
            temperature=temperature,
            memory_used=used,
            memory_total=total,
            power_draw=_parse_number(power),
            status=status,
            last_checked=checked_at,
        ))
    return readings


class GpuReader:
    """Runs the telemetry tool and normalizes its output."""

    def __init__(
        self,
        command: list[str] | None = None,
        timeout_s: float = 10.0,
        warning_temp_c: float = DEFAULT_WARNING_TEMP_C,
    ):
        self._command = command or gpu_query_command()
        self._timeout_s = timeout_s
        self._warning_temp_c = warning_temp_c

    async def read_gpu_readings(self) -> list[GpuReading]:
        """Query the tool once. Raises GpuQueryError on any failure."""
        try:
            proc = await asyncio.create_subprocess_exec(
                *self._command,
                stdout=asyncio.subprocess.PIPE,
                stderr=asyncio.subprocess.PIPE,
            )
        except OSError as e:
            raise GpuQueryError(f"Cannot run {self._command[0]}: {e}") from e

        try:
            stdout, stderr = await asyncio.wait_for(proc.communicate(), timeout=self._timeout_s)
        except asyncio.TimeoutError:
            try:
                proc.kill()
            except ProcessLookupError:
                pass
            await proc.wait()
            raise GpuQueryError(f"{self._command[0]} timed out after {self._timeout_s}s")

        if proc.returncode != 0:
            detail = stderr.decode(errors="replace").strip() or stdout.decode(errors="replace").strip()
            raise GpuQueryError(f"{self._command[0]} exited with {proc.returncode}: {detail}")

        return parse_gpu_csv(
            stdout.decode(errors="replace"),
            warning_temp_c=self._warning_temp_c,
        )

    async def read_status(self) -> GpuStatus:
        """Never raises: tool failures become ``status="error"`` with no readings."""
        try:
            gpus = await self.read_gpu_readings()
        except GpuQueryError as e:
            logger.warning("gpu_query_failed", error=str(e))
            return GpuStatus(gpus=[], status="error", error=str(e))
        return GpuStatus(gpus=gpus, status="ok")
