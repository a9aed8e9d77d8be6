"""Unit tests for nvidia-smi output parsing and the GpuReader."""

import asyncio
from datetime import datetime, timezone

import pytest

from lanmon.services.gpu import GpuQueryError, GpuReader, gpu_query_command, parse_gpu_csv
from tests.mocks.fake_process import VanishingProcess, spawn

CHECKED_AT = datetime(2026, 10, 19, 12, 0, tzinfo=timezone.utc)

TWO_GPUS = """\
0, NVIDIA GeForce RTX 3090, 45, 62, 10240, 24576, 215.50
1, NVIDIA GeForce RTX 3090, 98, 86, 23000, 24576, 340.12
"""


def test_query_command_shape():
    cmd = gpu_query_command()
    assert cmd[0] == "nvidia-smi"
    assert "--query-gpu=index,name,utilization.gpu,temperature.gpu,memory.used,memory.total,power.draw" in cmd
    assert "--format=csv,noheader,nounits" in cmd


def test_parses_one_reading_per_row():
    gpus = parse_gpu_csv(TWO_GPUS, CHECKED_AT)
    assert [g.id for g in gpus] == [0, 1]
    first = gpus[0]
    assert first.name == "NVIDIA GeForce RTX 3090"
    assert first.utilization == 45
    assert first.temperature == 62
    assert first.memory_used == 10240
    assert first.memory_total == 24576
    assert first.memory_utilization == 41.7
    assert first.power_draw == 215.5
    assert first.status == "up"
    assert first.last_checked == CHECKED_AT


def test_memory_utilization_ties_round_up():
    gpus = parse_gpu_csv("0, GPU, 10, 40, 1024, 16384, 3", CHECKED_AT)
    assert gpus[0].memory_utilization == 6.3


def test_warning_at_or_above_threshold():
    gpus = parse_gpu_csv(TWO_GPUS, CHECKED_AT)
    assert gpus[1].status == "warning"

    exactly = parse_gpu_csv("0, GPU, 10, 85, 1, 2, 3", CHECKED_AT)
    assert exactly[0].status == "warning"

    below = parse_gpu_csv("0, GPU, 10, 84, 1, 2, 3", CHECKED_AT)
    assert below[0].status == "up"


def test_custom_threshold():
    gpus = parse_gpu_csv("0, GPU, 10, 70, 1, 2, 3", CHECKED_AT, warning_temp_c=70)
    assert gpus[0].status == "warning"


def test_not_applicable_memory_is_null():
    gpus = parse_gpu_csv("0, NVIDIA GB10, 3, 41, [N/A], [N/A], 11.06", CHECKED_AT)
    gpu = gpus[0]
    assert gpu.memory_used is None
    assert gpu.memory_total is None
    assert gpu.memory_utilization is None
    assert gpu.status == "up"

    data = gpu.model_dump(by_alias=True, mode="json")
    assert data["memoryUsed"] is None
    assert data["memoryTotal"] is None
    assert data["memoryUtilization"] is None


@pytest.mark.parametrize("marker", ["[Not Supported]", "N/A", "[N/A]", ""])
def test_not_applicable_markers(marker):
    gpus = parse_gpu_csv(f"0, GPU, 10, 40, 100, 200, {marker}", CHECKED_AT)
    assert gpus[0].power_draw is None


def test_unknown_temperature_is_not_a_warning():
    gpus = parse_gpu_csv("0, GPU, 10, [N/A], 100, 200, 50", CHECKED_AT)
    assert gpus[0].temperature is None
    assert gpus[0].status == "up"


def test_blank_output_has_no_gpus():
    assert parse_gpu_csv("\n\n", CHECKED_AT) == []


def test_wrong_field_count_raises():
    with pytest.raises(GpuQueryError):
        parse_gpu_csv("0, GPU, 10", CHECKED_AT)


class TestGpuReader:
    async def test_missing_binary_reports_error_status(self):
        reader = GpuReader(command=gpu_query_command("/nonexistent/nvidia-smi"))
        status = await reader.read_status()
        assert status.status == "error"
        assert status.gpus == []
        assert "nvidia-smi" in status.error

    async def test_missing_binary_raises_from_read_gpu_readings(self):
        reader = GpuReader(command=["/nonexistent/nvidia-smi"])
        with pytest.raises(GpuQueryError):
            await reader.read_gpu_readings()

    async def test_nonzero_exit_is_error(self):
        reader = GpuReader(command=["false"])
        status = await reader.read_status()
        assert status.status == "error"

    async def test_reads_tool_output(self):
        reader = GpuReader(command=["printf", "0, Test GPU, 12, 50, 100, 400, 30.5\\n"])
        status = await reader.read_status()
        assert status.status == "ok"
        assert status.error is None
        assert len(status.gpus) == 1
        assert status.gpus[0].memory_utilization == 25.0

    async def test_hanging_tool_times_out(self):
        reader = GpuReader(command=["sleep", "10"], timeout_s=0.2)
        status = await reader.read_status()
        assert status.status == "error"
        assert "timed out" in status.error

    async def test_tool_exiting_during_kill_is_still_an_error_status(self, monkeypatch):
        proc = VanishingProcess()
        monkeypatch.setattr(asyncio, "create_subprocess_exec", spawn(proc))

        status = await GpuReader(timeout_s=0.1).read_status()

        assert proc.kill_attempts == 1
        assert status.status == "error"
        assert "timed out" in status.error
