"""asyncio subprocess stand-in for deadline races."""

import asyncio


class VanishingProcess:
    """Outlasts the caller's timeout, then exits on its own before ``kill()`` lands."""

    def __init__(self, hang: float = 10):
        self.hang = hang
        self.returncode = None
        self.kill_attempts = 0

    async def wait(self) -> int:
        if self.kill_attempts == 0:
            await asyncio.sleep(self.hang)
        self.returncode = 0
        return 0

    async def communicate(self) -> tuple[bytes, bytes]:
        await asyncio.sleep(self.hang)
        return b"", b""

    def kill(self) -> None:
        self.kill_attempts += 1
        raise ProcessLookupError


def spawn(proc):
    async def create_subprocess_exec(*args, **kwargs):
        return proc

    return create_subprocess_exec
