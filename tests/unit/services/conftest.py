"""Fixtures for driving ArtifactGenerator without real Xvfb/VICE binaries."""

from __future__ import annotations

import asyncio
import itertools
from pathlib import Path

import pytest

from c64bot.services import artifact_generator as generator_module

# Smallest valid PNG header so Pillow-free checks can tell it apart from the placeholder
PNG_BYTES = b"\x89PNG\r\n\x1a\n" + b"\x00" * 16


class FakeProcess:
    def __init__(self, pid: int, argv: tuple[str, ...]) -> None:
        self.pid = pid
        self.argv = argv
        self.returncode: int | None = None
        self.signals: list[int] = []
        self._done = asyncio.Event()

    def exit(self, code: int = 0) -> None:
        if self.returncode is None:
            self.returncode = code
            self._done.set()

    async def wait(self) -> int:
        await self._done.wait()
        return self.returncode


class FakeProcessTable:
    """Replacement for ``_spawn``/``_kill_group`` with scripted emulator behaviour.

    emulator_mode:
        "screenshot" - write the exit screenshot and exit quickly
        "no_image"   - exit quickly without writing anything
        "hang"       - never exit until killed
    """

    def __init__(self) -> None:
        self.emulator_mode = "screenshot"
        self.ignore_sigterm = False
        self.processes: list[FakeProcess] = []
        self._pids = itertools.count(1000)

    async def spawn(self, *argv: str, env: dict[str, str] | None = None) -> FakeProcess:
        process = FakeProcess(next(self._pids), argv)
        process.env = env
        self.processes.append(process)

        if argv[0] == "x64":
            if self.emulator_mode == "screenshot":
                shot = Path(argv[argv.index("-exitscreenshot") + 1])
                shot.write_bytes(PNG_BYTES)
                process.exit(0)
            elif self.emulator_mode == "no_image":
                process.exit(1)
        elif argv[0] == "pkill":
            process.exit(0)
        return process

    def kill_group(self, pid: int, sig: int) -> None:
        for process in self.processes:
            if process.pid == pid:
                process.signals.append(sig)
                if sig == 15 and self.ignore_sigterm:
                    return
                process.exit(-sig)
                return
        raise ProcessLookupError(pid)

    def by_binary(self, binary: str) -> list[FakeProcess]:
        return [p for p in self.processes if p.argv[0] == binary]

    @property
    def displays_running(self) -> list[FakeProcess]:
        return [p for p in self.by_binary("Xvfb") if p.returncode is None]


@pytest.fixture
def processes(monkeypatch) -> FakeProcessTable:
    """Patch process spawning and report every fake process started."""
    table = FakeProcessTable()
    monkeypatch.setattr(generator_module, "_spawn", table.spawn)
    monkeypatch.setattr(generator_module, "_kill_group", table.kill_group)
    monkeypatch.setattr(generator_module, "_DISPLAY_STARTUP_SECONDS", 0.0)
    monkeypatch.setattr(generator_module, "_TERMINATE_GRACE_SECONDS", 0.05)
    return table


@pytest.fixture
def binaries_present(monkeypatch):
    monkeypatch.setattr(generator_module.shutil, "which", lambda name: f"/usr/bin/{name}")


@pytest.fixture
def binaries_missing(monkeypatch):
    monkeypatch.setattr(generator_module.shutil, "which", lambda name: None)
