"""Preview image generation by running programs in a headless VICE emulator.

Each run gets its own virtual X display. The display is owned by a
``DisplaySession`` and torn down on every exit path, including when the
caller stops waiting for the result.
"""

from __future__ import annotations

import asyncio
import logging
import os
import random
import shutil
import signal
import time
from pathlib import Path
from typing import TYPE_CHECKING

from PIL import Image, ImageDraw

from c64bot.errors import ArtifactError, DownloadError
from c64bot.observability.health_state import mark_progress

if TYPE_CHECKING:
    from c64bot.config import BotConfig
    from c64bot.services.download_service import DownloadService

logger = logging.getLogger(__name__)

_TERMINATE_GRACE_SECONDS = 1.0
_DISPLAY_STARTUP_SECONDS = 0.5

# C64 power-on palette: light blue text on blue.
_C64_BLUE = (64, 49, 141)
_C64_LIGHT_BLUE = (120, 105, 196)
_PLACEHOLDER_SIZE = (384, 272)


async def _spawn(*argv: str, env: dict[str, str] | None = None) -> asyncio.subprocess.Process:
    """Start a process in its own session so its whole group can be signalled."""
    return await asyncio.create_subprocess_exec(
        *argv,
        stdout=asyncio.subprocess.DEVNULL,
        stderr=asyncio.subprocess.DEVNULL,
        env=env,
        start_new_session=True,
    )


def _kill_group(pid: int, sig: int) -> None:
    os.killpg(pid, sig)


class DisplaySession:
    """One isolated virtual X display (``Xvfb :N``)."""

    def __init__(self, display: int, *, xvfb_binary: str = "Xvfb") -> None:
        self.display = display
        self._xvfb_binary = xvfb_binary
        self._process: asyncio.subprocess.Process | None = None

    @property
    def env_value(self) -> str:
        return f":{self.display}"

    @property
    def running(self) -> bool:
        return self._process is not None and self._process.returncode is None

    async def start(self) -> None:
        self._process = await _spawn(
            self._xvfb_binary, self.env_value, "-screen", "0", "1024x768x24"
        )
        logger.debug("Started Xvfb on %s (pid %s)", self.env_value, self._process.pid)
        # Give the X server a moment to accept connections.
        await asyncio.sleep(_DISPLAY_STARTUP_SECONDS)

    async def terminate(self) -> None:
        """Stop the display process group; SIGTERM first, SIGKILL after a grace period."""
        process = self._process
        if process is None or process.returncode is not None:
            return

        try:
            _kill_group(process.pid, signal.SIGTERM)
            try:
                await asyncio.wait_for(process.wait(), timeout=_TERMINATE_GRACE_SECONDS)
            except TimeoutError:
                _kill_group(process.pid, signal.SIGKILL)
                await process.wait()
        except ProcessLookupError:
            pass
        except OSError as e:
            logger.warning("Failed to stop display %s by process group: %s", self.env_value, e)
            await self._pkill()
        logger.debug("Display %s terminated", self.env_value)

    async def _pkill(self) -> None:
        try:
            proc = await _spawn("pkill", "-f", f"Xvfb {self.env_value}")
            await proc.wait()
        except OSError as e:
            logger.error("pkill fallback for display %s failed: %s", self.env_value, e)

    async def __aenter__(self) -> "DisplaySession":
        await self.start()
        return self

    async def __aexit__(self, exc_type, exc, tb) -> None:
        await self.terminate()


class ArtifactGenerator:
    """Produces a preview PNG for a program or disk image.

    ``generate`` never raises unless ``use_default_if_failed`` is False; any
    failure to capture a real screenshot yields the default preview instead.
    """

    def __init__(self, config: "BotConfig", downloader: "DownloadService") -> None:
        self.config = config
        self._downloader = downloader

    def preflight(self) -> bool:
        """True if both the emulator and the virtual display binaries are on PATH."""
        missing = [
            binary
            for binary in (self.config.emulator_binary, self.config.xvfb_binary)
            if shutil.which(binary) is None
        ]
        if missing:
            logger.warning("Screenshot tools not available: %s", ", ".join(missing))
            return False
        return True

    def _allocate_display(self) -> int:
        start = self.config.xvfb_display_range_start
        size = max(1, self.config.xvfb_display_range_size)
        return random.randrange(start, start + size)

    def emulator_argv(self, file_path: Path, screenshot_path: Path) -> list[str]:
        return [
            self.config.emulator_binary,
            "-silent",
            "-autostart-warp",
            "-autostartprgmode",
            "1",
            "-VICIIborders",
            "0",
            "-VICIIfilter",
            "0",
            "-limitcycles",
            str(self.config.emulator_limit_cycles),
            "-exitscreenshot",
            str(screenshot_path),
            "-autostart",
            str(file_path),
        ]

    async def generate(
        self,
        file_path: Path,
        *,
        use_default_if_failed: bool = True,
        output_dir: Path | None = None,
    ) -> Path:
        """Run ``file_path`` in the emulator and return the path of a PNG preview.

        Args:
            file_path: Local program or disk image.
            use_default_if_failed: Return the default preview on failure instead of raising.
            output_dir: Where to write the image (defaults to the file's directory).
                Created if missing.

        Raises:
            ArtifactError: Only when ``use_default_if_failed`` is False.
        """
        output_dir = output_dir or file_path.parent
        output_dir.mkdir(parents=True, exist_ok=True)
        screenshot_path = output_dir / f"{file_path.stem}-{int(time.time() * 1000)}.png"

        try:
            return await self._capture(file_path, screenshot_path)
        except ArtifactError as e:
            if not use_default_if_failed:
                raise
            logger.warning("Screenshot for %s failed (%s), using default preview", file_path.name, e)
            return await self._default_preview(screenshot_path)

    async def _capture(self, file_path: Path, screenshot_path: Path) -> Path:
        if not self.preflight():
            raise ArtifactError("Emulator or virtual display not installed")

        session = DisplaySession(self._allocate_display(), xvfb_binary=self.config.xvfb_binary)
        try:
            await session.start()
            mark_progress("artifact.display_started")
            await self._run_emulator(session, file_path, screenshot_path)
            await asyncio.sleep(self.config.screenshot_delay_ms / 1000)
        except OSError as e:
            raise ArtifactError(f"Failed to launch {e.filename or 'process'}") from e
        finally:
            await session.terminate()

        if not screenshot_path.exists():
            raise ArtifactError("Emulator exited without writing a screenshot")

        logger.info("Screenshot captured for %s", file_path.name)
        return screenshot_path

    async def _run_emulator(
        self, session: DisplaySession, file_path: Path, screenshot_path: Path
    ) -> None:
        env = {**os.environ, "DISPLAY": session.env_value}
        process = await _spawn(*self.emulator_argv(file_path, screenshot_path), env=env)
        try:
            await asyncio.wait_for(process.wait(), timeout=self.config.emulator_timeout_seconds)
        except TimeoutError as e:
            logger.warning(
                "Emulator did not exit within %ss, killing it", self.config.emulator_timeout_seconds
            )
            try:
                _kill_group(process.pid, signal.SIGKILL)
            except ProcessLookupError:
                pass
            await process.wait()
            # VICE may still have written the exit screenshot.
            if not screenshot_path.exists():
                raise ArtifactError("Emulator timed out") from e
        except asyncio.CancelledError:
            try:
                _kill_group(process.pid, signal.SIGKILL)
            except ProcessLookupError:
                pass
            raise

    async def _default_preview(self, destination: Path) -> Path:
        """Fetch the configured default preview, or draw a placeholder."""
        url = self.config.default_screenshot_url
        if url:
            try:
                await self._downloader.download(url, destination)
                return destination
            except (DownloadError, OSError) as e:
                logger.warning("Default preview download failed: %s", e)

        destination.parent.mkdir(parents=True, exist_ok=True)
        await asyncio.to_thread(render_placeholder, destination)
        return destination


def render_placeholder(destination: Path) -> Path:
    """Draw a plain C64-style preview card."""
    image = Image.new("RGB", _PLACEHOLDER_SIZE, _C64_LIGHT_BLUE)
    draw = ImageDraw.Draw(image)
    width, height = _PLACEHOLDER_SIZE
    draw.rectangle((32, 36, width - 33, height - 37), fill=_C64_BLUE)
    draw.text((48, 56), "**** COMMODORE 64 ****", fill=_C64_LIGHT_BLUE)
    draw.text((48, 80), "NO PREVIEW AVAILABLE", fill=_C64_LIGHT_BLUE)
    draw.text((48, 104), "READY.", fill=_C64_LIGHT_BLUE)
    image.save(destination, format="PNG")
    return destination
