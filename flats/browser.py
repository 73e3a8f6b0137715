"""Browser lifecycle management with launch recovery."""

from __future__ import annotations

import asyncio
import enum
import glob
import logging
import os
import shutil
import subprocess
import sys
from typing import Any, Awaitable, Callable, Dict, Optional

from playwright.async_api import TimeoutError as PlaywrightTimeoutError
from playwright.async_api import async_playwright

from .config import BrowserConfig, is_production

logger = logging.getLogger(__name__)

STALE_PROCESS_PATTERNS = ("chromium", "chrome")
STALE_TEMP_GLOBS = ("/tmp/.org.chromium.*", "/tmp/playwright*")


class LaunchFailure(enum.Enum):
    NOT_FOUND = "executable not found"
    TIMEOUT = "timeout"
    SPAWN = "spawn failure"
    OTHER = "other"


class SessionState(enum.Enum):
    UNINITIALIZED = "uninitialized"
    LAUNCHING = "launching"
    READY = "ready"
    CLOSING = "closing"


class BrowserLaunchError(RuntimeError):
    """Raised when the browser cannot be started, even after recovery."""

    def __init__(self, message: str, failure: LaunchFailure) -> None:
        super().__init__(message)
        self.failure = failure


def classify_launch_error(exc: BaseException) -> LaunchFailure:
    """Map a browser launch error onto the recovery it calls for."""

    message = str(exc).lower()
    if isinstance(exc, FileNotFoundError) or "executable doesn't exist" in message or "browser executable" in message:
        return LaunchFailure.NOT_FOUND
    if isinstance(exc, (PlaywrightTimeoutError, asyncio.TimeoutError)) or "timeout" in message:
        return LaunchFailure.TIMEOUT
    if isinstance(exc, OSError) or "failed to launch" in message or "spawn" in message:
        return LaunchFailure.SPAWN
    return LaunchFailure.OTHER


def install_browser() -> None:
    """Download the Chromium build Playwright expects."""

    logger.info("Installing Playwright chromium...")
    subprocess.run([sys.executable, "-m", "playwright", "install", "chromium"], check=True)


def cleanup_stale_processes() -> None:
    """Kill leftover browser processes and remove their temp files.

    Every step is best-effort; failures are only logged.
    """

    for pattern in STALE_PROCESS_PATTERNS:
        try:
            subprocess.run(["pkill", "-f", pattern], check=False, capture_output=True)
        except (OSError, subprocess.SubprocessError) as exc:
            logger.debug("pkill %s failed: %s", pattern, exc)
    for pattern in STALE_TEMP_GLOBS:
        try:
            paths = glob.glob(pattern)
        except OSError as exc:
            logger.debug("Could not list %s: %s", pattern, exc)
            continue
        for path in paths:
            try:
                if os.path.isdir(path):
                    shutil.rmtree(path, ignore_errors=True)
                else:
                    os.remove(path)
            except OSError as exc:
                logger.debug("Could not remove %s: %s", path, exc)
    logger.info("Stale browser cleanup completed")


class BrowserSession:
    """Owns the Playwright driver, browser and context for one run attempt.

    ``open()`` walks UNINITIALIZED -> LAUNCHING -> READY and ``close()`` goes
    through CLOSING back to UNINITIALIZED. ``close()`` never raises.
    """

    def __init__(
        self,
        config: Optional[BrowserConfig] = None,
        *,
        environment: Optional[str] = None,
        driver_factory: Callable[[], Any] = async_playwright,
        installer: Callable[[], None] = install_browser,
        sleep: Callable[[float], Awaitable[Any]] = asyncio.sleep,
    ) -> None:
        self.config = config or BrowserConfig()
        self.environment = environment
        self.state = SessionState.UNINITIALIZED
        self.browser: Any = None
        self.context: Any = None
        self._driver: Any = None
        self._driver_factory = driver_factory
        self._installer = installer
        self._sleep = sleep

    async def __aenter__(self) -> "BrowserSession":
        return await self.open()

    async def __aexit__(self, *exc_info: Any) -> None:
        await self.close()

    async def open(self) -> "BrowserSession":
        logger.info("Initializing browser...")
        await self._release()
        if is_production(self.environment):
            await asyncio.to_thread(cleanup_stale_processes)

        self.state = SessionState.LAUNCHING
        try:
            self._driver = await self._driver_factory().start()
            self.browser = await self._launch()
            self.context = await self.browser.new_context(**self._context_options())
        except BaseException:
            await self._release()
            raise
        self.state = SessionState.READY
        logger.info("Browser initialized")
        return self

    async def new_page(self) -> Any:
        if self.state is not SessionState.READY or self.context is None:
            raise RuntimeError("Browser not initialized. Call open() first.")
        return await self.context.new_page()

    async def close(self) -> None:
        self.state = SessionState.CLOSING
        await self._release()

    def _launch_options(self, timeout_ms: int) -> Dict[str, Any]:
        return {
            "headless": self.config.headless,
            "timeout": timeout_ms,
            "args": list(self.config.args),
        }

    def _context_options(self) -> Dict[str, Any]:
        return {
            "user_agent": self.config.user_agent,
            "viewport": {"width": self.config.viewport_width, "height": self.config.viewport_height},
            "locale": self.config.locale,
            "timezone_id": self.config.timezone_id,
            "extra_http_headers": dict(self.config.extra_headers),
        }

    async def _launch(self) -> Any:
        options = self._launch_options(self.config.launch_timeout_ms)
        try:
            return await self._driver.chromium.launch(**options)
        except Exception as exc:
            failure = classify_launch_error(exc)
            logger.warning("Browser launch failed (%s): %s", failure.value, exc)
            if failure is LaunchFailure.OTHER:
                raise BrowserLaunchError(f"Browser launch failed: {exc}", failure) from exc

        if failure is LaunchFailure.NOT_FOUND:
            await self._install()
        elif failure is LaunchFailure.TIMEOUT:
            logger.info("Retrying launch with %dms timeout", self.config.extended_launch_timeout_ms)
            options = self._launch_options(self.config.extended_launch_timeout_ms)
        else:
            logger.info("Waiting %.1fs before retrying launch", self.config.spawn_cooldown_seconds)
            await self._sleep(self.config.spawn_cooldown_seconds)

        try:
            return await self._driver.chromium.launch(**options)
        except Exception as exc:
            raise BrowserLaunchError(f"Browser launch retry failed: {exc}", failure) from exc

    async def _install(self) -> None:
        try:
            await asyncio.to_thread(self._installer)
        except Exception as exc:
            logger.error("Failed to install browser: %s", exc)
            raise BrowserLaunchError(
                "Could not initialize browser after installation attempt", LaunchFailure.NOT_FOUND
            ) from exc
        await self._sleep(self.config.install_settle_seconds)

    async def _release(self) -> None:
        resources = (
            ("context", self.context, "close"),
            ("browser", self.browser, "close"),
            ("driver", self._driver, "stop"),
        )
        self.context = None
        self.browser = None
        self._driver = None
        for name, resource, method in resources:
            if resource is None:
                continue
            try:
                await getattr(resource, method)()
            except Exception as exc:
                logger.warning("Cleanup warning (non-fatal) closing %s: %s", name, exc)
        self.state = SessionState.UNINITIALIZED


__all__ = [
    "BrowserLaunchError",
    "BrowserSession",
    "LaunchFailure",
    "SessionState",
    "classify_launch_error",
    "cleanup_stale_processes",
    "install_browser",
]
