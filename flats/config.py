"""Site contract and runtime configuration."""

from __future__ import annotations

import logging
import os
from pathlib import Path
from typing import Dict, List, Literal, Optional

import yaml
from pydantic import BaseModel, Field

from .heuristics import FLOORPLAN_URL_TEMPLATE, PRICE_MARKER

logger = logging.getLogger(__name__)

CONFIG_PATH = Path("config/site.yml")
PRODUCTION_ENVIRONMENTS = {"production", "prod"}

DEFAULT_LAUNCH_ARGS = [
    "--no-sandbox",
    "--disable-dev-shm-usage",
    "--disable-gpu",
    "--disable-web-security",
    "--disable-features=VizDisplayCompositor",
    "--disable-background-timer-throttling",
    "--disable-backgrounding-occluded-windows",
    "--disable-renderer-backgrounding",
    "--single-process",
    "--no-zygote",
    "--disable-extensions",
    "--disable-default-apps",
    "--disable-background-networking",
    "--disable-sync",
    "--disable-translate",
    "--disable-ipc-flooding-protection",
]

DEFAULT_HEADERS = {
    "Accept": "text/html,application/xhtml+xml,application/xml;q=0.9,image/webp,*/*;q=0.8",
    "Accept-Language": "en-US,en;q=0.5",
    "Accept-Encoding": "gzip, deflate",
    "DNT": "1",
    "Connection": "keep-alive",
    "Upgrade-Insecure-Requests": "1",
}


class NavigationStrategy(BaseModel):
    """One page-load completion condition and how long to wait for it."""

    name: str
    wait_until: Literal["commit", "domcontentloaded", "load", "networkidle"]
    timeout_ms: int = Field(gt=0)


def _default_strategies() -> List[NavigationStrategy]:
    return [
        NavigationStrategy(name="DOM loaded", wait_until="domcontentloaded", timeout_ms=30000),
        NavigationStrategy(name="full load", wait_until="load", timeout_ms=45000),
        NavigationStrategy(name="network idle", wait_until="networkidle", timeout_ms=60000),
    ]


class BrowserConfig(BaseModel):
    headless: bool = True
    launch_timeout_ms: int = 30000
    extended_launch_timeout_ms: int = 60000
    spawn_cooldown_seconds: float = 5.0
    install_settle_seconds: float = 2.0
    args: List[str] = Field(default_factory=lambda: list(DEFAULT_LAUNCH_ARGS))
    user_agent: str = (
        "Mozilla/5.0 (Macintosh; Intel Mac OS X 10_15_7) AppleWebKit/537.36 "
        "(KHTML, like Gecko) Chrome/120.0.0.0 Safari/537.36"
    )
    viewport_width: int = 1920
    viewport_height: int = 1080
    locale: str = "en-US"
    timezone_id: str = "America/New_York"
    extra_headers: Dict[str, str] = Field(default_factory=lambda: dict(DEFAULT_HEADERS))


class SiteConfig(BaseModel):
    """Everything the pipeline assumes about the target site."""

    name: str = "flatsatpcm"
    index_url: str = "https://flatsatpcm.com/floorplans/"
    floorplan_url_template: str = FLOORPLAN_URL_TEMPLATE
    card_selector: str = ".jd-fp-floorplan-card"
    title_selector: str = 'h1, h2, h3, .jd-fp-floorplan-card__title, [class*="title"]'
    price_marker: str = PRICE_MARKER
    disclosure_selector: str = (
        'button:has-text("Check Availability"), [class*="availability"], '
        '[class*="check"], button:has-text("Availability")'
    )
    container_selectors: List[str] = Field(
        default_factory=lambda: [
            ".availability-dropdown",
            ".unit-details",
            '[class*="unit"]',
            '[class*="availability"]',
            ".dropdown-content",
            ".unit-info",
        ]
    )
    strategies: List[NavigationStrategy] = Field(default_factory=_default_strategies)
    detail_wait_until: Literal["domcontentloaded", "load", "networkidle"] = "networkidle"
    detail_timeout_ms: int = 30000

    card_timeout_ms: int = 5000
    scroll_timeout_ms: int = 3000
    click_timeout_ms: int = 5000
    container_timeout_ms: int = 5000
    body_timeout_ms: int = 10000

    settle_ms: int = 2000
    lazy_load_ms: int = 3000
    scroll_back_ms: int = 1000
    card_pause_ms: int = 500
    disclosure_pause_ms: int = 1000

    max_attempts: int = Field(default=3, ge=1)
    retry_delay_seconds: float = 5.0

    browser: BrowserConfig = Field(default_factory=BrowserConfig)


def load_config(path: str | os.PathLike[str] | None = None) -> SiteConfig:
    """Load the site contract from YAML, falling back to built-in defaults.

    The path defaults to ``$FLATS_CONFIG`` and then ``config/site.yml``.
    """

    config_path = Path(path or os.environ.get("FLATS_CONFIG") or CONFIG_PATH)
    if not config_path.exists():
        if path is not None:
            raise FileNotFoundError(f"Config not found at '{config_path}'")
        logger.debug("No site config at %s, using defaults", config_path)
        return SiteConfig()
    with open(config_path, "r", encoding="utf-8") as handle:
        data = yaml.safe_load(handle.read()) or {}
    logger.debug("Loaded site config from %s", config_path)
    return SiteConfig.model_validate(data)


def app_environment() -> str:
    return os.environ.get("APP_ENV", "development").strip().lower()


def is_production(environment: Optional[str] = None) -> bool:
    return (environment or app_environment()) in PRODUCTION_ENVIRONMENTS


__all__ = [
    "BrowserConfig",
    "NavigationStrategy",
    "SiteConfig",
    "load_config",
    "app_environment",
    "is_production",
]
