"""Studio and one-bedroom availability watcher for flatsatpcm.com."""

from .browser import BrowserLaunchError, BrowserSession
from .config import SiteConfig, load_config
from .dedup import SeenKeys
from .discover import discover
from .extract import extract
from .models import Apartment, FloorplanCandidate, RawUnit, ScrapeLog
from .workflow import FloorplanScraper, normalize_units, scrape_apartments

__all__ = [
    "Apartment",
    "BrowserLaunchError",
    "BrowserSession",
    "FloorplanCandidate",
    "FloorplanScraper",
    "RawUnit",
    "ScrapeLog",
    "SeenKeys",
    "SiteConfig",
    "discover",
    "extract",
    "load_config",
    "normalize_units",
    "scrape_apartments",
]
