"""Application entry point and setup for the FlagIQ engine."""

from __future__ import annotations

import asyncio
import logging
import random
from typing import Optional

from flagiq.core.catalog import FlagCatalog
from flagiq.core.config import Settings, load_settings
from flagiq.core.game import GameService
from flagiq.core.local_packs import LocalPackRepository
from flagiq.core.modes import GameMode
from flagiq.core.reconciler import PlayerStateReconciler
from flagiq.core.remote import PlayerBackend
from flagiq.core.storage import LocalCache


def configure_logging(level: str = "INFO") -> None:
    """Configure application-wide logging with a standard format."""
    logging.basicConfig(
        level=getattr(logging, level.upper(), logging.INFO),
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
    )


def create_game(
    settings: Settings,
    identity: Optional[str] = None,
    remote: Optional[PlayerBackend] = None,
    rng: Optional[random.Random] = None,
) -> GameService:
    """Wire catalog, levels, cache and reconciler for one identity.

    Without ``identity`` the anonymous per-device id is used.
    """
    cache = LocalCache(settings.cache_path)
    if cache.language() is None:
        cache.set_language(settings.language)
    reconciler = PlayerStateReconciler(identity or cache.device_id(), cache, remote=remote)
    return GameService(
        reconciler,
        FlagCatalog(settings.catalog_path),
        local_packs=LocalPackRepository(),
        results=remote,
        rng=rng,
    )


def run() -> None:
    """Load settings, build the game for this device and report its state."""
    settings = load_settings()
    configure_logging(settings.log_level)

    game = create_game(settings)
    reconciler = game.reconciler
    asyncio.run(reconciler.sync())

    hearts = reconciler.hearts()
    classic = reconciler.mode_progress(GameMode.CLASSIC).stats()
    logging.info(
        "Player %s: %d coins, %d/%d hearts, classic level %d with %d stars",
        reconciler.identity, reconciler.coins, hearts.current, hearts.max, classic.level, classic.stars,
    )


if __name__ == "__main__":
    run()
