"""
Configuration centralisée du logging pour le bot Discord.

Objectifs :
- Un seul setup idempotent (évite la duplication des handlers, y compris ceux de discord.py)
- Déduplication des messages identiques rapprochés (ex : rafales d'erreurs pendant une purge)
- Format uniforme, niveau fourni par la ligne de commande ou LOG_LEVEL
"""
from __future__ import annotations

import logging
import os
import threading
import time
from typing import Optional

_INITIALIZED = False

DEFAULT_FORMAT = '[%(asctime)s] %(levelname)s %(name)s: %(message)s'
# Fenêtre pendant laquelle un message identique est ignoré
DEDUP_WINDOW_SECONDS = 30.0
# Bibliothèques bavardes ramenées à WARNING
NOISY_LOGGERS = ("discord.gateway", "discord.http", "httpx", "httpcore")


class _DeduplicateFilter(logging.Filter):
    def __init__(self, window: float = DEDUP_WINDOW_SECONDS):
        super().__init__()
        self.window = window
        self._lock = threading.Lock()
        self._last_seen: dict[tuple[str, int, str], float] = {}

    def filter(self, record: logging.LogRecord) -> bool:  # noqa: D401
        # Les traces d'exception ne sont jamais filtrées
        if record.exc_info:
            return True
        key = (record.name, record.levelno, record.getMessage())
        now = time.monotonic()
        with self._lock:
            last = self._last_seen.get(key)
            self._last_seen[key] = now
            if len(self._last_seen) > 5000:
                self._last_seen = {k: t for k, t in self._last_seen.items() if now - t < self.window}
        return last is None or now - last >= self.window


def setup_logging(level: Optional[str] = None, force: bool = False) -> None:
    global _INITIALIZED
    if _INITIALIZED and not force:
        return

    root = logging.getLogger()
    for h in list(root.handlers):
        root.removeHandler(h)
    handler = logging.StreamHandler()
    handler.addFilter(_DeduplicateFilter())
    handler.setFormatter(logging.Formatter(DEFAULT_FORMAT))
    root.addHandler(handler)

    level_name = (level or os.getenv("LOG_LEVEL", "INFO")).upper()
    root.setLevel(getattr(logging, level_name, logging.INFO))
    for name in NOISY_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)
    _INITIALIZED = True


__all__ = ["setup_logging"]
