"""
Configuration centrale du bot Discord.

Ce module charge les variables d'environnement (.env) et prépare :
- Les intents Discord (guilds, members : nécessaires à l'énumération des membres)
- Les chemins par défaut des fichiers de configuration, secrets et état
  (CONFIG_PATH, SECRETS_PATH, STATE_PATH), surchargeables en ligne de commande
- Le chargement de la configuration TOML (`load_config`) et des secrets dotenv (`load_secrets`)

Toute erreur de configuration lève `ConfigError` : le démarrage est alors interrompu.
"""
from __future__ import annotations

import os
import logging
import tomllib
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Optional

from dotenv import load_dotenv, dotenv_values
import discord

from core.errors import ConfigError
from core.permissions import Permission
from core.welcome import DesiredAnnouncement

load_dotenv()

logger = logging.getLogger(__name__)

INTENTS = discord.Intents.default()
INTENTS.members = True

CONFIG_PATH = os.getenv("CONFIG_PATH", "config.toml")
SECRETS_PATH = os.getenv("SECRETS_PATH", ".env")
STATE_PATH = os.getenv("STATE_PATH", "state.json")
LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO").upper()

PURGE_STRATEGIES = ("revoke", "recreate")
DEFAULT_CONFIRM_TIMEOUT = 60.0
DEFAULT_EBAS_TIMEOUT = 10.0


@dataclass(frozen=True)
class WelcomeConfig:
    channel_id: int
    text: Optional[str] = None
    file_content: Optional[str] = None
    sync_permissions: tuple[Permission, ...] = ()

    def content(self) -> Optional[str]:
        # Le texte en ligne prime sur le fichier ; aucun des deux => pas de message
        if self.text is not None:
            return self.text
        return self.file_content

    def desired(self) -> Optional[DesiredAnnouncement]:
        content = self.content()
        if content is None:
            return None
        return DesiredAnnouncement(channel_id=self.channel_id, content=content)


@dataclass(frozen=True)
class EbasConfig:
    url: str
    timeout: float = DEFAULT_EBAS_TIMEOUT


@dataclass(frozen=True)
class MemberConfig:
    role_id: int
    purge_permissions: tuple[Permission, ...] = ()
    strategy: str = "revoke"
    confirm_timeout: float = DEFAULT_CONFIRM_TIMEOUT


@dataclass(frozen=True)
class BotConfig:
    guild_id: int
    welcome: WelcomeConfig
    ebas: EbasConfig
    member: MemberConfig


@dataclass(frozen=True)
class Secrets:
    bot_token: str = field(repr=False)
    ebas_api_key: str = field(repr=False)
    ebas_association_id: str
    application_id: Optional[int] = None


def _section(data: dict, name: str) -> dict:
    value = data.get(name)
    if not isinstance(value, dict):
        raise ConfigError(f"Section [{name}] manquante ou invalide")
    return value


def _snowflake(section: dict, key: str, where: str) -> int:
    value = section.get(key)
    if isinstance(value, bool) or value is None:
        raise ConfigError(f"{where}.{key} manquant ou invalide")
    try:
        return int(value)
    except (TypeError, ValueError):
        raise ConfigError(f"{where}.{key} doit être un ID numérique") from None


def _rules(section: dict, key: str) -> Optional[tuple[Permission, ...]]:
    perms = section.get("permission") or {}
    if not isinstance(perms, dict):
        raise ConfigError("Bloc permission invalide")
    entries = perms.get(key)
    if entries is None:
        return None
    if not isinstance(entries, list):
        raise ConfigError(f"permission.{key} doit être une liste")
    return tuple(Permission.parse(e) for e in entries)


def _positive_float(section: dict, key: str, default: float) -> float:
    value: Any = section.get(key, default)
    try:
        value = float(value)
    except (TypeError, ValueError):
        raise ConfigError(f"{key} doit être un nombre") from None
    if value <= 0:
        raise ConfigError(f"{key} doit être strictement positif")
    return value


def load_config(path: Path | str) -> BotConfig:
    """
    Charge et valide le fichier TOML de configuration.

    Exemple minimal :
        guild = 123
        [welcome]
        channel = 456
        file = "welcome.md"       # ou text = "..."
        [ebas]
        url = "https://ebas.example.org/apis"
        [member]
        role = 789
        permission.purge = [{ user = 111 }, { role = 222 }]
    """
    p = Path(path)
    try:
        data = tomllib.loads(p.read_text(encoding="utf-8"))
    except OSError as exc:
        raise ConfigError(f"Lecture impossible de la configuration {p}: {exc}") from exc
    except tomllib.TOMLDecodeError as exc:
        raise ConfigError(f"TOML invalide dans {p}: {exc}") from exc

    guild_id = _snowflake(data, "guild", "config")

    w = _section(data, "welcome")
    text = w.get("text")
    if text is not None and not isinstance(text, str):
        raise ConfigError("welcome.text doit être une chaîne")
    file_content = None
    if w.get("file") and text is None:
        # Relatif au dossier du fichier de configuration
        welcome_file = p.parent / str(w["file"])
        try:
            file_content = welcome_file.read_text(encoding="utf-8")
        except OSError as exc:
            raise ConfigError(f"Lecture impossible du message de bienvenue {welcome_file}: {exc}") from exc

    m = _section(data, "member")
    purge_rules = _rules(m, "purge") or ()
    strategy = str(m.get("strategy", "revoke")).lower()
    if strategy not in PURGE_STRATEGIES:
        raise ConfigError(f"member.strategy inconnue: {strategy!r} ({' | '.join(PURGE_STRATEGIES)})")
    sync_rules = _rules(w, "sync")

    e = _section(data, "ebas")
    url = e.get("url")
    if not isinstance(url, str) or not url.strip():
        raise ConfigError("ebas.url manquant")

    cfg = BotConfig(
        guild_id=guild_id,
        welcome=WelcomeConfig(
            channel_id=_snowflake(w, "channel", "welcome"),
            text=text,
            file_content=file_content,
            sync_permissions=sync_rules if sync_rules is not None else purge_rules,
        ),
        ebas=EbasConfig(url=url.strip(), timeout=_positive_float(e, "timeout", DEFAULT_EBAS_TIMEOUT)),
        member=MemberConfig(
            role_id=_snowflake(m, "role", "member"),
            purge_permissions=purge_rules,
            strategy=strategy,
            confirm_timeout=_positive_float(m, "confirm_timeout", DEFAULT_CONFIRM_TIMEOUT),
        ),
    )
    if not cfg.member.purge_permissions:
        logger.warning("Aucune règle member.permission.purge : la purge est inaccessible")
    return cfg


def load_secrets(path: Path | str) -> Secrets:
    """
    Charge les secrets depuis un fichier dotenv ; l'environnement du processus est prioritaire.

    Clés : BOT_TOKEN, EBAS_API_KEY, EBAS_ASSOCIATION_ID (obligatoires), APPLICATION_ID (optionnelle).
    """
    p = Path(path)
    if not p.is_file():
        raise ConfigError(f"Fichier de secrets introuvable: {p}")
    values = {k: v for k, v in dotenv_values(p).items() if v}
    for key in ("BOT_TOKEN", "EBAS_API_KEY", "EBAS_ASSOCIATION_ID", "APPLICATION_ID"):
        env_value = os.getenv(key)
        if env_value:
            values[key] = env_value
    missing = [k for k in ("BOT_TOKEN", "EBAS_API_KEY", "EBAS_ASSOCIATION_ID") if not values.get(k)]
    if missing:
        raise ConfigError(f"Secrets manquants: {', '.join(missing)}")
    app_id = values.get("APPLICATION_ID")
    try:
        application_id = int(app_id) if app_id else None
    except ValueError:
        raise ConfigError("APPLICATION_ID doit être un ID numérique") from None
    return Secrets(
        bot_token=values["BOT_TOKEN"],
        ebas_api_key=values["EBAS_API_KEY"],
        ebas_association_id=values["EBAS_ASSOCIATION_ID"],
        application_id=application_id,
    )


__all__ = [
    "INTENTS",
    "CONFIG_PATH",
    "SECRETS_PATH",
    "STATE_PATH",
    "LOG_LEVEL",
    "BotConfig",
    "WelcomeConfig",
    "EbasConfig",
    "MemberConfig",
    "Secrets",
    "load_config",
    "load_secrets",
]
