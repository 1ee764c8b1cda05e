"""
État persistant du bot (fichier JSON).

Contenu :
- welcome.message_id : dernier ID connu du message de bienvenue publié
- member.role_id : dernier ID connu du rôle membre géré (il peut être recréé par la purge)

Principes :
- Fichier absent => état vide (premier lancement), pas une erreur
- Toute autre erreur de lecture/parsing => MalformedLocalState (fatal au démarrage)
- Écriture atomique : fichier `.tmp` voisin puis renommage
- Un unique verrou asyncio sérialise les séquences lecture-modification-écriture
"""
from __future__ import annotations

import asyncio
import json
import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Optional

from core.errors import MalformedLocalState, StateWriteError

logger = logging.getLogger(__name__)


@dataclass
class WelcomeRecord:
    message_id: int


@dataclass
class MemberRoleRecord:
    role_id: int


@dataclass
class State:
    welcome: Optional[WelcomeRecord] = None
    member: Optional[MemberRoleRecord] = None

    def to_dict(self) -> dict[str, Any]:
        data: dict[str, Any] = {}
        if self.welcome is not None:
            data["welcome"] = {"message_id": self.welcome.message_id}
        if self.member is not None:
            data["member"] = {"role_id": self.member.role_id}
        return data

    @classmethod
    def from_dict(cls, data: Any) -> "State":
        if not isinstance(data, dict):
            raise MalformedLocalState("La racine de l'état doit être un objet")
        state = cls()
        welcome = data.get("welcome")
        if welcome is not None:
            state.welcome = WelcomeRecord(message_id=_snowflake(welcome, "message_id"))
        member = data.get("member")
        if member is not None:
            state.member = MemberRoleRecord(role_id=_snowflake(member, "role_id"))
        return state


def _snowflake(section: Any, key: str) -> int:
    # Les IDs Discord sont acceptés en entier ou en chaîne décimale
    if not isinstance(section, dict) or key not in section:
        raise MalformedLocalState(f"Champ manquant: {key}")
    value = section[key]
    if isinstance(value, bool):
        raise MalformedLocalState(f"Champ invalide: {key}")
    if isinstance(value, int):
        return value
    if isinstance(value, str) and value.strip().isdigit():
        return int(value.strip())
    raise MalformedLocalState(f"Champ invalide: {key}")


class StateStore:
    """Source de vérité locale sur « ce que l'on croit exister côté Discord »."""

    def __init__(self, path: Path | str, state: Optional[State] = None):
        self.path = Path(path)
        self.state = state or State()
        self.lock = asyncio.Lock()

    @classmethod
    def load(cls, path: Path | str) -> "StateStore":
        p = Path(path)
        try:
            raw = p.read_text(encoding="utf-8")
        except FileNotFoundError:
            logger.info("Aucun fichier d'état (%s), démarrage avec un état vide", p)
            return cls(p)
        except OSError as exc:
            raise MalformedLocalState(f"Lecture impossible de {p}: {exc}") from exc
        try:
            data = json.loads(raw)
        except json.JSONDecodeError as exc:
            raise MalformedLocalState(f"JSON invalide dans {p}: {exc}") from exc
        store = cls(p, State.from_dict(data))
        logger.info("État chargé depuis %s", p)
        return store

    def save(self) -> None:
        tmp = self.path.with_suffix(self.path.suffix + ".tmp")
        try:
            if self.path.parent and not self.path.parent.exists():
                self.path.parent.mkdir(parents=True, exist_ok=True)
            tmp.write_text(json.dumps(self.state.to_dict(), indent=2) + "\n", encoding="utf-8")
            tmp.replace(self.path)
        except OSError as exc:
            raise StateWriteError(f"Écriture impossible de {self.path}: {exc}") from exc

    @property
    def welcome_message_id(self) -> Optional[int]:
        return self.state.welcome.message_id if self.state.welcome else None

    @property
    def member_role_id(self) -> Optional[int]:
        return self.state.member.role_id if self.state.member else None


__all__ = ["State", "StateStore", "WelcomeRecord", "MemberRoleRecord"]
