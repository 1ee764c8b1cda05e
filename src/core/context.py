"""
Contexte applicatif partagé par les tâches (une par évènement Discord).

Lecture majoritaire : configuration, secrets, client eBas.
État mutable : uniquement `store` (verrou global) et `purges` (table des sessions, verrou propre).
"""
from __future__ import annotations

from dataclasses import dataclass, field

from core.config import BotConfig, Secrets
from core.ebas import EbasClient
from core.member_role import managed_role_id
from core.purge import PurgeRegistry
from core.state import StateStore


@dataclass
class AppContext:
    config: BotConfig
    secrets: Secrets
    store: StateStore
    oracle: EbasClient
    purges: PurgeRegistry = field(default_factory=PurgeRegistry)

    @property
    def member_role_id(self) -> int:
        return managed_role_id(self.store, self.config.member.role_id)

    @classmethod
    def build(cls, config: BotConfig, secrets: Secrets, store: StateStore) -> "AppContext":
        oracle = EbasClient(
            config.ebas.url,
            api_key=secrets.ebas_api_key,
            association_id=secrets.ebas_association_id,
            timeout=config.ebas.timeout,
        )
        return cls(config=config, secrets=secrets, store=store, oracle=oracle)


__all__ = ["AppContext"]
