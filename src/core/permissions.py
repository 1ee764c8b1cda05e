"""
Garde d'autorisation basée sur une liste blanche (utilisateurs et rôles).

Rappel :
- Une règle est soit `user` (ID utilisateur), soit `role` (ID de rôle)
- Un appelant est autorisé si son ID correspond à une règle `user`,
  ou si l'un de ses rôles correspond à une règle `role`

Si les rôles de l'appelant ne sont pas disponibles dans l'interaction (ex : `discord.User`
hors cache), la garde récupère le membre complet via la plateforme avant d'évaluer.

En cas de refus, c'est la garde qui répond à l'utilisateur : un résultat `False`
signifie « déjà traité, ne rien faire de plus ».
"""
from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any, Iterable, Literal, Optional

import discord

from core.errors import NotFound, RemoteFailure, Unauthorized, ConfigError

logger = logging.getLogger(__name__)

DENIED_MESSAGE = "Vous n'avez pas la permission d'utiliser cette commande."


@dataclass(frozen=True)
class Permission:
    kind: Literal["user", "role"]
    id: int

    @classmethod
    def parse(cls, entry: Any) -> "Permission":
        """Interprète une entrée de configuration `{user = <id>}` ou `{role = <id>}`."""
        if not isinstance(entry, dict) or len(entry) != 1:
            raise ConfigError(f"Règle de permission invalide: {entry!r}")
        kind, value = next(iter(entry.items()))
        if kind not in ("user", "role"):
            raise ConfigError(f"Type de règle inconnu: {kind!r} (user | role)")
        try:
            return cls(kind=kind, id=int(value))
        except (TypeError, ValueError):
            raise ConfigError(f"ID invalide pour la règle {kind}: {value!r}") from None


class AuthorizationGate:
    """Prédicat en lecture seule sur une liste de règles."""

    def __init__(self, rules: Iterable[Permission], platform, guild_id: int):
        self.user_ids = frozenset(r.id for r in rules if r.kind == "user")
        self.role_ids = frozenset(r.id for r in rules if r.kind == "role")
        self.platform = platform
        self.guild_id = guild_id

    def authorize(self, user_id: int, role_ids: Iterable[int]) -> None:
        if user_id in self.user_ids:
            return
        if self.role_ids.intersection(role_ids):
            return
        raise Unauthorized(user_id)

    def permits(self, user_id: int, role_ids: Iterable[int]) -> bool:
        try:
            self.authorize(user_id, role_ids)
        except Unauthorized:
            return False
        return True

    async def _held_roles(self, user) -> frozenset[int]:
        roles: Optional[list] = getattr(user, "roles", None)
        if roles is not None:
            return frozenset(r.id for r in roles)
        # Rôles absents de l'évènement : on récupère le membre complet
        try:
            return await self.platform.fetch_member_roles(self.guild_id, user.id)
        except (NotFound, RemoteFailure):
            logger.warning("Rôles introuvables pour %s, évalué sans rôle", user.id)
            return frozenset()

    async def check(self, interaction: discord.Interaction) -> bool:
        user = interaction.user
        # Pas besoin des rôles si l'ID suffit
        if user.id in self.user_ids:
            return True
        try:
            self.authorize(user.id, await self._held_roles(user))
        except Unauthorized:
            logger.info("Accès refusé pour %s", user.id)
            if interaction.response.is_done():
                await interaction.followup.send(DENIED_MESSAGE, ephemeral=True)
            else:
                await interaction.response.send_message(DENIED_MESSAGE, ephemeral=True)
            return False
        return True


__all__ = ["Permission", "AuthorizationGate", "DENIED_MESSAGE"]
