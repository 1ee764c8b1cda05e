"""
Adaptateur mince entre le cœur du bot et l'API Discord (discord.py).

Le cœur (réconciliation, purge, vérification) ne manipule que des IDs entiers et
les exceptions de `core.errors` ; il ne dépend jamais directement des exceptions
discord.py. N'importe quel objet exposant les mêmes coroutines peut remplacer
`DiscordPlatform` (utile pour les tests).

Traduction des erreurs :
- discord.NotFound -> NotFound
- discord.HTTPException (autres) -> RemoteFailure

Seule l'énumération des membres passe par la route HTTP brute : le curseur
(`after`) et la taille de page doivent y être explicites.
"""
from __future__ import annotations

import logging
from contextlib import contextmanager
from dataclasses import dataclass
from typing import Iterator, Optional

import discord

from core.errors import NotFound, RemoteFailure

logger = logging.getLogger(__name__)

# Limite Discord pour GET /guilds/{id}/members
MAX_PAGE_SIZE = 1000

AUDIT_REASON = "Gestion automatique du rôle membre"


@dataclass(frozen=True)
class MemberSnapshot:
    user_id: int
    role_ids: frozenset[int]


@dataclass(frozen=True)
class RoleAttributes:
    """Attributs d'affichage d'un rôle, recopiés lors d'une recréation."""

    name: str
    permissions: int = 0
    colour: int = 0
    hoist: bool = False
    mentionable: bool = False
    position: int = 0
    icon: Optional[bytes] = None
    unicode_emoji: Optional[str] = None


@contextmanager
def _translate(what: str) -> Iterator[None]:
    try:
        yield
    except discord.NotFound as exc:
        raise NotFound(what) from exc
    except discord.HTTPException as exc:
        raise RemoteFailure(f"{what}: {exc.status} {exc.text}") from exc


class DiscordPlatform:
    """Capacités Discord consommées par le cœur, au-dessus d'un `discord.Client` connecté."""

    def __init__(self, client: discord.Client):
        self.client = client

    async def _channel(self, channel_id: int):
        channel = self.client.get_channel(channel_id)
        if channel is None:
            with _translate(f"salon {channel_id}"):
                channel = await self.client.fetch_channel(channel_id)
        return channel

    async def _guild(self, guild_id: int) -> discord.Guild:
        guild = self.client.get_guild(guild_id)
        if guild is None:
            with _translate(f"serveur {guild_id}"):
                guild = await self.client.fetch_guild(guild_id)
        return guild

    async def _member(self, guild: discord.Guild, user_id: int) -> discord.Member:
        member = guild.get_member(user_id)
        if member is None:
            with _translate(f"membre {user_id}"):
                member = await guild.fetch_member(user_id)
        return member

    async def _role(self, guild: discord.Guild, role_id: int) -> discord.Role:
        role = guild.get_role(role_id)
        if role is not None:
            return role
        with _translate(f"rôles de {guild.id}"):
            roles = await guild.fetch_roles()
        for r in roles:
            if r.id == role_id:
                return r
        raise NotFound(f"rôle {role_id}")

    # ---------- messages ----------
    async def post_message(self, channel_id: int, content: str) -> int:
        channel = await self._channel(channel_id)
        with _translate(f"envoi dans {channel_id}"):
            message = await channel.send(content)
        return message.id

    async def get_message(self, channel_id: int, message_id: int) -> str:
        channel = await self._channel(channel_id)
        with _translate(f"message {message_id}"):
            message = await channel.fetch_message(message_id)
        return message.content

    async def edit_message(self, channel_id: int, message_id: int, content: str) -> None:
        channel = await self._channel(channel_id)
        with _translate(f"message {message_id}"):
            await channel.get_partial_message(message_id).edit(content=content)

    # ---------- membres ----------
    async def list_members(self, guild_id: int, after: int, limit: int) -> list[MemberSnapshot]:
        limit = max(1, min(limit, MAX_PAGE_SIZE))
        with _translate(f"membres de {guild_id}"):
            payload = await self.client.http.get_members(guild_id, limit, after or None)
        return [
            MemberSnapshot(
                user_id=int(m["user"]["id"]),
                role_ids=frozenset(int(r) for r in m.get("roles", [])),
            )
            for m in payload
        ]

    async def fetch_member_roles(self, guild_id: int, user_id: int) -> frozenset[int]:
        guild = await self._guild(guild_id)
        member = await self._member(guild, user_id)
        return frozenset(r.id for r in member.roles)

    async def grant_role(self, guild_id: int, user_id: int, role_id: int, reason: Optional[str] = None) -> None:
        guild = await self._guild(guild_id)
        member = await self._member(guild, user_id)
        with _translate(f"ajout rôle {role_id} à {user_id}"):
            await member.add_roles(discord.Object(id=role_id), reason=reason or AUDIT_REASON)

    async def revoke_role(self, guild_id: int, user_id: int, role_id: int, reason: Optional[str] = None) -> None:
        guild = await self._guild(guild_id)
        member = await self._member(guild, user_id)
        with _translate(f"retrait rôle {role_id} à {user_id}"):
            await member.remove_roles(discord.Object(id=role_id), reason=reason or AUDIT_REASON)

    # ---------- rôles ----------
    async def get_role(self, guild_id: int, role_id: int) -> RoleAttributes:
        guild = await self._guild(guild_id)
        role = await self._role(guild, role_id)
        icon = None
        if role.icon is not None:
            with _translate(f"icône du rôle {role_id}"):
                icon = await role.icon.read()
        return RoleAttributes(
            name=role.name,
            permissions=role.permissions.value,
            colour=role.colour.value,
            hoist=role.hoist,
            mentionable=role.mentionable,
            position=role.position,
            icon=icon,
            unicode_emoji=role.unicode_emoji,
        )

    async def create_role(self, guild_id: int, attrs: RoleAttributes) -> int:
        """Crée le rôle avec les attributs donnés, hors position (voir `move_role`)."""
        guild = await self._guild(guild_id)
        fields = {}
        # Une seule icône possible : l'image prime sur l'emoji
        if attrs.icon is not None:
            fields["display_icon"] = attrs.icon
        elif attrs.unicode_emoji:
            fields["display_icon"] = attrs.unicode_emoji
        with _translate(f"création rôle {attrs.name}"):
            role = await guild.create_role(
                name=attrs.name,
                permissions=discord.Permissions(attrs.permissions),
                colour=discord.Colour(attrs.colour),
                hoist=attrs.hoist,
                mentionable=attrs.mentionable,
                reason=AUDIT_REASON,
                **fields,
            )
        return role.id

    async def move_role(self, guild_id: int, role_id: int, position: int) -> None:
        guild = await self._guild(guild_id)
        with _translate(f"position du rôle {role_id}"):
            await guild.edit_role_positions({discord.Object(id=role_id): position}, reason=AUDIT_REASON)

    async def delete_role(self, guild_id: int, role_id: int) -> None:
        guild = await self._guild(guild_id)
        role = await self._role(guild, role_id)
        with _translate(f"suppression rôle {role_id}"):
            await role.delete(reason=AUDIT_REASON)


__all__ = ["DiscordPlatform", "MemberSnapshot", "RoleAttributes", "MAX_PAGE_SIZE"]
