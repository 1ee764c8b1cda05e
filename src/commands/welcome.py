"""
Commandes slash pour le message de bienvenue.

Commandes disponibles :
- /welcome sync : relance la réconciliation (publie, republie ou met à jour le message)

Le contenu souhaité vient de la configuration ; l'accès est contrôlé par les règles
`welcome.permission.sync` (à défaut, celles de la purge).
"""
from __future__ import annotations

import logging
import discord
from discord import app_commands

from core.permissions import AuthorizationGate
from core.welcome import reconcile_welcome
from views import welcome as welcome_view

logger = logging.getLogger(__name__)

welcome = app_commands.Group(name="welcome", description="Message de bienvenue")


@welcome.command(name="sync", description="Synchroniser le message de bienvenue avec la configuration")
async def sync_cmd(inter: discord.Interaction):
    bot = inter.client
    ctx = bot.context  # type: ignore[attr-defined]
    gate = AuthorizationGate(ctx.config.welcome.sync_permissions, bot.platform, ctx.config.guild_id)  # type: ignore[attr-defined]
    if not await gate.check(inter):
        return
    # Déférer : la réconciliation fait jusqu'à deux appels distants
    await inter.response.defer(ephemeral=True)
    try:
        outcome = await reconcile_welcome(bot.platform, ctx.store, ctx.config.welcome.desired())  # type: ignore[attr-defined]
        await inter.followup.send(welcome_view.build_outcome(outcome, ctx.config.welcome.channel_id), ephemeral=True)
    except Exception:  # noqa: BLE001
        logger.exception("Echec synchronisation welcome manuelle")
        await inter.followup.send(welcome_view.build_error(), ephemeral=True)


def register(bot: discord.Client):
    try:
        bot.tree.add_command(welcome)
    except Exception:
        logger.exception("Echec enregistrement commandes welcome")


__all__ = ["register"]
