"""
Commande slash `/verify`.

Vérifie l'adhésion de l'utilisateur auprès d'eBas à partir de son adresse e-mail
et lui attribue le rôle membre en cas de succès. Réponses éphémères uniquement.
"""
from __future__ import annotations

import discord
import logging
from discord import app_commands

from core.verification import verify_member
from views import verify as verify_view

logger = logging.getLogger(__name__)


def register(bot: discord.Client):
    ctx = bot.context  # type: ignore[attr-defined]

    @bot.tree.command(name="verify", description="Vérifier votre adhésion et obtenir le rôle membre")
    @app_commands.describe(email="Adresse e-mail utilisée pour votre adhésion")
    async def verify_cmd(interaction: discord.Interaction, email: str):
        if interaction.guild_id is None:
            await interaction.response.send_message(verify_view.build_no_guild(), ephemeral=True)
            return
        await interaction.response.defer(thinking=True, ephemeral=True)
        try:
            outcome = await verify_member(
                ctx.oracle,
                bot.platform,  # type: ignore[attr-defined]
                guild_id=ctx.config.guild_id,
                role_id=ctx.member_role_id,
                user_id=interaction.user.id,
                email=email,
            )
            await interaction.followup.send(verify_view.build_outcome(outcome), ephemeral=True)
        except Exception:  # noqa: BLE001
            logger.exception("Erreur verify pour %s", interaction.user.id)
            await interaction.followup.send(verify_view.build_error(), ephemeral=True)

__all__ = ["register"]
