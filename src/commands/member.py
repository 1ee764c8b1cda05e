"""
Commandes slash `/member` : purge du rôle membre.

- /member purge : retire le rôle membre à tous ses porteurs après deux confirmations

L'accès est contrôlé par la garde d'autorisation (règles `member.permission.purge`).
Le dialogue se fait dans un unique message éphémère, édité à chaque étape ; les boutons
portent l'ID de corrélation de l'interaction d'origine et sont routés vers la session.
"""
from __future__ import annotations

import logging
from typing import Optional

import discord
from discord import app_commands

from core.permissions import AuthorizationGate
from core.purge import (
    FIRST_STAGE,
    SECOND_STAGE,
    Choice,
    ChoiceId,
    Notice,
    PurgeRegistry,
    PurgeSession,
    PurgeWorkflow,
    SessionActive,
)
from views import purge as texts

logger = logging.getLogger(__name__)

_PROMPTS = {
    FIRST_STAGE: texts.msg_first_prompt,
    SECOND_STAGE: texts.msg_second_prompt,
}

_NOTICES = {
    Notice.ENUMERATING: texts.msg_enumerating,
    Notice.NO_TARGET: texts.msg_no_target,
    Notice.IN_PROGRESS: texts.msg_in_progress,
    Notice.CANCELLED: texts.msg_cancelled,
    Notice.EXPIRED: texts.msg_expired,
    Notice.FAILED: texts.msg_failed,
    Notice.SUMMARY: texts.msg_summary,
}

member = app_commands.Group(name="member", description="Gestion du rôle membre")


class ConfirmView(discord.ui.View):
    """Boutons Confirmer/Annuler d'une étape de purge.

    Le callback décode le custom_id et le transmet au registre ; un clic qui ne
    correspond à aucune session en attente reçoit une réponse « plus valide ».
    """

    def __init__(self, registry: PurgeRegistry, correlation_id: int, stage: int, *, timeout: Optional[float] = None):
        super().__init__(timeout=timeout)
        self.registry = registry
        buttons = (
            (Choice.CONFIRM, texts.LABEL_CONFIRM, discord.ButtonStyle.danger),
            (Choice.CANCEL, texts.LABEL_CANCEL, discord.ButtonStyle.secondary),
        )
        for action, label, style in buttons:
            custom_id = ChoiceId(correlation_id=correlation_id, stage=stage, action=action).encode()
            btn = discord.ui.Button(label=label, style=style, custom_id=custom_id)
            btn.callback = self._on_click  # type: ignore
            self.add_item(btn)

    async def _on_click(self, interaction: discord.Interaction):
        data = interaction.data or {}
        choice = ChoiceId.parse(data.get("custom_id"))  # type: ignore[union-attr]
        if choice is not None and await self.registry.dispatch(choice):
            # Accusé de réception ; le workflow édite ensuite le message d'origine
            await interaction.response.defer()
            return
        await interaction.response.send_message(texts.msg_stale_choice(), ephemeral=True)


class InteractionConversation:
    """Dialogue de purge au-dessus de l'interaction d'origine (message éphémère édité)."""

    def __init__(self, interaction: discord.Interaction, registry: PurgeRegistry, timeout: float):
        self.interaction = interaction
        self.registry = registry
        self.timeout = timeout
        self._view: Optional[ConfirmView] = None

    def _stop_view(self):
        if self._view is not None:
            self._view.stop()
            self._view = None

    async def _show(self, text: str, view: Optional[discord.ui.View]):
        if self.interaction.response.is_done():
            await self.interaction.edit_original_response(content=text, view=view)
        else:
            await self.interaction.response.send_message(text, view=view, ephemeral=True)

    async def ask(self, session: PurgeSession, stage: int, **details):
        self._stop_view()
        # La vue survit un peu au délai de la session pour répondre aux clics tardifs
        self._view = ConfirmView(self.registry, session.correlation_id, stage, timeout=self.timeout + 30)
        await self._show(_PROMPTS[stage](**details), self._view)

    async def tell(self, notice: Notice, **details):
        await self.say(_NOTICES[notice](**details))

    async def say(self, text: str):
        self._stop_view()
        try:
            await self._show(text, None)
        except discord.HTTPException:
            logger.exception("Mise à jour du message de purge impossible")


@member.command(name="purge", description="Retirer le rôle membre à tous les membres qui le possèdent")
async def purge_cmd(inter: discord.Interaction):
    bot = inter.client
    ctx = bot.context  # type: ignore[attr-defined]
    gate = AuthorizationGate(ctx.config.member.purge_permissions, bot.platform, ctx.config.guild_id)  # type: ignore[attr-defined]
    if not await gate.check(inter):
        return
    workflow = PurgeWorkflow(
        bot.platform,  # type: ignore[attr-defined]
        ctx.store,
        ctx.purges,
        guild_id=ctx.config.guild_id,
        configured_role_id=ctx.config.member.role_id,
        strategy=ctx.config.member.strategy,
        timeout=ctx.config.member.confirm_timeout,
    )
    conversation = InteractionConversation(inter, ctx.purges, ctx.config.member.confirm_timeout)
    logger.info("Purge demandée par %s (%s)", inter.user, inter.id)
    try:
        await workflow.run(inter.id, conversation)
    except SessionActive:
        await conversation.say(texts.msg_already_active())
    except Exception:  # noqa: BLE001
        logger.exception("Erreur purge %s", inter.id)
        await conversation.say(texts.msg_failed())


def register(bot: discord.Client):
    try:
        bot.tree.add_command(member)
    except Exception:
        logger.exception("Echec enregistrement commandes member")


__all__ = ["register", "ConfirmView", "InteractionConversation"]
