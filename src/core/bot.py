"""
Classe principale du bot Discord.

Responsabilités :
- Crée le client Discord, l'arbre de commandes slash et l'adaptateur plateforme.
- Au démarrage : réconcilie le message de bienvenue puis le rôle membre.
- Charge dynamiquement les commandes et les synchronise sur le serveur configuré.

Note : L'initialisation asynchrone est centralisée dans `setup_hook`, appelé après la connexion HTTP
et avant `on_ready`. Une erreur distante pendant la réconciliation du message de bienvenue
est fatale (le démarrage est interrompu).
"""
from __future__ import annotations

import logging
import discord
from discord import app_commands

from core import config
from core.context import AppContext
from core.member_role import reconcile_member_role
from core.platform import DiscordPlatform
from core.welcome import reconcile_welcome

logger = logging.getLogger(__name__)


class Bot(discord.Client):
    """
    Client Discord étendu, encapsulant l'état applicatif.

    Attributs principaux :
        tree : Arbre des commandes slash (CommandTree)
        context : Contexte partagé (config, état persistant, oracle, sessions de purge)
        platform : Adaptateur des appels Discord utilisés par le cœur
    """

    def __init__(self, context: AppContext):
        super().__init__(intents=config.INTENTS, application_id=context.secrets.application_id)
        self.tree = app_commands.CommandTree(self)
        self.context = context
        self.platform = DiscordPlatform(self)

    @property
    def guild(self) -> discord.Object:
        return discord.Object(id=self.context.config.guild_id)

    async def setup_hook(self):
        """
        Séquence :
        1. Réconciliation du message de bienvenue (fatale en cas d'erreur distante)
        2. Réconciliation du rôle membre
        3. Chargement et synchronisation des commandes slash
        """
        ctx = self.context
        outcome = await reconcile_welcome(self.platform, ctx.store, ctx.config.welcome.desired())
        logger.info("Message de bienvenue: %s", outcome.value)

        try:
            await reconcile_member_role(self.platform, ctx.store, ctx.config.guild_id, ctx.config.member.role_id)
        except Exception:  # noqa: BLE001
            logger.exception("Erreur vérification du rôle membre")

        try:
            from commands import load_all_commands  # type: ignore
            await load_all_commands(self)
        except Exception:  # noqa: BLE001
            logger.exception("Erreur chargement commandes dynamiques")
        try:
            self.tree.copy_global_to(guild=self.guild)
            await self.tree.sync(guild=self.guild)
            logger.info("Slash commands synchronisées (guild %s)", ctx.config.guild_id)
        except Exception:  # noqa: BLE001
            logger.exception("Erreur sync slash commands")

    async def on_ready(self):
        logger.info("Connecté: %s (%s)", self.user, getattr(self.user, 'id', '?'))

    async def close(self):  # type: ignore[override]
        """
        Fermeture propre du bot.
        Ferme la session HTTP eBas avant le client Discord.
        """
        try:
            await self.context.oracle.close()
        except Exception:  # noqa: BLE001
            logger.exception("Erreur fermeture session eBas")
        await super().close()
