"""
Réconciliation du message de bienvenue.

Garantit qu'au retour :
- soit aucun message n'est souhaité (rien ne change),
- soit un message existe dans le salon configuré avec exactement le contenu souhaité,
  et l'état local contient son ID.

Séquence :
1. Pas de contenu souhaité -> no-op (aucun appel distant)
2. Aucun ID enregistré -> publication, enregistrement, persistance
3. ID enregistré -> lecture du message
   - introuvable -> republication (comme 2)
   - contenu différent -> édition sur place (ID inchangé)
   - contenu identique -> no-op

Un échec d'écriture de l'état est journalisé sans annuler l'action distante :
Discord fait foi, le cache local se corrige au prochain passage.
"""
from __future__ import annotations

import enum
import logging
from dataclasses import dataclass

from core.errors import NotFound, StateWriteError
from core.state import StateStore, WelcomeRecord

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class DesiredAnnouncement:
    channel_id: int
    content: str


class ReconcileOutcome(enum.Enum):
    SKIPPED = "skipped"
    POSTED = "posted"
    REPOSTED = "reposted"
    EDITED = "edited"
    UNCHANGED = "unchanged"


def _normalize(content: str) -> str:
    # Discord supprime les blancs de fin de message
    return content.rstrip()


async def _post(platform, store: StateStore, desired: DesiredAnnouncement, content: str) -> None:
    message_id = await platform.post_message(desired.channel_id, content)
    store.state.welcome = WelcomeRecord(message_id=message_id)
    logger.info("Message de bienvenue publié (%s) dans %s", message_id, desired.channel_id)
    try:
        store.save()
    except StateWriteError:
        logger.exception("Echec persistance de l'ID du message de bienvenue %s", message_id)


async def reconcile_welcome(platform, store: StateStore, desired: DesiredAnnouncement | None) -> ReconcileOutcome:
    if desired is None or not _normalize(desired.content):
        logger.debug("Aucun message de bienvenue configuré")
        return ReconcileOutcome.SKIPPED
    content = _normalize(desired.content)

    async with store.lock:
        message_id = store.welcome_message_id
        if message_id is None:
            await _post(platform, store, desired, content)
            return ReconcileOutcome.POSTED

        try:
            current = await platform.get_message(desired.channel_id, message_id)
        except NotFound:
            logger.warning("Message de bienvenue %s introuvable, republication", message_id)
            await _post(platform, store, desired, content)
            return ReconcileOutcome.REPOSTED

        if _normalize(current) == content:
            logger.info("Message de bienvenue %s à jour", message_id)
            return ReconcileOutcome.UNCHANGED

        try:
            await platform.edit_message(desired.channel_id, message_id, content)
        except NotFound:
            # Supprimé entre la lecture et l'édition
            logger.warning("Message de bienvenue %s supprimé pendant l'édition, republication", message_id)
            await _post(platform, store, desired, content)
            return ReconcileOutcome.REPOSTED
        logger.info("Message de bienvenue %s mis à jour", message_id)
        return ReconcileOutcome.EDITED


__all__ = ["DesiredAnnouncement", "ReconcileOutcome", "reconcile_welcome"]
