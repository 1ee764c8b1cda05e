"""
Suivi du rôle membre géré.

Le rôle peut être supprimé puis recréé (stratégie de purge `recreate`) : on suit donc son ID
dans l'état local plutôt que de se fier uniquement à la configuration.
"""
from __future__ import annotations

import logging

from core.errors import NotFound, StateWriteError
from core.state import MemberRoleRecord, StateStore

logger = logging.getLogger(__name__)


def managed_role_id(store: StateStore, configured_role_id: int) -> int:
    """ID du rôle géré : celui de l'état s'il existe, sinon celui de la configuration."""
    stored = store.member_role_id
    return stored if stored is not None else configured_role_id


async def reconcile_member_role(platform, store: StateStore, guild_id: int, configured_role_id: int) -> int:
    """Valide l'ID enregistré (puis l'ID configuré) contre les rôles réels du serveur."""
    async with store.lock:
        current = store.member_role_id
        candidates = [current] if current is not None else []
        if configured_role_id not in candidates:
            candidates.append(configured_role_id)
        for candidate in candidates:
            try:
                attrs = await platform.get_role(guild_id, candidate)
            except NotFound:
                logger.warning("Rôle membre %s introuvable sur le serveur %s", candidate, guild_id)
                continue
            if candidate != current:
                store.state.member = MemberRoleRecord(role_id=candidate)
                try:
                    store.save()
                except StateWriteError:
                    logger.exception("Echec persistance du rôle membre %s", candidate)
            logger.info("Rôle membre: %s (%s)", attrs.name, candidate)
            return candidate
    logger.error("Aucun rôle membre valide (configuré: %s), les attributions échoueront", configured_role_id)
    return configured_role_id


__all__ = ["managed_role_id", "reconcile_member_role"]
