"""
Textes pour la commande `/welcome sync`.
"""
from __future__ import annotations

from core.welcome import ReconcileOutcome

_OUTCOMES = {
    ReconcileOutcome.SKIPPED: "Aucun message de bienvenue n'est configuré.",
    ReconcileOutcome.POSTED: "Message de bienvenue publié dans {channel}.",
    ReconcileOutcome.REPOSTED: "Le message de bienvenue avait disparu : republié dans {channel}.",
    ReconcileOutcome.EDITED: "Message de bienvenue mis à jour dans {channel}.",
    ReconcileOutcome.UNCHANGED: "Le message de bienvenue de {channel} est déjà à jour.",
}


def build_outcome(outcome: ReconcileOutcome, channel_id: int) -> str:
    return _OUTCOMES[outcome].format(channel=f"<#{channel_id}>")


def build_error() -> str:
    return "Echec de synchronisation du message de bienvenue."


__all__ = ["build_outcome", "build_error"]
