"""
Textes pour la commande `/verify`.
"""
from __future__ import annotations

from core.verification import VerificationOutcome

_MESSAGES = {
    VerificationOutcome.VERIFIED: "Adhésion confirmée, le rôle membre vous a été attribué. Bienvenue !",
    VerificationOutcome.NOT_VERIFIED: (
        "Aucune adhésion trouvée pour cette adresse. "
        "Vérifiez l'adresse utilisée lors de votre inscription."
    ),
    VerificationOutcome.GRANT_FAILED: (
        "Adhésion confirmée, mais le rôle membre n'a pas pu être attribué. "
        "Contactez un administrateur."
    ),
}


def build_outcome(outcome: VerificationOutcome) -> str:
    return _MESSAGES[outcome]


def build_error() -> str:
    return "Erreur lors de la vérification. Réessayez plus tard."


def build_no_guild() -> str:
    return "Commande uniquement disponible sur le serveur."


__all__ = ["build_outcome", "build_error", "build_no_guild"]
