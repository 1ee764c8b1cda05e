"""
Vérification d'adhésion : oracle eBas puis attribution du rôle membre.

- Pas de nouvelle tentative : une réponse négative ou en erreur vaut « non vérifié »
- Le rôle n'est attribué qu'en cas de réponse positive, une seule fois
- Un échec d'attribution après une réponse positive est un résultat distinct (GRANT_FAILED)
"""
from __future__ import annotations

import enum
import logging

from core.ebas import MembershipStatus
from core.errors import NotFound, RemoteFailure

logger = logging.getLogger(__name__)


class VerificationOutcome(enum.Enum):
    VERIFIED = "verified"
    NOT_VERIFIED = "not_verified"
    GRANT_FAILED = "grant_failed"


async def verify_member(oracle, platform, *, guild_id: int, role_id: int, user_id: int, email: str) -> VerificationOutcome:
    email = (email or "").strip()
    if not email:
        return VerificationOutcome.NOT_VERIFIED
    status = await oracle.verify_membership(email)
    if status is not MembershipStatus.MEMBER:
        logger.info("Vérification négative pour %s (%s)", user_id, status.value)
        return VerificationOutcome.NOT_VERIFIED
    try:
        await platform.grant_role(guild_id, user_id, role_id, reason="Adhésion vérifiée")
    except (NotFound, RemoteFailure):
        logger.exception("Adhésion vérifiée mais attribution du rôle %s à %s impossible", role_id, user_id)
        return VerificationOutcome.GRANT_FAILED
    logger.info("Adhésion vérifiée, rôle %s attribué à %s", role_id, user_id)
    return VerificationOutcome.VERIFIED


__all__ = ["VerificationOutcome", "verify_member"]
