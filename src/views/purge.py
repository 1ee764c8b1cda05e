"""
Textes pour la commande `/member purge`.
"""
from __future__ import annotations

LABEL_CONFIRM = "Confirmer"
LABEL_CANCEL = "Annuler"


def msg_first_prompt(role_id: int) -> str:
    return (
        f"Retirer le rôle <@&{role_id}> à tous les membres qui le possèdent ?\n"
        "Le recensement des membres démarrera après confirmation."
    )


def msg_enumerating() -> str: return "Recensement des membres en cours…"


def msg_second_prompt(role_id: int, count: int) -> str:
    return (
        f"**{count}** membre(s) possèdent le rôle <@&{role_id}>.\n"
        "Confirmer le retrait ? Cette action est irréversible."
    )


def msg_no_target(role_id: int) -> str: return f"Aucun membre ne possède le rôle <@&{role_id}>. Rien à faire."
def msg_in_progress(count: int) -> str: return f"Retrait en cours pour {count} membre(s)…"
def msg_cancelled() -> str: return "Purge annulée."
def msg_expired() -> str: return "Délai dépassé, purge annulée."
def msg_failed() -> str: return "Erreur lors de la purge. Aucun changement n'a été confirmé."
def msg_already_active() -> str: return "Une purge est déjà en cours pour cette commande."
def msg_stale_choice() -> str: return "Cette confirmation n'est plus valide."


def msg_summary(succeeded: int, failed: int) -> str:
    if failed:
        return f"Purge terminée : {succeeded} réussite(s), {failed} échec(s)."
    return f"Purge terminée : {succeeded} réussite(s)."


__all__ = [name for name in globals().keys() if name.startswith('msg_') or name.startswith('LABEL_')]
