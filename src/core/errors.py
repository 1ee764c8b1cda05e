"""
Taxonomie des erreurs du bot.

- NotFound : l'entité distante référencée a disparu (récupérable, déclenche une recréation)
- RemoteFailure : échec réseau/API sur un appel distant (récupérable par élément dans les traitements de masse)
- Unauthorized : l'appelant n'a pas la permission (réponse de refus, jamais un crash)
- MalformedLocalState : état persistant illisible (fatal au démarrage)
- StateWriteError : échec d'écriture de l'état local (signalé, sans rollback distant)
- ConfigError : configuration ou secrets invalides (fatal au démarrage)
"""
from __future__ import annotations


class NotFound(Exception):
    """L'entité distante (message, rôle, membre) n'existe plus."""


class RemoteFailure(Exception):
    """Erreur transitoire de la plateforme distante."""


class Unauthorized(Exception):
    def __init__(self, user_id: int):
        super().__init__(f"Utilisateur {user_id} non autorisé")
        self.user_id = user_id


class MalformedLocalState(Exception):
    """Le fichier d'état existe mais ne peut pas être lu ou interprété."""


class StateWriteError(Exception):
    pass


class ConfigError(Exception):
    pass


__all__ = [
    "NotFound",
    "RemoteFailure",
    "Unauthorized",
    "MalformedLocalState",
    "StateWriteError",
    "ConfigError",
]
