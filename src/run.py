"""
Entrée principale du bot Discord.

Ce script garantit que le dossier courant est ajouté à sys.path pour permettre les imports absolus
(core, commands, etc.), même si le lancement se fait via `python src/run.py`.

Options :
    --config  chemin du fichier TOML de configuration (défaut : CONFIG_PATH ou config.toml)
    --secrets chemin du fichier dotenv des secrets (défaut : SECRETS_PATH ou .env)
    --state   chemin du fichier d'état JSON (défaut : STATE_PATH ou state.json)
"""
from __future__ import annotations

import argparse
import sys
import logging
import os

 # Ajoute dynamiquement le répertoire courant à sys.path si nécessaire
_CURRENT_DIR = os.path.dirname(__file__)
if _CURRENT_DIR not in sys.path:
    sys.path.insert(0, _CURRENT_DIR)

from core.logging_config import setup_logging  # noqa: E402
from core import config  # noqa: E402
from core.errors import ConfigError, MalformedLocalState  # noqa: E402

logger = logging.getLogger("run")


def parse_args(argv=None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Bot Discord de l'association")
    parser.add_argument("--config", default=config.CONFIG_PATH, help="Fichier de configuration TOML")
    parser.add_argument("--secrets", default=config.SECRETS_PATH, help="Fichier de secrets (dotenv)")
    parser.add_argument("--state", default=config.STATE_PATH, help="Fichier d'état JSON")
    parser.add_argument("--log-level", default=config.LOG_LEVEL, help="Niveau de log (INFO, DEBUG…)")
    return parser.parse_args(argv)


def main(argv=None) -> None:
    args = parse_args(argv)
    setup_logging(args.log_level)  # Initialise le logging global

    from core import bot as bot_module
    from core.context import AppContext
    from core.state import StateStore

    # Toute erreur de configuration, de secrets ou d'état est fatale
    try:
        cfg = config.load_config(args.config)
        secrets = config.load_secrets(args.secrets)
        store = StateStore.load(args.state)
    except (ConfigError, MalformedLocalState) as exc:
        logger.error("%s", exc)
        raise SystemExit(str(exc)) from exc

    bot = bot_module.Bot(AppContext.build(cfg, secrets, store))
    try:
        bot.run(secrets.bot_token, log_handler=None)
    except KeyboardInterrupt:
        print("Arrêt manuel")
        sys.exit(0)


# Démarre le bot si le script est exécuté directement
if __name__ == "__main__":
    main()
