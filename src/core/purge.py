"""
Purge du rôle membre : workflow en deux confirmations.

Machine à états (une session par ID de corrélation = ID de l'interaction d'origine) :

    AWAITING_FIRST -> ENUMERATING -> AWAITING_SECOND -> MUTATING -> COMPLETED
    AWAITING_FIRST / AWAITING_SECOND -> CANCELLED (Annuler) | EXPIRED (délai)
    ENUMERATING / MUTATING -> FAILED (erreur distante bloquante)

- La première confirmation protège l'énumération (coûteuse), la seconde protège
  la mutation (irréversible) une fois le nombre réel de membres affiché.
- Aucune mutation n'est émise avant la seconde confirmation : annuler ou laisser
  expirer est toujours sans effet de bord.
- Chaque bouton porte `purge:<corrélation>:<étape>:<action>` ; un choix n'est
  accepté que si la corrélation et l'étape correspondent à l'étape en attente,
  et une seule fois par étape (un double clic est refusé).
- Énumération séquentielle par curseur (dernier ID vu), une page courte termine le parcours.
- Mutation `revoke` : retrait membre par membre, un échec n'interrompt pas les suivants.
  Mutation `recreate` : création d'un rôle identique, puis suppression de l'ancien ;
  le nouvel ID n'est persisté qu'une fois l'ancien rôle supprimé, sinon le nouveau
  rôle est supprimé à son tour et l'état reste inchangé.

Le dialogue avec l'utilisateur passe par un objet « conversation » fourni par la commande,
qui choisit les textes affichés :
    await conversation.ask(session, stage, **details)   # message + boutons Confirmer/Annuler
    await conversation.tell(notice, **details)          # message sans boutons (`Notice`)
"""
from __future__ import annotations

import asyncio
import enum
import logging
from dataclasses import dataclass, field
from typing import Dict, Optional

from core.errors import NotFound, RemoteFailure, StateWriteError
from core.member_role import managed_role_id
from core.platform import MAX_PAGE_SIZE
from core.state import MemberRoleRecord, StateStore

logger = logging.getLogger(__name__)

CUSTOM_ID_PREFIX = "purge"
FIRST_STAGE = 1
SECOND_STAGE = 2


class Choice(enum.Enum):
    CONFIRM = "confirm"
    CANCEL = "cancel"


class Notice(enum.Enum):
    """Messages sans boutons émis par le workflow (détails passés en mots-clés)."""

    ENUMERATING = "enumerating"
    NO_TARGET = "no_target"        # role_id
    IN_PROGRESS = "in_progress"    # count
    CANCELLED = "cancelled"
    EXPIRED = "expired"
    FAILED = "failed"
    SUMMARY = "summary"            # succeeded, failed


@dataclass(frozen=True)
class ChoiceId:
    """Identifiant structuré d'un bouton de confirmation."""

    correlation_id: int
    stage: int
    action: Choice

    def encode(self) -> str:
        return f"{CUSTOM_ID_PREFIX}:{self.correlation_id}:{self.stage}:{self.action.value}"

    @classmethod
    def parse(cls, custom_id: Optional[str]) -> Optional["ChoiceId"]:
        parts = (custom_id or "").split(":")
        if len(parts) != 4 or parts[0] != CUSTOM_ID_PREFIX:
            return None
        try:
            return cls(correlation_id=int(parts[1]), stage=int(parts[2]), action=Choice(parts[3]))
        except ValueError:
            return None


class PurgeState(enum.Enum):
    AWAITING_FIRST = "awaiting_first"
    ENUMERATING = "enumerating"
    AWAITING_SECOND = "awaiting_second"
    MUTATING = "mutating"
    COMPLETED = "completed"
    CANCELLED = "cancelled"
    EXPIRED = "expired"
    FAILED = "failed"


@dataclass
class PurgeResult:
    succeeded: int = 0
    failed: list[int] = field(default_factory=list)

    @property
    def failure_count(self) -> int:
        return len(self.failed)


class SessionActive(Exception):
    def __init__(self, correlation_id: int):
        super().__init__(f"Session de purge déjà active: {correlation_id}")
        self.correlation_id = correlation_id


class PurgeSession:
    def __init__(self, correlation_id: int):
        self.correlation_id = correlation_id
        self.state = PurgeState.AWAITING_FIRST
        self.result: Optional[PurgeResult] = None
        self.target_count: Optional[int] = None
        # Étape dont un choix est attendu ; None dès qu'un choix a été accepté
        self.awaiting_stage: Optional[int] = FIRST_STAGE
        self._choices: asyncio.Queue[ChoiceId] = asyncio.Queue(maxsize=1)

    def expect(self, stage: int) -> None:
        self.awaiting_stage = stage

    def offer(self, choice: ChoiceId) -> bool:
        """Transmet un choix à la session s'il la concerne. Retourne False sinon."""
        if choice.correlation_id != self.correlation_id:
            return False
        if self.awaiting_stage is None or choice.stage != self.awaiting_stage:
            return False
        try:
            self._choices.put_nowait(choice)
        except asyncio.QueueFull:
            return False
        self.awaiting_stage = None
        return True

    async def wait_choice(self, stage: int, timeout: float) -> Optional[Choice]:
        """Attend un choix pour `stage` ; None si le délai expire."""
        loop = asyncio.get_running_loop()
        deadline = loop.time() + timeout
        try:
            while True:
                choice = await asyncio.wait_for(self._choices.get(), max(0.0, deadline - loop.time()))
                if choice.stage == stage:
                    return choice.action
                logger.debug("Choix d'une autre étape ignoré: %s", choice.encode())
        except asyncio.TimeoutError:
            return None
        finally:
            self.awaiting_stage = None


class PurgeRegistry:
    """Table des sessions actives, protégée par un verrou."""

    def __init__(self):
        self._sessions: Dict[int, PurgeSession] = {}
        self._lock = asyncio.Lock()

    async def open(self, correlation_id: int) -> PurgeSession:
        async with self._lock:
            if correlation_id in self._sessions:
                raise SessionActive(correlation_id)
            session = PurgeSession(correlation_id)
            self._sessions[correlation_id] = session
            return session

    async def close(self, correlation_id: int) -> None:
        async with self._lock:
            self._sessions.pop(correlation_id, None)

    async def dispatch(self, choice: ChoiceId) -> bool:
        async with self._lock:
            session = self._sessions.get(choice.correlation_id)
            if session is None:
                return False
            return session.offer(choice)

    def __len__(self) -> int:
        return len(self._sessions)

    def __contains__(self, correlation_id: int) -> bool:
        return correlation_id in self._sessions


async def collect_role_holders(platform, guild_id: int, role_id: int, page_size: int = MAX_PAGE_SIZE) -> list[int]:
    """Parcourt tous les membres (curseur = dernier ID vu) et garde ceux qui ont le rôle."""
    page_size = max(1, min(page_size, MAX_PAGE_SIZE))
    holders: list[int] = []
    after = 0
    pages = 0
    while True:
        page = await platform.list_members(guild_id, after, page_size)
        pages += 1
        holders.extend(m.user_id for m in page if role_id in m.role_ids)
        if len(page) < page_size:
            break
        after = page[-1].user_id
    logger.info("Recensement: %s porteur(s) du rôle %s (%s page(s))", len(holders), role_id, pages)
    return holders


async def revoke_all(platform, guild_id: int, role_id: int, targets: list[int]) -> PurgeResult:
    result = PurgeResult()
    for user_id in targets:
        try:
            await platform.revoke_role(guild_id, user_id, role_id, reason="Purge du rôle membre")
        except (NotFound, RemoteFailure):
            logger.exception("Retrait du rôle %s impossible pour %s", role_id, user_id)
            result.failed.append(user_id)
        else:
            result.succeeded += 1
    return result


async def _discard_role(platform, guild_id: int, role_id: int) -> None:
    try:
        await platform.delete_role(guild_id, role_id)
    except (NotFound, RemoteFailure):
        logger.exception("Rôle de remplacement %s orphelin, à supprimer manuellement", role_id)


async def recreate_role(platform, store: StateStore, guild_id: int, role_id: int, targets: list[int]) -> PurgeResult:
    """Remplace le rôle par une copie vide.

    Sous le verrou de l'état : le nouvel ID n'est enregistré qu'après la suppression de
    l'ancien rôle. Tout échec distant annule le remplacement (le nouveau rôle est supprimé)
    et laisse l'enregistrement courant intact.
    """
    failed = PurgeResult(failed=list(targets))
    async with store.lock:
        try:
            attrs = await platform.get_role(guild_id, role_id)
            new_role_id = await platform.create_role(guild_id, attrs)
        except (NotFound, RemoteFailure):
            logger.exception("Recréation du rôle %s impossible", role_id)
            return failed
        if attrs.position > 0:
            try:
                await platform.move_role(guild_id, new_role_id, attrs.position)
            except (NotFound, RemoteFailure):
                logger.exception("Placement du rôle %s impossible, remplacement abandonné", new_role_id)
                await _discard_role(platform, guild_id, new_role_id)
                return failed
        try:
            await platform.delete_role(guild_id, role_id)
        except NotFound:
            logger.warning("Ancien rôle %s déjà supprimé", role_id)
        except RemoteFailure:
            logger.exception("Remplacement du rôle %s abandonné", role_id)
            await _discard_role(platform, guild_id, new_role_id)
            return failed
        store.state.member = MemberRoleRecord(role_id=new_role_id)
        try:
            store.save()
        except StateWriteError:
            logger.exception("Echec persistance du nouveau rôle membre %s", new_role_id)
        logger.info("Rôle membre remplacé: %s -> %s", role_id, new_role_id)
    return PurgeResult(succeeded=len(targets))


class PurgeWorkflow:
    def __init__(
        self,
        platform,
        store: StateStore,
        registry: PurgeRegistry,
        *,
        guild_id: int,
        configured_role_id: int,
        strategy: str = "revoke",
        timeout: float = 60.0,
        page_size: int = MAX_PAGE_SIZE,
    ):
        self.platform = platform
        self.store = store
        self.registry = registry
        self.guild_id = guild_id
        self.configured_role_id = configured_role_id
        self.strategy = strategy
        self.timeout = timeout
        self.page_size = page_size

    async def run(self, correlation_id: int, conversation) -> PurgeSession:
        """Exécute une purge complète. Lève SessionActive si la corrélation est déjà utilisée."""
        session = await self.registry.open(correlation_id)
        try:
            await self._run(session, conversation)
        except (NotFound, RemoteFailure):
            logger.exception("Purge %s interrompue (%s)", correlation_id, session.state.value)
            session.state = PurgeState.FAILED
            await conversation.tell(Notice.FAILED)
        finally:
            await self.registry.close(correlation_id)
        logger.info("Purge %s terminée: %s", correlation_id, session.state.value)
        return session

    async def _confirm(self, session: PurgeSession, conversation, stage: int, **details) -> bool:
        session.state = PurgeState.AWAITING_FIRST if stage == FIRST_STAGE else PurgeState.AWAITING_SECOND
        session.expect(stage)
        await conversation.ask(session, stage, **details)
        choice = await session.wait_choice(stage, self.timeout)
        if choice is Choice.CONFIRM:
            return True
        if choice is None:
            session.state = PurgeState.EXPIRED
            await conversation.tell(Notice.EXPIRED)
        else:
            session.state = PurgeState.CANCELLED
            await conversation.tell(Notice.CANCELLED)
        return False

    async def _run(self, session: PurgeSession, conversation) -> None:
        role_id = managed_role_id(self.store, self.configured_role_id)
        if not await self._confirm(session, conversation, FIRST_STAGE, role_id=role_id):
            return

        session.state = PurgeState.ENUMERATING
        await conversation.tell(Notice.ENUMERATING)
        targets = await collect_role_holders(self.platform, self.guild_id, role_id, self.page_size)
        session.target_count = len(targets)
        if not targets:
            session.state = PurgeState.COMPLETED
            session.result = PurgeResult()
            await conversation.tell(Notice.NO_TARGET, role_id=role_id)
            return

        if not await self._confirm(session, conversation, SECOND_STAGE, role_id=role_id, count=len(targets)):
            return

        session.state = PurgeState.MUTATING
        await conversation.tell(Notice.IN_PROGRESS, count=len(targets))
        if self.strategy == "recreate":
            result = await recreate_role(self.platform, self.store, self.guild_id, role_id, targets)
        else:
            result = await revoke_all(self.platform, self.guild_id, role_id, targets)
        session.result = result
        session.state = PurgeState.COMPLETED
        await conversation.tell(Notice.SUMMARY, succeeded=result.succeeded, failed=result.failure_count)


__all__ = [
    "Choice",
    "ChoiceId",
    "Notice",
    "PurgeState",
    "PurgeResult",
    "PurgeSession",
    "PurgeRegistry",
    "PurgeWorkflow",
    "SessionActive",
    "collect_role_holders",
    "revoke_all",
    "recreate_role",
]
