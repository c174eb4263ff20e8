"""Duplicate client detection and dismissal"""

import logging
from datetime import datetime, timezone
from typing import Iterable, Optional

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import sessionmaker

from ...schemas import Client, PotentialDuplicate
from ...store.actions import Action, ActionType
from ...store.entity_store import EntityStore
from .repository import DismissedDuplicateRepository
from .similarity import HIGH, DogNameSimilarityPolicy, SimilarityPolicy, completeness

logger = logging.getLogger(__name__)


def pair_id(client_a_id: str, client_b_id: str) -> str:
    """Order-independent id for a pair of clients, stable across scans"""
    low, high = sorted((client_a_id, client_b_id))
    return f"{low}:{high}"


def choose_primary(a: Client, b: Client) -> tuple[Client, Client]:
    """(primary, duplicate): the more complete record wins, then the lower id"""
    score_a, score_b = completeness(a), completeness(b)
    if score_a != score_b:
        return (a, b) if score_a > score_b else (b, a)
    return (a, b) if a.id < b.id else (b, a)


class DismissalRegistry:
    """
    Pair ids the user has dismissed.

    The table is the source of truth. The in-process cache keeps dismissals
    effective while the table cannot be read or written.
    """

    def __init__(self, session_factory: sessionmaker):
        self.session_factory = session_factory
        self._cache: set[str] = set()

    def dismissed_ids(self) -> set[str]:
        try:
            with self.session_factory() as db:
                stored = set(DismissedDuplicateRepository.get_all_ids(db))
        except SQLAlchemyError as e:
            logger.warning(f"⚠️ Could not read dismissed duplicates, using local cache: {e}")
            return set(self._cache)
        self._cache |= stored
        return set(self._cache)

    def dismiss(self, duplicate_id: str) -> None:
        self._cache.add(duplicate_id)
        try:
            with self.session_factory() as db:
                if DismissedDuplicateRepository.dismiss(db, duplicate_id):
                    logger.info(f"💾 Dismissed duplicate pair {duplicate_id}")
        except SQLAlchemyError as e:
            logger.warning(f"⚠️ Dismissal of {duplicate_id} kept locally only: {e}")

    def restore(self, duplicate_id: str) -> None:
        self._cache.discard(duplicate_id)
        with self.session_factory() as db:
            DismissedDuplicateRepository.restore(db, duplicate_id)

    def clear_cache(self) -> None:
        self._cache.clear()


class DuplicateDetectionService:
    def __init__(self, registry: DismissalRegistry, policy: Optional[SimilarityPolicy] = None):
        self.registry = registry
        self.policy = policy or DogNameSimilarityPolicy()

    def detect(self, clients: Iterable[Client]) -> list[PotentialDuplicate]:
        """Every matching pair, dismissed or not"""
        clients = list(clients)
        now = datetime.now(timezone.utc).isoformat()
        found = []
        for i, a in enumerate(clients):
            for b in clients[i + 1:]:
                score = self.policy.score(a, b)
                if not score.is_match:
                    continue
                primary, duplicate = choose_primary(a, b)
                found.append(
                    PotentialDuplicate(
                        id=pair_id(a.id, b.id),
                        primaryClient=primary,
                        duplicateClient=duplicate,
                        matchReasons=list(score.reasons),
                        confidence=score.confidence,
                        dogName=score.dog_name,
                        suggestedAction="merge" if score.confidence == HIGH else "review",
                        createdAt=now,
                    )
                )
        return found

    def scan(self, clients: Iterable[Client]) -> list[PotentialDuplicate]:
        """Matching pairs the user has not dismissed"""
        dismissed = self.registry.dismissed_ids()
        candidates = [dup for dup in self.detect(clients) if dup.id not in dismissed]
        logger.info(f"🔍 Duplicate scan found {len(candidates)} candidate pair(s)")
        return candidates

    def refresh(self, store: EntityStore) -> list[PotentialDuplicate]:
        candidates = self.scan(store.state.clients)
        store.dispatch(Action(ActionType.SET_POTENTIAL_DUPLICATES, candidates))
        return candidates

    def dismiss(self, store: EntityStore, duplicate_id: str) -> None:
        self.registry.dismiss(duplicate_id)
        store.dispatch(Action(ActionType.REMOVE_POTENTIAL_DUPLICATE, duplicate_id))
