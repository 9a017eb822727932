# ------------------------------
# Module: memory.py
# Description: Bounded in-process log of question / answer interactions
# ------------------------------

import logging
import threading
import uuid
from collections import deque
from datetime import datetime
from typing import Any, Dict, List, Optional

from services.constants import (
    MEMORY_CAPACITY,
    DEFAULT_USER_ID,
    DEFAULT_RECENT_LIMIT,
    DEFAULT_RELATED_LIMIT,
    RELATED_KEYWORD_MIN_LENGTH,
)
from services.data_model import Interaction, ScoredInteraction, Query, copy_interaction

logger = logging.getLogger(__name__)

def extract_keywords(text: str) -> List[str]:
    '''
      Lower-case whitespace tokens longer than RELATED_KEYWORD_MIN_LENGTH - 1 chars.
    '''
    return [w for w in text.lower().split() if len(w) >= RELATED_KEYWORD_MIN_LENGTH]

class InteractionMemory:
    """
    FIFO store of the last `capacity` interactions plus per-user preferences.

    One lock guards every operation. Reads return copies so callers can't
    change stored interactions; the only mutation allowed after insert is
    mark_interaction_as_referenced.
    """

    def __init__(self, capacity: int = MEMORY_CAPACITY):
        if capacity <= 0:
            raise ValueError(f"Memory capacity must be positive, got {capacity}")
        self.capacity = capacity
        self._interactions = deque(maxlen=capacity)
        self._preferences: Dict[str, Dict[str, Any]] = {}
        self._lock = threading.Lock()

    def __len__(self) -> int:
        with self._lock:
            return len(self._interactions)

    def store_interaction(self, query: str, parsed_query: Optional[Query], response: Any,
                          user_id: Optional[str] = None) -> str:
        """
        Store an interaction, evicting the oldest one when full.

        Returns:
            The new interaction id
        """
        interaction = Interaction(
            id=f"interaction_{uuid.uuid1().hex}",
            timestamp=datetime.now(),
            query=query,
            parsed_query=parsed_query,
            response=response,
            user_id=user_id or DEFAULT_USER_ID,
        )
        with self._lock:
            if len(self._interactions) == self.capacity:
                logger.debug(f"Memory full, evicting {self._interactions[0].id}")
            self._interactions.append(interaction)

        logger.info(f"Stored interaction {interaction.id}: {query[:50]}")
        return interaction.id

    def get_recent_interactions(self, limit: int = DEFAULT_RECENT_LIMIT, user_id: Optional[str] = None,
                                include_response: bool = True) -> List[Interaction]:
        """Newest first, optionally for a single user and without response payloads."""
        with self._lock:
            snapshot = list(self._interactions)

        if user_id:
            snapshot = [i for i in snapshot if i.user_id == user_id]
        recent = list(reversed(snapshot))[:limit]

        if include_response:
            return [copy_interaction(i) for i in recent]
        return [copy_interaction(i, response=None) for i in recent]

    def find_related_interactions(self, query: str, user_id: Optional[str] = None,
                                  limit: int = DEFAULT_RELATED_LIMIT) -> List[ScoredInteraction]:
        """
        Score stored interactions by keyword overlap with a new query.

        The score is the number of query keywords that appear as substrings of
        the stored query text. Interactions scoring 0 are never returned.

        Args:
            query: The new question
            user_id: Only consider this user's interactions
            limit: Max number of interactions returned

        Returns:
            Interactions sorted by relevance_score, highest first
        """
        keywords = extract_keywords(query)
        if not keywords:
            return []

        with self._lock:
            snapshot = list(self._interactions)

        if user_id:
            snapshot = [i for i in snapshot if i.user_id == user_id]

        scored = []
        for interaction in snapshot:
            text = interaction.query.lower()
            score = sum(1 for k in keywords if k in text)
            if score > 0:
                scored.append(copy_interaction(interaction, ScoredInteraction, relevance_score=score))

        scored.sort(key=lambda i: i.relevance_score, reverse=True)
        return scored[:limit]

    def get_interaction_by_id(self, interaction_id: str) -> Optional[Interaction]:
        with self._lock:
            found = next((i for i in self._interactions if i.id == interaction_id), None)
            return copy_interaction(found) if found else None

    def mark_interaction_as_referenced(self, interaction_id: str) -> bool:
        '''
          Flag an interaction as referenced. Returns False for unknown ids.
        '''
        with self._lock:
            for interaction in self._interactions:
                if interaction.id == interaction_id:
                    interaction.referenced = True
                    return True
        logger.warning(f"Interaction {interaction_id} not found")
        return False

    def store_user_preferences(self, user_id: str, preferences: Dict[str, Any]) -> bool:
        with self._lock:
            merged = dict(self._preferences.get(user_id, {}))
            merged.update(preferences)
            merged["last_updated"] = datetime.now()
            self._preferences[user_id] = merged
        return True

    def get_user_preferences(self, user_id: str) -> Dict[str, Any]:
        with self._lock:
            return dict(self._preferences.get(user_id, {}))

    def clear_user_interactions(self, user_id: str) -> int:
        """Remove every interaction of a user. Returns how many were removed."""
        with self._lock:
            before = len(self._interactions)
            kept = [i for i in self._interactions if i.user_id != user_id]
            self._interactions = deque(kept, maxlen=self.capacity)
            removed = before - len(kept)

        logger.info(f"Cleared {removed} interactions for user {user_id}")
        return removed

    def get_memory_stats(self) -> Dict[str, int]:
        with self._lock:
            snapshot = list(self._interactions)
            preferences_count = len(self._preferences)

        return {
            "total_interactions": len(snapshot),
            "user_count": len({i.user_id for i in snapshot}),
            "referenced_count": sum(1 for i in snapshot if i.referenced),
            "user_preferences_count": preferences_count,
        }

    def clear(self) -> None:
        """Drop all interactions. Preferences are kept."""
        with self._lock:
            self._interactions.clear()
        logger.info("Cleared all interactions")
