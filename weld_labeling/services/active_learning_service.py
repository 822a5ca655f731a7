from __future__ import annotations

import logging
from typing import Dict, List, Tuple

from ..clients.custom_defects import CustomDefectsClient
from ..dto import Suggestion


class ActiveLearningService:
    """Suggestion feed and queue notifications for active-learning mode."""

    def __init__(self, client: CustomDefectsClient):
        self._client = client
        self._last: Dict[int, Suggestion] = {}
        self._log = logging.getLogger("weld_labeling.service.ActiveLearningService")

    def list_suggestions(self, limit: int = 50) -> List[Suggestion]:
        """Fetch the queue, highest priority first."""
        rows = self._client.list_suggestions(limit=limit)
        suggestions = sorted((Suggestion.model_validate(r) for r in rows), key=lambda s: s.priority_score, reverse=True)
        self._last = {s.id: s for s in suggestions}
        return suggestions

    def get(self, suggestion_id: int) -> Suggestion:
        s = self._last.get(int(suggestion_id))
        if s is None:
            self.list_suggestions()
            s = self._last.get(int(suggestion_id))
        if s is None:
            raise KeyError(f"Suggestion not found: {suggestion_id}")
        return s

    def image_for(self, suggestion: Suggestion) -> Tuple[str, str, int]:
        """Return (image_ref, image_id, suggestion_id) for acquiring into a session."""
        if not suggestion.image_path:
            raise ValueError(f"Suggestion {suggestion.id} has no image")
        return suggestion.image_path, suggestion.image_id, suggestion.id

    def mark_skipped(self, suggestion_id: int) -> None:
        self._client.skip_suggestion(suggestion_id)
        self._last.pop(int(suggestion_id), None)

    def mark_accepted(self, suggestion_id: int) -> None:
        self._client.accept_suggestion(suggestion_id)
        self._last.pop(int(suggestion_id), None)
