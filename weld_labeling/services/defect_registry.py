from __future__ import annotations

import logging
from typing import Any, Dict, List, Optional

from pydantic import ValidationError

from ..clients.custom_defects import BackendError, CustomDefectsClient
from ..core.errors import RegistryReloadFailed
from ..dto import DefectStatistics, DefectType


class DefectTypeRegistryService:
    """Read-only cache of the backend's defect types.

    The first `list()` fetches lazily; `reload()` refreshes after samples are
    written so current_sample_count reflects the new data.
    """

    def __init__(self, client: CustomDefectsClient):
        self._client = client
        self._types: Optional[List[DefectType]] = None
        self._log = logging.getLogger("weld_labeling.service.DefectTypeRegistryService")

    def _fetch(self) -> List[DefectType]:
        try:
            rows = self._client.list_defect_types(active_only=False)
            return [DefectType.model_validate(r) for r in rows]
        except (BackendError, ValidationError) as e:
            raise RegistryReloadFailed(f"failed to load defect types: {e}") from e

    def list(self, active_only: bool = True) -> List[DefectType]:
        if self._types is None:
            self._types = self._fetch()
        if active_only:
            return [t for t in self._types if t.is_active]
        return list(self._types)

    def get(self, defect_type_id: int) -> Optional[DefectType]:
        return next((t for t in self.list(active_only=False) if t.id == int(defect_type_id)), None)

    def reload(self) -> List[DefectType]:
        self._types = self._fetch()
        self._log.debug("reloaded %d defect type(s)", len(self._types))
        return self.list(active_only=True)

    def stats(self) -> Dict[str, Any]:
        """Progress summary over the active types (labeling stats panel)."""
        types = self.list(active_only=True)
        ready = [t for t in types if t.is_ready]
        avg_progress = sum(t.progress for t in types) / len(types) if types else 0.0
        return {
            "defect_types": len(types),
            "total_samples": sum(t.current_sample_count for t in types),
            "ready_to_train": len(ready),
            "need_more_samples": len(types) - len(ready),
            "avg_progress": avg_progress,
        }

    def backend_stats(self) -> DefectStatistics:
        """Dataset-wide summary as computed by the backend."""
        try:
            return DefectStatistics.model_validate(self._client.get_statistics())
        except (BackendError, ValidationError) as e:
            raise RegistryReloadFailed(f"failed to load statistics: {e}") from e
