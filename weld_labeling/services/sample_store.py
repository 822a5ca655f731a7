from __future__ import annotations

import json
import logging
from typing import List, Optional

from ..clients.custom_defects import CustomDefectsClient
from ..dto import TrainingSample


class HttpSampleStore:
    """Sample store backed by the custom defects samples endpoint."""

    def __init__(self, client: CustomDefectsClient):
        self._client = client
        self._log = logging.getLogger("weld_labeling.service.HttpSampleStore")

    def add_sample(self,
                   class_id: int,
                   image_ref: str,
                   image_id: Optional[str],
                   bbox: List[float],
                   class_name: str,
                   format: str = "bbox",
                   source: str = "manual") -> Optional[TrainingSample]:
        fields = {
            "defect_type_id": str(int(class_id)),
            "image_path": image_ref,
        }
        if image_id:
            fields["image_id"] = image_id
        fields["annotations"] = json.dumps({"bbox": [float(v) for v in bbox], "class_name": class_name})
        fields["annotation_format"] = format
        fields["source"] = source
        self._log.debug("add_sample defect_type_id=%s image_id=%s source=%s", class_id, image_id, source)
        body = self._client.add_training_sample(fields)
        # The backend echoes the created sample; older deployments answer with an empty body
        return TrainingSample.model_validate(body) if isinstance(body, dict) and "id" in body else None
