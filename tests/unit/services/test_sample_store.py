"""
Tests for the HTTP sample store.
"""

import json

import pytest
from unittest.mock import Mock

from weld_labeling.clients.custom_defects import BackendError
from weld_labeling.services.sample_store import HttpSampleStore
from tests.fixtures.factories import TrainingSampleDataFactory


class TestHttpSampleStore:
    """Test HttpSampleStore functionality."""

    def test_add_sample_builds_form_fields(self):
        """Each annotation becomes one multipart sample with JSON annotations."""
        client = Mock()
        client.add_training_sample.return_value = None
        store = HttpSampleStore(client)

        store.add_sample(
            class_id=2,
            image_ref="data:image/png;base64,AAAA",
            image_id="img1",
            bbox=[0.1, 0.1, 0.3, 0.3],
            class_name="Crack",
            format="bbox",
            source="manual",
        )

        (fields, ), _ = client.add_training_sample.call_args
        assert fields["defect_type_id"] == "2"
        assert fields["image_path"] == "data:image/png;base64,AAAA"
        assert fields["image_id"] == "img1"
        assert fields["annotation_format"] == "bbox"
        assert fields["source"] == "manual"
        assert json.loads(fields["annotations"]) == {"bbox": [0.1, 0.1, 0.3, 0.3], "class_name": "Crack"}

    def test_image_id_omitted_when_missing(self):
        client = Mock()
        client.add_training_sample.return_value = None
        store = HttpSampleStore(client)

        store.add_sample(class_id=1, image_ref="ref", image_id=None, bbox=[0, 0, 1, 1], class_name="Porosity")

        (fields, ), _ = client.add_training_sample.call_args
        assert "image_id" not in fields
        assert fields["source"] == "manual"

    def test_returns_created_sample(self):
        client = Mock()
        client.add_training_sample.return_value = TrainingSampleDataFactory(id=77, source="active_learning")
        store = HttpSampleStore(client)

        sample = store.add_sample(class_id=1, image_ref="ref", image_id="al_1", bbox=[0, 0, 1, 1],
                                  class_name="Porosity", source="active_learning")

        assert sample.id == 77
        assert sample.source == "active_learning"

    def test_empty_response_returns_none(self):
        client = Mock()
        client.add_training_sample.return_value = {}
        store = HttpSampleStore(client)

        assert store.add_sample(class_id=1, image_ref="ref", image_id="x", bbox=[0, 0, 1, 1], class_name="P") is None

    def test_backend_error_propagates(self):
        client = Mock()
        client.add_training_sample.side_effect = BackendError("boom", status=500)
        store = HttpSampleStore(client)

        with pytest.raises(BackendError):
            store.add_sample(class_id=1, image_ref="ref", image_id="x", bbox=[0, 0, 1, 1], class_name="P")
