"""
Pytest configuration and shared fixtures for labeling session tests.
"""

# Ensure the project root is on sys.path so `weld_labeling` and `tests.fixtures` import from a checkout
import sys
from pathlib import Path as _Path

_THIS_DIR = _Path(__file__).resolve().parent
_PROJECT_ROOT = _THIS_DIR.parent
if str(_PROJECT_ROOT) not in sys.path:
  sys.path.insert(0, str(_PROJECT_ROOT))

import io
from typing import Generator, List
from unittest.mock import Mock

import pytest
from flask import Flask
from flask.testing import FlaskClient
from PIL import Image

from weld_labeling.app import create_app
from weld_labeling.clients.custom_defects import CustomDefectsClient
from weld_labeling.config import Settings
from weld_labeling.core.labeling_session import LabelingSession, SessionMode
from weld_labeling.dto import DefectType
from tests.fixtures.factories import DefectTypeDataFactory, make_defect_type


@pytest.fixture
def defect_types() -> List[DefectType]:
  """Two active defect types plus one inactive one."""
  return [
    make_defect_type(id=1, name="Porosity", code="PO", current_sample_count=60, min_samples_required=50),
    make_defect_type(id=2, name="Crack", code="CR", current_sample_count=10, min_samples_required=50),
    make_defect_type(id=3, name="Undercut", code="UC", is_active=False),
  ]


@pytest.fixture
def mock_registry(defect_types: List[DefectType]) -> Mock:
  """Registry double returning the fixture types (filtered like the real one)."""
  registry = Mock()
  registry.list.side_effect = lambda active_only=True: [t for t in defect_types if t.is_active or not active_only]
  registry.reload.side_effect = lambda: [t for t in defect_types if t.is_active]
  return registry


@pytest.fixture
def mock_store() -> Mock:
  return Mock()


@pytest.fixture
def mock_queue() -> Mock:
  return Mock()


@pytest.fixture
def labeling_session(mock_store: Mock, mock_registry: Mock, mock_queue: Mock) -> LabelingSession:
  """Manual-mode session with nothing selected."""
  return LabelingSession(mock_store, mock_registry, mock_queue, mode=SessionMode.MANUAL)


@pytest.fixture
def loaded_session(labeling_session: LabelingSession) -> LabelingSession:
  """Manual-mode session with an image loaded and class 2 selected."""
  labeling_session.acquire_image("data:image/png;base64,AAAA", "img1")
  labeling_session.select_class(2)
  return labeling_session


@pytest.fixture
def al_session(mock_store: Mock, mock_registry: Mock, mock_queue: Mock) -> LabelingSession:
  """Active-learning session with suggestion 42 loaded and class 1 selected."""
  session = LabelingSession(mock_store, mock_registry, mock_queue, mode=SessionMode.ACTIVE_LEARNING)
  session.acquire_image("https://backend.test/images/42.png", "al_42", suggestion_id=42)
  session.select_class(1)
  return session


@pytest.fixture
def png_bytes() -> bytes:
  """A small real PNG image."""
  buf = io.BytesIO()
  Image.new("RGB", (64, 32), color=(128, 128, 128)).save(buf, format="PNG")
  return buf.getvalue()


@pytest.fixture
def mock_client() -> Mock:
  """Backend client double with a populated defect type list."""
  client = Mock(spec=CustomDefectsClient)
  client.list_defect_types.return_value = [
    DefectTypeDataFactory(id=1, name="Porosity", code="PO"),
    DefectTypeDataFactory(id=2, name="Crack", code="CR"),
  ]
  client.list_suggestions.return_value = []
  client.add_training_sample.return_value = {}
  return client


@pytest.fixture(scope="function")
def app(mock_client: Mock) -> Generator[Flask, None, None]:
  """Flask application wired to the mocked backend client."""
  settings = Settings(api_url="http://backend.test", api_timeout_s=5.0, max_upload_mb=1)
  app = create_app(settings, client=mock_client)
  app.config.update({"TESTING": True})
  yield app


@pytest.fixture
def client(app: Flask) -> FlaskClient:
  return app.test_client()
