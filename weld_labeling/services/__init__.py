"""
Backend-facing collaborators of the labeling session.
"""

from .active_learning_service import ActiveLearningService
from .defect_registry import DefectTypeRegistryService
from .sample_store import HttpSampleStore
from .session_registry import SessionRegistry
from .upload_service import ImageRejected, ImageUploadService, UploadedImage

__all__ = [
    "ActiveLearningService",
    "DefectTypeRegistryService",
    "HttpSampleStore",
    "SessionRegistry",
    "ImageRejected",
    "ImageUploadService",
    "UploadedImage",
]
