from .custom_defects import BackendError, CustomDefectsClient

__all__ = ["BackendError", "CustomDefectsClient"]
