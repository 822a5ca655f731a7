"""
Dataset labeling session for radiographic weld-defect inspection.
"""

__version__ = "0.1.0"
