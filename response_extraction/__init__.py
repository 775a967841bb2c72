from __future__ import annotations  # Re-export response extraction API

from .extractor import Extraction, extract, normalize, validate_shape

__all__ = ["Extraction", "extract", "normalize", "validate_shape"]
