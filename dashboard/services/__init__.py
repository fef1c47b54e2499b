"""
Dashboard business logic services.
"""
from .preview import build_preview, is_garbled_name, po_payload

__all__ = [
    "build_preview",
    "is_garbled_name",
    "po_payload",
]
