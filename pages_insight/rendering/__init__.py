"""Rendering bridge for table front ends."""

from .bridge import prepare_view_data, records_to_frame

__all__ = ["prepare_view_data", "records_to_frame"]
