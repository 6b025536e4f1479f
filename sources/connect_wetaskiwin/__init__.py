"""
Connect Wetaskiwin community calendar - JSON-LD parser and source registration.
"""

from .parser import extract_ld_events, parse_ld_event
from .source import ConnectWetaskiwinSource

__all__ = ["ConnectWetaskiwinSource", "extract_ld_events", "parse_ld_event"]
