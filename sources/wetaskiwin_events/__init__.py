"""
City of Wetaskiwin calendar - heading parser and source registration.
"""

from .parser import parse_event_heading, to_timestamp
from .source import CityCalendarSource

__all__ = ["CityCalendarSource", "parse_event_heading", "to_timestamp"]
