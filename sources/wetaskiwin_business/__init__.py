"""
Wetaskiwin business directory - row parser and source registration.
"""

from .parser import parse_business_block, split_name_contact
from .source import BusinessDirectorySource

__all__ = ["BusinessDirectorySource", "parse_business_block", "split_name_contact"]
