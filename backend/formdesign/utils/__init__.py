"""
Utility modules for the form design engine.
"""

from formdesign.utils.field_kinds import FIELD_KINDS
from formdesign.utils.naming import generate_field_name

__all__ = ["FIELD_KINDS", "generate_field_name"]
