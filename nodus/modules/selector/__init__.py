"""
Selector Module - Black Box Interface

Purpose: Translate a class name and pod phase into API selectors
Interface: label_selector(), field_selector()
Hidden: Label key naming, selector syntax

Pure functions, no state.
"""

from .selector import CLASS_LABEL_KEY, field_selector, label_selector

__all__ = ["CLASS_LABEL_KEY", "field_selector", "label_selector"]
