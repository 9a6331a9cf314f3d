"""
Utility modules for codereviewer.ai
"""

from .logging import configure_logging

__all__ = ["configure_logging"]
