"""
codereviewer.ai - AI-powered code review and chat for developers
"""

__version__ = "1.0.0"
