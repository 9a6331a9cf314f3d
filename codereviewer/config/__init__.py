"""
Configuration for codereviewer.ai
"""
