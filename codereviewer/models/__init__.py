"""
Data models for reviews and chat
"""
