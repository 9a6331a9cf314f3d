"""
Services: history store, git integration and review orchestration
"""
