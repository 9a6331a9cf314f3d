"""
Provider adapters, routing and prompt construction
"""
