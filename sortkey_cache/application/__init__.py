"""Application layer: the cache engine services.

Depends on domain types and the store protocol only (DIP).
"""
