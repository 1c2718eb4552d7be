"""
Database models, repositories and session helpers for the catalog store.
"""
