"""Repository interfaces and implementations.

This package defines the abstract storage interface the cache needs and the
concrete SQLite adapter under :mod:`fcache.repositories.sqlite`.
"""
