"""Parley Application Package — conversation, message and pin persistence core.

Invariants:
    - Package root contains no executable code (import side-effects prohibited)
"""
