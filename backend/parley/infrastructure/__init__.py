"""Infrastructure Layer — database session management and cross-cutting concerns.

Invariants:
    - Infrastructure never imports from services/ or api/
    - Storage failures surface as DatabaseError (core/errors.py)
"""
