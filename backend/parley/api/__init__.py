"""API Layer — FastAPI routes, request dependencies and error handlers.

Invariants:
    - Routes registered explicitly in main.py (no auto-discovery)
    - Every authenticated route resolves its principal via get_current_user

Design Decisions:
    - Thin routes delegate to services; authorization lives in the services
"""
