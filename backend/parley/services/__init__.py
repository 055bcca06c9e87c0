"""Services Layer — imperative shell over the async DB session.

Invariants:
    - One service class per store; each receives the request's AsyncSession
    - Every conversation-scoped operation authorizes through ParticipantRegistry
    - Services commit their own unit of work
"""
