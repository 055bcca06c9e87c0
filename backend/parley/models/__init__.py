"""ORM Models — SQLAlchemy declarative models for all domain entities.

Invariants:
    - All models inherit from Base (db/base.py)
    - Unique keys back every dedup rule: participants (conversation, user),
      reactions (message, user, emoji), pin_records (cid), conversations (external_topic)

Design Decisions:
    - One file per entity for locality
    - All models imported here so SQLAlchemy resolves string-based relationship()
      references before any query runs
"""

from parley.models.user import User  # noqa: F401
from parley.models.conversation import Conversation  # noqa: F401
from parley.models.participant import Participant  # noqa: F401
from parley.models.message import Message  # noqa: F401
from parley.models.reaction import Reaction  # noqa: F401
from parley.models.pin_record import PinRecord  # noqa: F401
