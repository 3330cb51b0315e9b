"""ORM models; importing this package registers every table on Base.metadata."""

from app.models.conversation import Conversation  # noqa: F401
from app.models.message import Message  # noqa: F401
