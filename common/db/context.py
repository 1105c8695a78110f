"""
Database session context management.

Lets repositories share one session inside an explicit transaction while
one-off operations acquire and release their own:

    # In repositories - auto-manages sessions
    async with get_session() as session:
        result = await session.execute(query)

    # Explicit transaction - multiple ops share one session
    async with transaction():
        await repo.save(thing1)
        await repo.save(thing2)  # Same session, commits together
"""

from contextvars import ContextVar, Token
from typing import Optional

from sqlalchemy.ext.asyncio import AsyncSession

# Holds the current session (if inside a transaction)
_current_session: ContextVar[Optional[AsyncSession]] = ContextVar(
    "db_session", default=None
)


def get_current_session() -> Optional[AsyncSession]:
    """Get the current session from context, if any."""
    return _current_session.get()


def set_current_session(session: AsyncSession) -> Token:
    """Set session in context. Returns the token for resetting."""
    return _current_session.set(session)


def reset_current_session(token: Token) -> None:
    """Reset session context using token from set_current_session."""
    _current_session.reset(token)
