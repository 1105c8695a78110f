from sqlalchemy import Column, String, DateTime
from sqlalchemy.sql import func

from common.db.base import Base


class LocalUserEntity(Base):
    """Paying users, keyed by identity subject. Rows are only ever inserted."""

    __tablename__ = "users"

    auth_sub = Column(String, primary_key=True)
    created_at = Column(
        DateTime(timezone=True), server_default=func.now(), nullable=False
    )
