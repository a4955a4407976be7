"""Database models for the bounce blacklist."""
from __future__ import annotations

from sqlalchemy import Column, DateTime, Integer, String, Text, UniqueConstraint, func
from sqlalchemy.dialects import mysql
from sqlalchemy.orm import declarative_base

Base = declarative_base()

# tenant_id is a signed 32-bit INTEGER on every backend.
MAX_TENANT_ID = 2**31 - 1


class BlacklistEntry(Base):
    __tablename__ = "blacklist"
    __table_args__ = (UniqueConstraint("tenant_id", "email", name="uq_blacklist_tenant_email"),)

    id = Column(Integer, primary_key=True, autoincrement=True)
    tenant_id = Column(Integer, nullable=False, index=True)
    email = Column(String(320), nullable=False)
    # Full SES notification JSON; MySQL TEXT stops at 64 KB.
    reason = Column(Text().with_variant(mysql.MEDIUMTEXT(), "mysql", "mariadb"), nullable=False)
    created_at = Column(DateTime(timezone=True), server_default=func.now())
