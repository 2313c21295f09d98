"""SQLAlchemy ORM models for run history and user-added sites."""

from sqlalchemy import Column, DateTime, Integer, String, Text, func
from sqlalchemy.orm import DeclarativeBase


class Base(DeclarativeBase):
    pass


class AssessmentLogRow(Base):
    """One completed (done or blocked) assessment run. Rows are never updated."""

    __tablename__ = "assessment_log"

    id = Column(Integer, primary_key=True, autoincrement=True)
    timestamp = Column(String(40), nullable=False)
    site_id = Column(String(100), nullable=False, index=True)
    site_label = Column(String(500), nullable=False, default="")
    verdict = Column(String(20), nullable=False)
    reason = Column(Text, nullable=False, default="")
    prechecks = Column(Text, nullable=False, default="")
    clauses = Column(Text, nullable=False, default="")
    overlay = Column(Text, nullable=False, default="")
    inputs = Column(Text, nullable=False, default="")
    created_at = Column(DateTime(timezone=True), server_default=func.now())


class UserSiteRow(Base):
    """A site the operator added by hand, stored as its dataset JSON record."""

    __tablename__ = "user_sites"

    id = Column(String(100), primary_key=True)
    label = Column(String(500), nullable=False)
    payload = Column(Text, nullable=False)
    created_at = Column(DateTime(timezone=True), server_default=func.now())
