"""Database models for lodges, members, candidates and the access audit trail.

This module provides SQLAlchemy models for:
- Lodges and their legacy rosters
- Members and their ordered lodge memberships
- Candidates (time-boxed membership proposals)
- Audit logs of denied access decisions
"""
import threading
import uuid
from contextlib import contextmanager
from datetime import datetime
from typing import Any, Dict, List, Optional

from loguru import logger
from sqlalchemy import (
    JSON,
    Boolean,
    Column,
    Date,
    DateTime,
    ForeignKey,
    Integer,
    String,
    Text,
    create_engine,
    text,
)
from sqlalchemy.orm import DeclarativeBase, relationship, sessionmaker

from lodge_access.candidates import days_left
from lodge_access.roles import Role


def _new_id() -> str:
    return uuid.uuid4().hex


class Base(DeclarativeBase):
    pass


class Lodge(Base):
    """A lodge. ``roster`` keeps legacy member/candidate id lists."""

    __tablename__ = "lodges"

    id = Column(String(64), primary_key=True, default=_new_id)
    name = Column(String(255), nullable=False, unique=True, index=True)
    location = Column(String(255), nullable=True)
    description = Column(Text, nullable=True)
    is_active = Column(Boolean, default=True, nullable=False)
    roster = Column(JSON, nullable=True)

    created_at = Column(DateTime, default=datetime.utcnow, nullable=False)
    updated_at = Column(DateTime, nullable=True)

    memberships = relationship("LodgeMembership", back_populates="lodge")

    def as_document(self) -> Dict[str, Any]:
        roster = self.roster or {}
        return {
            "_id": self.id,
            "name": self.name,
            "isActive": self.is_active,
            "members": list(roster.get("members", [])),
            "candidates": list(roster.get("candidates", [])),
        }

    def __repr__(self):
        return f"<Lodge {self.name} ({self.id})>"


class Member(Base):
    """A person with an account; never deleted while holding an admin role."""

    __tablename__ = "members"

    id = Column(String(64), primary_key=True, default=_new_id)
    name = Column(String(255), nullable=False)
    email = Column(String(255), nullable=False, unique=True, index=True)
    role = Column(String(50), nullable=False, default=Role.LODGE_MEMBER.value)
    status = Column(String(50), nullable=False, default="active")
    is_active = Column(Boolean, default=True, nullable=False)

    primary_lodge_id = Column(String(64), ForeignKey("lodges.id"), nullable=True)
    primary_lodge_position = Column(String(100), nullable=True)
    lodge_roles = Column(JSON, nullable=True)
    administered_lodge_ids = Column(JSON, nullable=True)

    created_at = Column(DateTime, default=datetime.utcnow, nullable=False)
    updated_at = Column(DateTime, nullable=True)

    memberships = relationship(
        "LodgeMembership",
        back_populates="member",
        order_by="LodgeMembership.ordinal",
        cascade="all, delete-orphan",
    )

    @property
    def lodge_ids(self) -> List[str]:
        return [m.lodge_id for m in self.memberships]

    def as_document(self) -> Dict[str, Any]:
        return {
            "_id": self.id,
            "name": self.name,
            "email": self.email,
            "role": self.role,
            "status": self.status,
            "primaryLodge": self.primary_lodge_id,
            "lodgeRoles": dict(self.lodge_roles or {}),
            "lodgeMemberships": [
                {"lodge": m.lodge_id, "position": m.position} for m in self.memberships
            ],
        }

    def __repr__(self):
        return f"<Member {self.email} ({self.role})>"


class LodgeMembership(Base):
    __tablename__ = "lodge_memberships"

    id = Column(Integer, primary_key=True)
    member_id = Column(String(64), ForeignKey("members.id"), nullable=False, index=True)
    lodge_id = Column(String(64), ForeignKey("lodges.id"), nullable=False, index=True)
    position = Column(String(100), nullable=True, default="Member")
    ordinal = Column(Integer, nullable=False, default=0)

    member = relationship("Member", back_populates="memberships")
    lodge = relationship("Lodge", back_populates="memberships")


class Candidate(Base):
    """A membership candidate.

    Older rows carry the lodge only as an embedded ``lodge`` document, and the
    oldest ones carry nothing (the lodge's roster lists them).
    """

    __tablename__ = "candidates"

    id = Column(String(64), primary_key=True, default=_new_id)
    first_name = Column(String(255), nullable=False)
    last_name = Column(String(255), nullable=False)
    date_of_birth = Column(Date, nullable=True)
    living_location = Column(String(255), nullable=True)
    profession = Column(String(255), nullable=True)
    notes = Column(Text, nullable=True)

    lodge_id = Column(String(64), nullable=True, index=True)
    lodge = Column(JSON, nullable=True)

    status = Column(String(50), nullable=False, default="pending")
    start_date = Column(Date, nullable=True)
    end_date = Column(Date, nullable=True)

    created_by = Column(String(64), nullable=True)
    created_at = Column(DateTime, default=datetime.utcnow, nullable=False)

    def as_document(self, now: Optional[datetime] = None) -> Dict[str, Any]:
        return {
            "_id": self.id,
            "firstName": self.first_name,
            "lastName": self.last_name,
            "dateOfBirth": self.date_of_birth.isoformat() if self.date_of_birth else None,
            "livingLocation": self.living_location,
            "profession": self.profession,
            "notes": self.notes,
            "lodgeId": self.lodge_id,
            "lodge": self.lodge,
            "status": self.status,
            "timing": {
                "startDate": self.start_date.isoformat() if self.start_date else None,
                "endDate": self.end_date.isoformat() if self.end_date else None,
                "daysLeft": days_left(self.end_date, now),
            },
        }

    def __repr__(self):
        return f"<Candidate {self.first_name} {self.last_name} ({self.status})>"


class AuditLog(Base):
    """Audit log of access decisions."""

    __tablename__ = "audit_logs"

    id = Column(Integer, primary_key=True)
    action = Column(String(100), nullable=False, index=True)
    resource_type = Column(String(50), nullable=False)
    resource_id = Column(String(255), nullable=True)

    user = Column(String(255), nullable=True)
    ip_address = Column(String(45), nullable=True)  # IPv6 compatible

    reason_code = Column(String(50), nullable=True)
    success = Column(Boolean, default=True)
    details = Column(Text, nullable=True)

    created_at = Column(DateTime, default=datetime.utcnow, nullable=False, index=True)

    def __repr__(self):
        return f"<AuditLog {self.action} on {self.resource_type} at {self.created_at}>"


class DatabaseManager:
    """Database connection and session management with proper pooling."""

    def __init__(
        self,
        database_url: str,
        pool_size: int = 5,
        max_overflow: int = 10,
        pool_timeout: int = 30,
        pool_recycle: int = 3600,
        echo: bool = False,
    ):
        """Initialize database connection.

        Args:
            database_url: SQLAlchemy database URL
            pool_size: Number of connections to maintain in the pool
            max_overflow: Max number of connections above pool_size
            pool_timeout: Seconds to wait before giving up on getting a connection
            pool_recycle: Recycle connections after this many seconds
            echo: Echo SQL statements (for debugging)
        """
        if database_url.startswith("sqlite:"):
            # SQLite doesn't support connection pooling
            self.engine = create_engine(
                database_url,
                echo=echo,
                connect_args={"check_same_thread": False},
            )
        else:
            self.engine = create_engine(
                database_url,
                echo=echo,
                pool_size=pool_size,
                max_overflow=max_overflow,
                pool_timeout=pool_timeout,
                pool_recycle=pool_recycle,
                pool_pre_ping=True,
            )

        self.SessionLocal = sessionmaker(
            autocommit=False,
            autoflush=False,
            bind=self.engine,
            expire_on_commit=False,
        )

    def create_tables(self):
        Base.metadata.create_all(bind=self.engine)

    def drop_tables(self):
        """Drop all tables (use with caution)."""
        Base.metadata.drop_all(bind=self.engine)

    def get_session(self):
        """Get database session. Caller must close it."""
        return self.SessionLocal()

    @contextmanager
    def get_session_context(self):
        """Session scope that commits on success and rolls back on error.

        Usage:
            with db_manager.get_session_context() as session:
                session.add(obj)
        """
        session = self.SessionLocal()
        try:
            yield session
            session.commit()
        except Exception:
            session.rollback()
            raise
        finally:
            session.close()

    def dispose(self):
        self.engine.dispose()

    def health_check(self) -> bool:
        try:
            with self.get_session_context() as session:
                session.execute(text("SELECT 1"))
            return True
        except Exception as e:
            logger.error(f"Database health check failed: {e}")
            return False


_db_manager: Optional[DatabaseManager] = None
_db_manager_lock = threading.Lock()


def get_db_manager(
    database_url: Optional[str] = None,
    reset: bool = False,
    **kwargs,
) -> DatabaseManager:
    """Get or create the database manager singleton.

    Args:
        database_url: Database URL (defaults to the DATABASE_URL setting)
        reset: Force recreation of the singleton (for testing)
        **kwargs: Additional arguments passed to DatabaseManager
    """
    global _db_manager

    with _db_manager_lock:
        if _db_manager is None or reset:
            if _db_manager is not None and reset:
                try:
                    _db_manager.dispose()
                except Exception as e:
                    logger.warning(f"Error disposing old db_manager: {e}")

            if database_url is None:
                from lodge_access.config import database_url as configured_url

                database_url = configured_url()

            _db_manager = DatabaseManager(database_url, **kwargs)
            _db_manager.create_tables()

    return _db_manager


def dispose_db_manager():
    global _db_manager
    if _db_manager is not None:
        try:
            _db_manager.dispose()
        except Exception as e:
            logger.error(f"Error disposing db_manager: {e}")
        finally:
            _db_manager = None
