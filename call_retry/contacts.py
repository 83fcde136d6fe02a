"""
Contact record store.

Keeps the per-contact retry attributes (attempt count, last and next call
times, last end reason, timezone) that the scheduler itself never caches.
"""

from datetime import datetime, timezone
from typing import Callable, Optional

from sqlalchemy import Boolean, Column, DateTime, Integer, String, Text
from sqlalchemy.orm import Session

from call_retry.database import Base, SessionLocal
from call_retry.logging_config import get_logger

logger = get_logger(__name__)

UNREACHABLE_TAGS = ("unreachable", "needs-manual-followup")


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class DBContact(Base):
    """Contact database model."""
    __tablename__ = "contacts"

    id = Column(String(100), primary_key=True)  # CRM contact id
    phone = Column(String(50), index=True)
    name = Column(String(255))

    attempt_count = Column(Integer, default=0, nullable=False)
    last_call_time = Column(DateTime(timezone=True), nullable=True)
    next_call_scheduled = Column(DateTime(timezone=True), nullable=True)
    ended_reason = Column(String(100), nullable=True)
    timezone = Column(String(64), nullable=True)

    # Outcome once retries are exhausted
    confirmation_status = Column(String(50), nullable=True)
    needs_manual_followup = Column(Boolean, default=False, nullable=False)
    tags = Column(Text, default="")  # comma-separated

    created_at = Column(DateTime(timezone=True), default=_utcnow)
    updated_at = Column(DateTime(timezone=True), default=_utcnow, onupdate=_utcnow)

    def tag_list(self) -> list[str]:
        return [t for t in (self.tags or "").split(",") if t]


class ContactService:
    """Service for reading and updating contact retry state."""

    @staticmethod
    def get_contact(db: Session, contact_id: str) -> Optional[DBContact]:
        return db.query(DBContact).filter(DBContact.id == contact_id).first()

    @staticmethod
    def upsert_contact(db: Session, contact_id: str, phone: Optional[str] = None,
                       name: Optional[str] = None) -> DBContact:
        """Create the contact if missing; fill in phone/name when provided."""
        contact = ContactService.get_contact(db, contact_id)
        if contact is None:
            contact = DBContact(id=contact_id, attempt_count=0, tags="")
            db.add(contact)
            logger.info("contact_created", contact_id=contact_id)
        if phone:
            contact.phone = phone
        if name:
            contact.name = name
        db.commit()
        db.refresh(contact)
        return contact

    @staticmethod
    def get_attempt_count(db: Session, contact_id: str) -> int:
        contact = ContactService.get_contact(db, contact_id)
        return int(contact.attempt_count or 0) if contact else 0

    @staticmethod
    def record_call_result(
        db: Session,
        contact_id: str,
        attempt_count: int,
        ended_reason: str,
        timezone_name: str,
        last_call_time: datetime,
        next_call_scheduled: Optional[datetime] = None,
    ) -> DBContact:
        """Persist the outcome of a call attempt and the next scheduled call."""
        contact = ContactService.get_contact(db, contact_id)
        if contact is None:
            contact = DBContact(id=contact_id, tags="")
            db.add(contact)

        contact.attempt_count = attempt_count
        contact.ended_reason = ended_reason
        contact.timezone = timezone_name
        contact.last_call_time = last_call_time
        contact.next_call_scheduled = next_call_scheduled
        db.commit()
        db.refresh(contact)

        logger.info(
            "contact_call_result_recorded",
            contact_id=contact_id,
            attempt_count=attempt_count,
            ended_reason=ended_reason,
        )
        return contact

    @staticmethod
    def mark_unreachable(db: Session, contact_id: str) -> Optional[DBContact]:
        """Flag a contact for manual follow-up once retries are exhausted."""
        contact = ContactService.get_contact(db, contact_id)
        if contact:
            tags = contact.tag_list()
            for tag in UNREACHABLE_TAGS:
                if tag not in tags:
                    tags.append(tag)
            contact.tags = ",".join(tags)
            contact.confirmation_status = "no_answer"
            contact.needs_manual_followup = True
            contact.next_call_scheduled = None
            db.commit()
            db.refresh(contact)

            logger.info("contact_marked_unreachable", contact_id=contact_id)

        return contact


class SQLContactStore:
    """Contact store backed by ContactService, one session per operation."""

    def __init__(self, session_factory: Callable[[], Session] = SessionLocal):
        self._session_factory = session_factory

    def get_attempt_count(self, contact_id: str) -> int:
        with self._session_factory() as db:
            return ContactService.get_attempt_count(db, contact_id)

    def record_call_result(self, contact_id: str, **fields) -> None:
        with self._session_factory() as db:
            ContactService.record_call_result(db, contact_id, **fields)

    def mark_unreachable(self, contact_id: str) -> None:
        with self._session_factory() as db:
            ContactService.mark_unreachable(db, contact_id)
