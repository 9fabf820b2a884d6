"""SQLite working copy of the roster.

The CLI keeps the current roster here between commands. The roster
manager stays the source of truth for every rule; this module only stores
and restores whole snapshots.
"""

from pathlib import Path
from typing import Any

from sqlalchemy import (
    Boolean,
    Column,
    ForeignKey,
    Integer,
    String,
    Text,
    create_engine,
)
from sqlalchemy.orm import declarative_base, sessionmaker
from sqlalchemy.orm import relationship as orm_relationship

from radici.config import settings
from radici.logging import get_logger
from radici.schemas.roster import Document, FamilyMember, Roster, UserProfile

logger = get_logger(__name__)

Base = declarative_base()

LAST_MEMBER_ID_KEY = "last_member_id"


class ProfileRecord(Base):
    """Onboarding answers (a single row)."""

    __tablename__ = "profiles"

    id = Column(Integer, primary_key=True)
    first_name = Column(String, nullable=False)
    birth_last_name = Column(String, nullable=False)
    ancestor_first_name = Column(String)
    ancestor_birth_last_name = Column(String)
    ancestor_type = Column(String)
    created_at = Column(String)  # ISO-8601

    def __repr__(self) -> str:
        return f"<ProfileRecord(first_name='{self.first_name}')>"


class MemberRecord(Base):
    """Family member row."""

    __tablename__ = "family_members"

    id = Column(Integer, primary_key=True, autoincrement=False)
    position = Column(Integer, nullable=False)  # roster order
    relationship = Column(String, nullable=False)
    is_primary = Column(Boolean, nullable=False, default=False)
    is_ancestor = Column(Boolean, nullable=False, default=False)
    is_deceased = Column(Boolean)  # NULL = unknown
    first_name = Column(String)
    birth_last_name = Column(String)
    birth_month = Column(Integer)
    birth_day = Column(Integer)
    birth_year = Column(Integer)
    birth_location = Column(String)
    birth_city = Column(String)
    birth_state = Column(String)

    # Relationships
    documents = orm_relationship(
        "DocumentRecord", back_populates="member", cascade="all"
    )

    def __repr__(self) -> str:
        return f"<MemberRecord(id={self.id}, relationship='{self.relationship}')>"


class DocumentRecord(Base):
    """Document row, keyed by owning member and document type."""

    __tablename__ = "documents"

    family_member_id = Column(
        Integer, ForeignKey("family_members.id", ondelete="CASCADE"), primary_key=True
    )
    document_type = Column(String, primary_key=True)
    position = Column(Integer, nullable=False)
    status = Column(String, nullable=False)
    image_url = Column(Text)
    notes = Column(Text)
    created_at = Column(String, nullable=False)
    updated_at = Column(String)

    # Relationships
    member = orm_relationship("MemberRecord", back_populates="documents")

    def __repr__(self) -> str:
        return (
            f"<DocumentRecord(member={self.family_member_id}, "
            f"type='{self.document_type}', status='{self.status}')>"
        )


class MetaRecord(Base):
    """Key/value settings of the stored roster."""

    __tablename__ = "roster_meta"

    key = Column(String, primary_key=True)
    value = Column(String, nullable=False)


def _columns(record: Any, names: list[str]) -> dict[str, Any]:
    return {name: getattr(record, name) for name in names}


MEMBER_FIELDS = list(FamilyMember.model_fields)
DOCUMENT_FIELDS = list(Document.model_fields)
PROFILE_FIELDS = list(UserProfile.model_fields)


class RosterDatabase:
    """Store and restore the working roster."""

    def __init__(self, db_path: Path | None = None):
        """Initialize the database.

        Args:
            db_path: Path to SQLite database file (default: settings.db_path)
        """
        self.db_path = db_path or settings.db_path
        self.engine = create_engine(f"sqlite:///{self.db_path}")
        Base.metadata.create_all(self.engine)
        self.Session = sessionmaker(bind=self.engine)

    def get_session(self):
        """Get a new database session."""
        return self.Session()

    def load(self) -> Roster:
        """Load the stored roster.

        Returns:
            The stored roster, or an empty roster if nothing was saved yet
        """
        session = self.get_session()
        try:
            profile = session.query(ProfileRecord).first()
            members = session.query(MemberRecord).order_by(MemberRecord.position).all()
            documents = session.query(DocumentRecord).order_by(DocumentRecord.position).all()
            meta = session.query(MetaRecord).filter(MetaRecord.key == LAST_MEMBER_ID_KEY).first()

            return Roster(
                user=(
                    UserProfile.model_validate(_columns(profile, PROFILE_FIELDS))
                    if profile
                    else None
                ),
                family_members=tuple(
                    FamilyMember.model_validate(_columns(record, MEMBER_FIELDS))
                    for record in members
                ),
                documents=tuple(
                    Document.model_validate(_columns(record, DOCUMENT_FIELDS))
                    for record in documents
                ),
                last_member_id=int(meta.value) if meta else 0,
            )
        finally:
            session.close()

    def save(self, roster: Roster) -> None:
        """Replace the stored roster with ``roster`` in one transaction.

        Args:
            roster: Roster to store
        """
        session = self.get_session()
        try:
            session.query(DocumentRecord).delete()
            session.query(MemberRecord).delete()
            session.query(ProfileRecord).delete()
            session.query(MetaRecord).delete()

            if roster.user:
                session.add(ProfileRecord(id=1, **roster.user.model_dump(mode="json")))
            for position, member in enumerate(roster.family_members):
                session.add(MemberRecord(position=position, **member.model_dump(mode="json")))
            # Members first so document foreign keys resolve
            session.flush()
            for position, doc in enumerate(roster.documents):
                session.add(
                    DocumentRecord(position=position, **doc.model_dump(mode="json", exclude={"id"}))
                )
            session.add(MetaRecord(key=LAST_MEMBER_ID_KEY, value=str(roster.last_member_id)))

            session.commit()
        except Exception:
            session.rollback()
            raise
        finally:
            session.close()

        logger.debug(
            "roster_saved",
            db_path=str(self.db_path),
            members=len(roster.family_members),
            documents=len(roster.documents),
        )

    def clear(self) -> None:
        """Remove all stored data."""
        self.save(Roster())

    def get_stats(self) -> dict[str, Any]:
        """Get database statistics.

        Returns:
            Dictionary with database stats
        """
        session = self.get_session()
        try:
            return {
                "total_family_members": session.query(MemberRecord).count(),
                "total_documents": session.query(DocumentRecord).count(),
                "completed_documents": session.query(DocumentRecord)
                .filter(DocumentRecord.status == "complete")
                .count(),
            }
        finally:
            session.close()

