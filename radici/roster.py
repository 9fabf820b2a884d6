"""Roster manager: the mutation entry points for family members and documents.

Every operation takes a roster snapshot and returns a new one; the input is
never modified. An operation either applies completely or raises a
``RadiciError`` with nothing applied.
"""

from collections.abc import Callable, Iterable, Mapping
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Any

from pydantic import ValidationError

from radici.config import settings
from radici.exceptions import (
    CannotRemoveAncestorError,
    CannotRemovePrimaryError,
    InvalidMemberDataError,
    InvalidRelationshipError,
    InvalidStatusError,
    InvalidValueError,
    NotFoundError,
    PayloadTooLargeError,
    StructuralViolationError,
    UnsupportedMediaTypeError,
)
from radici.logging import get_logger
from radici.rules import document_keys, generate_documents, new_document
from radici.schemas.roster import (
    Document,
    DocumentKey,
    DocumentStatus,
    FamilyMember,
    MemberFields,
    Relationship,
    Roster,
)

logger = get_logger(__name__)

# A member can never be moved into or out of these relationships
STRUCTURAL_RELATIONSHIPS = frozenset({Relationship.SELF, Relationship.ITALIAN_ANCESTOR})


@dataclass(frozen=True)
class MemberChange:
    """Result of adding or updating a family member.

    ``documents`` holds the documents created by the operation, if any.
    """

    roster: Roster
    member: FamilyMember
    documents: tuple[Document, ...] = ()


@dataclass(frozen=True)
class DocumentChange:
    """Result of a document operation."""

    roster: Roster
    document: Document


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


def next_member_id(roster: Roster) -> int:
    """Get the next member id: one past the highest current id, 1 when empty."""
    return max((member.id for member in roster.family_members), default=0) + 1


def high_water_member_id(roster: Roster) -> int:
    """Get the next member id without reusing ids of removed members.

    Uses the roster's ``last_member_id`` high-water mark, so a removed
    member's id is never handed out again.
    """
    return max(next_member_id(roster), roster.last_member_id + 1)


def parse_relationship(value: Any) -> Relationship:
    """Convert a relationship tag, raising InvalidRelationshipError if unknown."""
    if isinstance(value, Relationship):
        return value
    try:
        return Relationship(value)
    except ValueError as e:
        raise InvalidRelationshipError(
            f"Unknown relationship: {value!r}", context={"relationship": value}, cause=e
        ) from e


def parse_status(value: Any) -> DocumentStatus:
    """Convert a status tag, raising InvalidStatusError if unknown."""
    if isinstance(value, DocumentStatus):
        return value
    try:
        return DocumentStatus(value)
    except ValueError as e:
        raise InvalidStatusError(
            f"Unknown document status: {value!r}", context={"status": value}, cause=e
        ) from e


def parse_document_key(value: DocumentKey | str) -> DocumentKey:
    """Convert a document id to its key. Malformed ids cannot exist, so they are not found."""
    if isinstance(value, DocumentKey):
        return value
    if isinstance(value, str):
        try:
            return DocumentKey.parse(value)
        except ValueError as e:
            raise NotFoundError(
                f"Document not found: {value!r}", context={"document_id": value}, cause=e
            ) from e
    raise NotFoundError(f"Document not found: {value!r}", context={"document_id": repr(value)})


def normalize_media_type(mime_type: str | None) -> str:
    """Lower-case a MIME type and drop any parameters."""
    return (mime_type or "").split(";", 1)[0].strip().lower()


def describe_validation_error(error: ValidationError) -> str:
    parts = []
    for item in error.errors():
        location = ".".join(str(part) for part in item["loc"])
        parts.append(f"{location}: {item['msg']}" if location else item["msg"])
    return "; ".join(parts)


def _validate_fields(data: Mapping[str, Any]) -> dict[str, Any]:
    """Validate caller-supplied identity fields.

    Returns:
        Only the fields present in ``data``, keyed by their snake_case names
    """
    try:
        fields = MemberFields.model_validate(dict(data))
    except ValidationError as e:
        raise InvalidMemberDataError(
            describe_validation_error(e), context={"fields": sorted(data)}, cause=e
        ) from e
    return fields.model_dump(exclude_unset=True)


class RosterManager:
    """Apply checklist operations to roster snapshots.

    The clock and the member id allocator are collaborators supplied by the
    host; the defaults are UTC wall-clock time and ``next_member_id``.
    """

    def __init__(
        self,
        clock: Callable[[], datetime] | None = None,
        allocate_id: Callable[[Roster], int] | None = None,
        max_image_bytes: int | None = None,
        allowed_image_types: Iterable[str] | None = None,
    ):
        """Initialize the roster manager.

        Args:
            clock: Timestamp source for created_at/updated_at
            allocate_id: Returns the id for a new member given the current roster
            max_image_bytes: Upload size ceiling (default: settings.max_image_bytes)
            allowed_image_types: Accepted MIME types (default: settings.allowed_image_types)
        """
        self.clock = clock or utc_now
        self.allocate_id = allocate_id or next_member_id
        self.max_image_bytes = (
            settings.max_image_bytes if max_image_bytes is None else max_image_bytes
        )
        image_types = (
            settings.allowed_image_types if allowed_image_types is None else allowed_image_types
        )
        self.allowed_image_types = frozenset(normalize_media_type(t) for t in image_types)

    # Members

    def add_member(self, roster: Roster, member_data: Mapping[str, Any]) -> MemberChange:
        """Add a family member and create its required documents.

        Args:
            roster: Current roster
            member_data: ``relationship`` plus optional identity fields

        Returns:
            MemberChange with the new member and its documents

        Raises:
            InvalidRelationshipError: If the relationship tag is unknown
            InvalidMemberDataError: If an identity field is unknown or invalid
        """
        data = dict(member_data)
        relationship = parse_relationship(data.pop("relationship", None))
        fields = _validate_fields(data)

        member_id = self.allocate_id(roster)
        if roster.get_member(member_id) is not None:
            raise StructuralViolationError(
                f"Member id {member_id} is already in use", context={"member_id": member_id}
            )

        member = FamilyMember(
            id=member_id,
            relationship=relationship,
            is_primary=relationship is Relationship.SELF,
            is_ancestor=relationship is Relationship.ITALIAN_ANCESTOR,
            **fields,
        )
        documents = generate_documents(member, self.clock())

        updated_roster = roster.model_copy(
            update={
                "family_members": roster.family_members + (member,),
                "documents": roster.documents + documents,
                "last_member_id": max(roster.last_member_id, member_id),
            }
        )
        logger.info(
            "member_added",
            member_id=member_id,
            relationship=relationship.value,
            documents=[doc.id for doc in documents],
        )
        return MemberChange(roster=updated_roster, member=member, documents=documents)

    def update_member(
        self, roster: Roster, member_id: int, changes: Mapping[str, Any]
    ) -> MemberChange:
        """Apply a partial update to a family member.

        Setting ``is_deceased`` on the Italian ancestor regenerates all of the
        ancestor's documents: existing status, notes and images are discarded.
        Changing the relationship keeps the documents that are still required,
        creates the newly required ones and drops the rest. Any other change
        leaves documents untouched.

        Args:
            roster: Current roster
            member_id: Id of the member to update
            changes: Fields to change, snake_case or camelCase

        Returns:
            MemberChange with the updated member and any documents created

        Raises:
            NotFoundError: If no member has this id
            InvalidRelationshipError: If the new relationship is unknown or structural
            InvalidMemberDataError: If an identity field is unknown or invalid
        """
        member = self._require_member(roster, member_id)
        data = dict(changes)

        new_relationship = None
        if "relationship" in data:
            requested = parse_relationship(data.pop("relationship"))
            if requested is not member.relationship:
                if (
                    member.relationship in STRUCTURAL_RELATIONSHIPS
                    or requested in STRUCTURAL_RELATIONSHIPS
                ):
                    raise InvalidRelationshipError(
                        f"Cannot change relationship from {member.relationship.value} "
                        f"to {requested.value}",
                        context={"member_id": member_id, "relationship": requested.value},
                    )
                new_relationship = requested

        fields = _validate_fields(data)
        values = member.model_dump()
        values.update(fields)
        if new_relationship is not None:
            values["relationship"] = new_relationship
        try:
            updated_member = FamilyMember.model_validate(values)
        except ValidationError as e:
            raise InvalidMemberDataError(
                describe_validation_error(e), context={"member_id": member_id}, cause=e
            ) from e

        members = tuple(
            updated_member if existing.id == member_id else existing
            for existing in roster.family_members
        )

        if "is_deceased" in fields and updated_member.relationship is Relationship.ITALIAN_ANCESTOR:
            documents, created = self._regenerate_documents(roster, updated_member)
        elif new_relationship is not None:
            documents, created = self._reconcile_documents(roster, updated_member)
        else:
            documents, created = roster.documents, ()

        updated_roster = roster.model_copy(
            update={"family_members": members, "documents": documents}
        )
        changed = sorted(fields) + (["relationship"] if new_relationship is not None else [])
        logger.info("member_updated", member_id=member_id, fields=changed)
        return MemberChange(roster=updated_roster, member=updated_member, documents=created)

    def remove_member(self, roster: Roster, member_id: int) -> Roster:
        """Remove a family member together with all of its documents.

        Raises:
            NotFoundError: If no member has this id
            CannotRemovePrimaryError: If the member is the primary applicant
            CannotRemoveAncestorError: If the member is the Italian ancestor
        """
        member = self._require_member(roster, member_id)
        if member.is_primary:
            raise CannotRemovePrimaryError(
                "The primary applicant cannot be removed", context={"member_id": member_id}
            )
        if member.is_ancestor:
            raise CannotRemoveAncestorError(
                "The Italian ancestor cannot be removed", context={"member_id": member_id}
            )

        members = tuple(m for m in roster.family_members if m.id != member_id)
        documents = tuple(doc for doc in roster.documents if doc.family_member_id != member_id)
        highest = max((m.id for m in roster.family_members), default=0)

        logger.info(
            "member_removed",
            member_id=member_id,
            documents_removed=len(roster.documents) - len(documents),
        )
        return roster.model_copy(
            update={
                "family_members": members,
                "documents": documents,
                "last_member_id": max(roster.last_member_id, highest),
            }
        )

    # Documents

    def set_document_status(
        self,
        roster: Roster,
        document_id: DocumentKey | str,
        status: DocumentStatus | str,
        notes: str | None = None,
    ) -> DocumentChange:
        """Set a document's status and, optionally, its notes.

        Any status may follow any other. ``notes=None`` keeps the current notes.

        Raises:
            NotFoundError: If the document id is unknown
            InvalidStatusError: If the status is not a valid value
        """
        document = self._require_document(roster, document_id)
        new_status = parse_status(status)
        if notes is not None and not isinstance(notes, str):
            raise InvalidValueError("Notes must be text", context={"document_id": document.id})

        changes: dict[str, Any] = {"status": new_status, "updated_at": self.clock()}
        if notes is not None:
            changes["notes"] = notes
        updated = document.model_copy(update=changes)

        logger.info("document_status_set", document_id=updated.id, status=new_status.value)
        return self._replace_document(roster, updated)

    def attach_image(
        self,
        roster: Roster,
        document_id: DocumentKey | str,
        image_ref: str,
        size_bytes: int,
        mime_type: str,
    ) -> DocumentChange:
        """Attach an uploaded image to a document, replacing any previous one.

        A not-started document moves to in-progress; other statuses are kept.

        Args:
            roster: Current roster
            document_id: Document key or its string form
            image_ref: Opaque reference to the fully read image
            size_bytes: Image size in bytes
            mime_type: Image MIME type

        Raises:
            PayloadTooLargeError: If the image exceeds the size ceiling
            UnsupportedMediaTypeError: If the MIME type is not an accepted image type
            NotFoundError: If the document id is unknown
        """
        if size_bytes > self.max_image_bytes:
            raise PayloadTooLargeError(
                f"Image is {size_bytes} bytes; the limit is {self.max_image_bytes}",
                context={"size_bytes": size_bytes, "max_bytes": self.max_image_bytes},
            )
        if size_bytes < 0:
            raise InvalidValueError("Image size cannot be negative", context={"size_bytes": size_bytes})

        media_type = normalize_media_type(mime_type)
        if media_type not in self.allowed_image_types:
            raise UnsupportedMediaTypeError(
                f"Unsupported image type: {mime_type!r}", context={"mime_type": mime_type}
            )
        if not image_ref:
            raise InvalidValueError("No image selected", context={"document_id": str(document_id)})

        document = self._require_document(roster, document_id)
        status = document.status
        if status is DocumentStatus.NOT_STARTED:
            status = DocumentStatus.IN_PROGRESS
        updated = document.model_copy(
            update={"image_url": image_ref, "status": status, "updated_at": self.clock()}
        )

        logger.info(
            "image_attached",
            document_id=updated.id,
            size_bytes=size_bytes,
            mime_type=media_type,
            status=status.value,
        )
        return self._replace_document(roster, updated)

    def remove_image(self, roster: Roster, document_id: DocumentKey | str) -> DocumentChange:
        """Clear a document's image. The status is left as it is.

        Raises:
            NotFoundError: If the document id is unknown
        """
        document = self._require_document(roster, document_id)
        updated = document.model_copy(update={"image_url": None, "updated_at": self.clock()})

        logger.info("image_removed", document_id=updated.id)
        return self._replace_document(roster, updated)

    # Helpers

    def _require_member(self, roster: Roster, member_id: int) -> FamilyMember:
        member = roster.get_member(member_id)
        if member is None:
            raise NotFoundError(
                f"Family member not found: {member_id}", context={"member_id": member_id}
            )
        return member

    def _require_document(self, roster: Roster, document_id: DocumentKey | str) -> Document:
        key = parse_document_key(document_id)
        document = roster.get_document(key)
        if document is None:
            raise NotFoundError(
                f"Document not found: {key}", context={"document_id": str(key)}
            )
        return document

    def _replace_document(self, roster: Roster, updated: Document) -> DocumentChange:
        documents = tuple(
            updated if doc.key == updated.key else doc for doc in roster.documents
        )
        return DocumentChange(
            roster=roster.model_copy(update={"documents": documents}), document=updated
        )

    def _regenerate_documents(
        self, roster: Roster, member: FamilyMember
    ) -> tuple[tuple[Document, ...], tuple[Document, ...]]:
        """Discard a member's documents and create them again from the rules."""
        kept = tuple(doc for doc in roster.documents if doc.family_member_id != member.id)
        created = generate_documents(member, self.clock())

        logger.info(
            "documents_regenerated",
            member_id=member.id,
            discarded=len(roster.documents) - len(kept),
            documents=[doc.id for doc in created],
        )
        return kept + created, created

    def _reconcile_documents(
        self, roster: Roster, member: FamilyMember
    ) -> tuple[tuple[Document, ...], tuple[Document, ...]]:
        """Bring a member's documents in line with the rules, keeping survivors."""
        required = document_keys(member)
        owned = {doc.key for doc in roster.documents_for(member.id)}
        now = self.clock()

        created = tuple(
            new_document(key.member_id, key.document_type, now)
            for key in required
            if key not in owned
        )
        kept = tuple(
            doc
            for doc in roster.documents
            if doc.family_member_id != member.id or doc.key in required
        )

        logger.info(
            "documents_reconciled",
            member_id=member.id,
            added=[doc.id for doc in created],
            removed=len(roster.documents) - len(kept),
        )
        return kept + created, created
