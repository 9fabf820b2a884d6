"""Pydantic schemas for the family roster and its document checklist.

Models are frozen: roster operations build new instances instead of mutating
existing ones. Python code uses snake_case field names; exported JSON uses the
camelCase aliases.
"""

from dataclasses import dataclass
from datetime import datetime
from enum import Enum
from typing import Any, Literal

from pydantic import BaseModel, ConfigDict, Field, computed_field, field_validator
from pydantic.alias_generators import to_camel


class Relationship(str, Enum):
    """How a family member relates to the applicant."""

    SELF = "self"
    ITALIAN_ANCESTOR = "italian_ancestor"
    SPOUSE = "spouse"
    CHILD = "child"
    SIBLING = "sibling"
    COUSIN = "cousin"
    PARENT = "parent"


class DocumentType(str, Enum):
    """Kinds of proof a member may have to provide."""

    BIRTH_CERTIFICATE = "birth_certificate"
    MARRIAGE_CERTIFICATE = "marriage_certificate"
    ITALIAN_ANCESTOR_BIRTH = "italian_ancestor_birth"
    NATURALIZATION_RECORDS = "naturalization_records"
    ITALIAN_BIRTH_CERTIFICATE = "italian_birth_certificate"
    US_NATURALIZATION_FILE = "us_naturalization_file"
    DEATH_CERTIFICATE = "death_certificate"


class DocumentStatus(str, Enum):
    """Completion state of a document. Any state may follow any other."""

    NOT_STARTED = "not_started"
    IN_PROGRESS = "in_progress"
    COMPLETE = "complete"


AncestorType = Literal["parent", "grandparent", "great-grandparent"]


@dataclass(frozen=True, order=True)
class DocumentKey:
    """Identity of a document: the owning member plus the document type.

    The string form ``"{member_id}-{document_type}"`` is the document ``id``
    seen in snapshots. Member ids are positive integers and document types
    never contain ``-``, so the first hyphen always separates the two parts.
    """

    member_id: int
    document_type: DocumentType

    def __str__(self) -> str:
        return f"{self.member_id}-{self.document_type.value}"

    @classmethod
    def parse(cls, value: str) -> "DocumentKey":
        """Parse the string form of a document id.

        Raises:
            ValueError: If the id is malformed or names an unknown type
        """
        member_part, separator, type_part = value.partition("-")
        if not separator or not (member_part.isascii() and member_part.isdigit()):
            raise ValueError(f"Malformed document id: {value!r}")
        if int(member_part) < 1:
            raise ValueError(f"Malformed document id: {value!r}")
        try:
            document_type = DocumentType(type_part)
        except ValueError as e:
            raise ValueError(f"Unknown document type in id: {value!r}") from e
        return cls(member_id=int(member_part), document_type=document_type)


class RosterModel(BaseModel):
    """Base for roster models: frozen, camelCase aliases, snake_case accepted."""

    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        frozen=True,
    )


class MemberIdentity(RosterModel):
    """Identity fields a family member can carry.

    Stored members keep whatever partial values were saved, such as a
    two-digit year or a one-letter state. Bounds are enforced on
    ``MemberFields`` when values come from the user.
    """

    is_deceased: bool | None = None
    first_name: str = ""
    birth_last_name: str = ""
    birth_month: int | None = None
    birth_day: int | None = None
    birth_year: int | None = None
    birth_location: str = ""  # free text, Italian ancestor only
    birth_city: str = ""
    birth_state: str = ""

    @field_validator(
        "first_name", "birth_last_name", "birth_location", "birth_city", mode="before"
    )
    @classmethod
    def strip_text(cls, value: Any) -> Any:
        if value is None:
            return ""
        return value.strip() if isinstance(value, str) else value

    @field_validator("birth_month", "birth_day", "birth_year", mode="before")
    @classmethod
    def blank_date_part(cls, value: Any) -> Any:
        if isinstance(value, str):
            value = value.strip()
            if not value:
                return None
            if value.isascii() and value.isdigit():
                return int(value)
        return value

    @field_validator("birth_state", mode="before")
    @classmethod
    def normalize_state(cls, value: Any) -> Any:
        if value is None:
            return ""
        return value.strip().upper() if isinstance(value, str) else value


class MemberFields(MemberIdentity):
    """Caller-supplied identity fields for adding or updating a member."""

    model_config = ConfigDict(extra="forbid")

    birth_month: int | None = Field(default=None, ge=1, le=12)
    birth_day: int | None = Field(default=None, ge=1, le=31)
    birth_year: int | None = Field(default=None, ge=1000, le=9999)
    birth_state: str = ""  # two-letter code

    @field_validator("birth_state")
    @classmethod
    def check_state(cls, value: str) -> str:
        if value and (len(value) != 2 or not value.isalpha()):
            raise ValueError("birth state must be a two-letter code")
        return value


class FamilyMember(MemberIdentity):
    """A person in the applicant's genealogical case."""

    id: int = Field(ge=1)
    relationship: Relationship
    is_primary: bool = False
    is_ancestor: bool = False

    @property
    def full_name(self) -> str:
        return f"{self.first_name} {self.birth_last_name}".strip()

    @property
    def missing_fields(self) -> list[str]:
        """Labels of the identity fields still required for this member."""
        missing = []
        if not self.first_name:
            missing.append("first name")
        if not self.birth_last_name:
            missing.append("birth last name")
        if self.birth_month is None:
            missing.append("birth month")
        if self.birth_day is None:
            missing.append("birth day")
        if self.birth_year is None:
            missing.append("birth year")

        if self.relationship is Relationship.ITALIAN_ANCESTOR:
            if not self.birth_location:
                missing.append("birth location")
            if self.is_deceased is None:
                missing.append("living status")
        else:
            if not self.birth_city:
                missing.append("birth city")
            if not self.birth_state:
                missing.append("birth state")
        return missing

    @property
    def is_complete(self) -> bool:
        return not self.missing_fields

    def __repr__(self) -> str:
        return f"<FamilyMember(id={self.id}, relationship='{self.relationship.value}')>"


class Document(RosterModel):
    """A required proof owned by exactly one family member."""

    family_member_id: int = Field(ge=1)
    document_type: DocumentType
    status: DocumentStatus = DocumentStatus.NOT_STARTED
    image_url: str | None = None
    notes: str = ""
    created_at: datetime
    updated_at: datetime | None = None

    @field_validator("notes", mode="before")
    @classmethod
    def none_notes(cls, value: Any) -> Any:
        return "" if value is None else value

    @computed_field  # type: ignore[prop-decorator]
    @property
    def id(self) -> str:
        return str(self.key)

    @property
    def key(self) -> DocumentKey:
        return DocumentKey(self.family_member_id, self.document_type)

    def __repr__(self) -> str:
        return f"<Document(id='{self.id}', status='{self.status.value}')>"


class UserProfile(RosterModel):
    """Answers given during onboarding."""

    first_name: str
    birth_last_name: str
    ancestor_first_name: str = ""
    ancestor_birth_last_name: str = ""
    ancestor_type: AncestorType = "grandparent"
    created_at: datetime | None = None


class Roster(RosterModel):
    """Family members and their documents, kept consistent as one unit."""

    user: UserProfile | None = None
    family_members: tuple[FamilyMember, ...] = ()
    documents: tuple[Document, ...] = ()
    last_member_id: int = Field(default=0, ge=0)  # highest id ever assigned

    def get_member(self, member_id: int) -> FamilyMember | None:
        for member in self.family_members:
            if member.id == member_id:
                return member
        return None

    def documents_for(self, member_id: int) -> tuple[Document, ...]:
        return tuple(doc for doc in self.documents if doc.family_member_id == member_id)

    def get_document(self, key: DocumentKey) -> Document | None:
        for doc in self.documents:
            if doc.key == key:
                return doc
        return None
