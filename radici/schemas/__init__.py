"""Pydantic schemas for the family roster."""

from radici.schemas.roster import (
    AncestorType,
    Document,
    DocumentKey,
    DocumentStatus,
    DocumentType,
    FamilyMember,
    MemberFields,
    Relationship,
    Roster,
    UserProfile,
)

__all__ = [
    "AncestorType",
    "Document",
    "DocumentKey",
    "DocumentStatus",
    "DocumentType",
    "FamilyMember",
    "MemberFields",
    "Relationship",
    "Roster",
    "UserProfile",
]
