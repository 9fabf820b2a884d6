"""Requirement rules: which documents each family member must provide.

Only the relationship, and for the Italian ancestor the deceased flag,
influence the result. Every other member attribute is ignored.
"""

from datetime import datetime

from radici.schemas.roster import (
    Document,
    DocumentKey,
    DocumentStatus,
    DocumentType,
    FamilyMember,
    Relationship,
)

# Members who must also prove their marriage
MARRIED_RELATIONSHIPS = frozenset({Relationship.SELF, Relationship.SPOUSE})


def required_document_types(member: FamilyMember) -> tuple[DocumentType, ...]:
    """Get the ordered document types required for a family member.

    The order is stable: it drives document id generation and list rendering.

    Args:
        member: Family member to evaluate

    Returns:
        Tuple of required document types
    """
    if member.relationship is Relationship.ITALIAN_ANCESTOR:
        ancestor_docs = [
            DocumentType.ITALIAN_BIRTH_CERTIFICATE,
            DocumentType.US_NATURALIZATION_FILE,
        ]
        # Unknown (None) and living (False) both skip the death certificate
        if member.is_deceased is True:
            ancestor_docs.append(DocumentType.DEATH_CERTIFICATE)
        return tuple(ancestor_docs)

    if member.relationship is Relationship.PARENT:
        return (DocumentType.BIRTH_CERTIFICATE, DocumentType.MARRIAGE_CERTIFICATE)

    base_docs = [DocumentType.BIRTH_CERTIFICATE]
    if member.relationship in MARRIED_RELATIONSHIPS:
        base_docs.append(DocumentType.MARRIAGE_CERTIFICATE)
    return tuple(base_docs)


def new_document(member_id: int, document_type: DocumentType, now: datetime) -> Document:
    """Create a fresh, not-started document."""
    return Document(
        family_member_id=member_id,
        document_type=document_type,
        status=DocumentStatus.NOT_STARTED,
        image_url=None,
        notes="",
        created_at=now,
    )


def generate_documents(member: FamilyMember, now: datetime) -> tuple[Document, ...]:
    """Create the required documents for a family member.

    Document ids are derived from (member id, document type), so generating
    twice for the same member yields the same ids.

    Args:
        member: Family member to generate documents for
        now: Creation timestamp

    Returns:
        Tuple of new documents in rule order
    """
    return tuple(
        new_document(member.id, doc_type, now) for doc_type in required_document_types(member)
    )


def document_keys(member: FamilyMember) -> tuple[DocumentKey, ...]:
    """Get the keys of the documents a member should own."""
    return tuple(DocumentKey(member.id, doc_type) for doc_type in required_document_types(member))
