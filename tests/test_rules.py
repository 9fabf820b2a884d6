from datetime import datetime, timezone

import pytest

from radici.rules import document_keys, generate_documents, required_document_types
from radici.schemas.roster import (
    DocumentKey,
    DocumentStatus,
    DocumentType,
    FamilyMember,
    Relationship,
)

NOW = datetime(2024, 5, 1, tzinfo=timezone.utc)


def make_member(relationship, member_id=7, **fields):
    return FamilyMember(id=member_id, relationship=relationship, **fields)


@pytest.mark.parametrize(
    "relationship, expected",
    [
        (Relationship.SELF, {DocumentType.BIRTH_CERTIFICATE, DocumentType.MARRIAGE_CERTIFICATE}),
        (Relationship.SPOUSE, {DocumentType.BIRTH_CERTIFICATE, DocumentType.MARRIAGE_CERTIFICATE}),
        (Relationship.PARENT, {DocumentType.BIRTH_CERTIFICATE, DocumentType.MARRIAGE_CERTIFICATE}),
        (Relationship.CHILD, {DocumentType.BIRTH_CERTIFICATE}),
        (Relationship.SIBLING, {DocumentType.BIRTH_CERTIFICATE}),
        (Relationship.COUSIN, {DocumentType.BIRTH_CERTIFICATE}),
        (
            Relationship.ITALIAN_ANCESTOR,
            {DocumentType.ITALIAN_BIRTH_CERTIFICATE, DocumentType.US_NATURALIZATION_FILE},
        ),
    ],
)
def test_required_document_sets(relationship, expected):
    assert set(required_document_types(make_member(relationship))) == expected


def test_required_document_order():
    assert required_document_types(make_member(Relationship.SELF)) == (
        DocumentType.BIRTH_CERTIFICATE,
        DocumentType.MARRIAGE_CERTIFICATE,
    )
    assert required_document_types(
        make_member(Relationship.ITALIAN_ANCESTOR, is_deceased=True)
    ) == (
        DocumentType.ITALIAN_BIRTH_CERTIFICATE,
        DocumentType.US_NATURALIZATION_FILE,
        DocumentType.DEATH_CERTIFICATE,
    )


def test_deceased_ancestor_needs_death_certificate():
    member = make_member(Relationship.ITALIAN_ANCESTOR, is_deceased=True)
    assert DocumentType.DEATH_CERTIFICATE in required_document_types(member)


@pytest.mark.parametrize("is_deceased", [False, None])
def test_living_or_unknown_ancestor_has_no_death_certificate(is_deceased):
    member = make_member(Relationship.ITALIAN_ANCESTOR, is_deceased=is_deceased)
    assert DocumentType.DEATH_CERTIFICATE not in required_document_types(member)


def test_ancestor_never_gets_birth_certificate():
    member = make_member(Relationship.ITALIAN_ANCESTOR, is_deceased=True)
    assert DocumentType.BIRTH_CERTIFICATE not in required_document_types(member)


def test_deceased_flag_ignored_for_other_relationships():
    member = make_member(Relationship.CHILD, is_deceased=True)
    assert required_document_types(member) == (DocumentType.BIRTH_CERTIFICATE,)


def test_identity_fields_do_not_change_requirements():
    bare = make_member(Relationship.SIBLING)
    filled = make_member(
        Relationship.SIBLING,
        first_name="Luca",
        birth_last_name="Bianchi",
        birth_month=3,
        birth_day=14,
        birth_year=1990,
        birth_city="Boston",
        birth_state="ma",
    )
    assert required_document_types(bare) == required_document_types(filled)


def test_generate_documents_is_deterministic():
    member = make_member(Relationship.SPOUSE, member_id=3)

    first = generate_documents(member, NOW)
    second = generate_documents(member, NOW)

    assert [doc.id for doc in first] == ["3-birth_certificate", "3-marriage_certificate"]
    assert [doc.id for doc in first] == [doc.id for doc in second]
    assert first == second


def test_generated_documents_start_empty():
    member = make_member(Relationship.CHILD, member_id=4)

    (doc,) = generate_documents(member, NOW)

    assert doc.family_member_id == 4
    assert doc.status is DocumentStatus.NOT_STARTED
    assert doc.image_url is None
    assert doc.notes == ""
    assert doc.created_at == NOW
    assert doc.updated_at is None


def test_document_keys():
    member = make_member(Relationship.PARENT, member_id=9)
    assert document_keys(member) == (
        DocumentKey(9, DocumentType.BIRTH_CERTIFICATE),
        DocumentKey(9, DocumentType.MARRIAGE_CERTIFICATE),
    )
