import json
from datetime import date, datetime, timezone

import pytest

from radici.exceptions import SnapshotFormatError
from radici.schemas.roster import DocumentStatus, Relationship
from radici.storage.snapshot import (
    default_export_name,
    dumps,
    export_snapshot,
    load_snapshot,
    loads,
    read_snapshot,
    upgrade_v1_member,
    write_snapshot,
)

EXPORTED_AT = datetime(2024, 6, 1, 9, 30, tzinfo=timezone.utc)

LEGACY_SNAPSHOT = {
    "user": {"firstName": "Maria", "birthLastName": "Rossi", "ancestorType": "grandparent"},
    "familyMembers": [
        {"id": 1, "relationship": "self", "name": "Maria Grazia Rossi", "isPrimary": True},
        {
            "id": 2,
            "relationship": "italian_ancestor",
            "name": "Giuseppe Rossi",
            "birthState": "Lucca",
            "birthMonth": "",
            "isDeceased": True,
        },
        {"id": 4, "relationship": "child", "name": "", "birthState": "ma"},
    ],
    "documents": [
        {
            "id": "1-birth_certificate",
            "familyMemberId": 1,
            "documentType": "birth_certificate",
            "status": "complete",
            "imageUrl": "data:image/png;base64,AAAA",
            "notes": "Certified",
            "createdAt": "2024-01-10T10:00:00.000Z",
            "updatedAt": "2024-01-12T08:00:00.000Z",
        },
        {
            "id": "2-death_certificate",
            "familyMemberId": 2,
            "documentType": "death_certificate",
            "status": "not_started",
            "imageUrl": None,
            "notes": "",
            "createdAt": "2024-01-10T10:00:00.000Z",
        },
    ],
    "exportDate": "2024-02-01T00:00:00.000Z",
    "version": "1.0",
}


def test_export_shape(family_roster):
    data = export_snapshot(family_roster, exported_at=EXPORTED_AT)

    assert set(data) == {
        "user",
        "familyMembers",
        "documents",
        "exportDate",
        "version",
        "lastMemberId",
    }
    assert data["version"] == "2.0"
    assert data["exportDate"] == "2024-06-01T09:30:00+00:00"
    assert data["lastMemberId"] == 5
    assert data["user"]["ancestorFirstName"] == "Giuseppe"
    assert data["familyMembers"][0]["isPrimary"] is True
    assert data["familyMembers"][1]["birthLocation"] == "Italy"
    assert data["documents"][0]["id"] == "1-birth_certificate"


def test_round_trip(manager, family_roster):
    roster = manager.set_document_status(
        family_roster, "2-us_naturalization_file", "in_progress", "FOIA request sent"
    ).roster
    roster = manager.attach_image(
        roster, "1-birth_certificate", "file:///scans/maria.jpg", 4096, "image/jpeg"
    ).roster
    roster = manager.remove_member(roster, 5)

    restored = loads(dumps(roster, exported_at=EXPORTED_AT))

    assert restored == roster
    assert restored.last_member_id == 5


def test_dumps_is_indented_json(base_roster):
    text = dumps(base_roster, exported_at=EXPORTED_AT)

    assert text.startswith('{\n  "user"')
    assert json.loads(text)["familyMembers"][0]["firstName"] == "Maria"


def test_legacy_snapshot_is_upgraded():
    roster = load_snapshot(LEGACY_SNAPSHOT)

    applicant, ancestor, child = roster.family_members
    assert (applicant.first_name, applicant.birth_last_name) == ("Maria Grazia", "Rossi")
    assert applicant.is_primary and not applicant.is_ancestor
    assert ancestor.is_ancestor
    assert ancestor.birth_location == "Lucca"
    assert ancestor.birth_state == ""
    assert ancestor.birth_month is None
    assert ancestor.is_deceased is True
    assert child.full_name == ""
    assert child.birth_state == "MA"

    doc = roster.documents[0]
    assert doc.status is DocumentStatus.COMPLETE
    assert doc.image_url == "data:image/png;base64,AAAA"
    assert doc.updated_at == datetime(2024, 1, 12, 8, 0, tzinfo=timezone.utc)
    assert roster.last_member_id == 4


def test_missing_version_is_treated_as_legacy():
    data = {key: value for key, value in LEGACY_SNAPSHOT.items() if key != "version"}

    roster = load_snapshot(data)

    assert roster.family_members[0].first_name == "Maria Grazia"


def test_legacy_partial_fields_are_kept(manager):
    child = {
        "id": 4,
        "relationship": "child",
        "name": "Luca Rossi",
        "birthYear": "19",
        "birthMonth": "00",
        "birthDay": "",
        "birthState": "N",
    }
    data = {**LEGACY_SNAPSHOT, "familyMembers": [*LEGACY_SNAPSHOT["familyMembers"][:2], child]}

    roster = load_snapshot(data)

    member = roster.get_member(4)
    assert (member.birth_year, member.birth_month, member.birth_day) == (19, 0, None)
    assert member.birth_state == "N"

    # unrelated edits still work on a member with partial values
    change = manager.update_member(roster, 4, {"birth_city": "Boston"})
    assert change.member.birth_city == "Boston"
    assert change.member.birth_year == 19


def test_upgrade_v1_member_single_word_name():
    member = upgrade_v1_member({"id": 3, "relationship": "spouse", "name": "Cher"})

    assert member["firstName"] == "Cher"
    assert member["birthLastName"] == ""
    assert "name" not in member


def test_upgrade_v1_member_prefers_split_names():
    member = upgrade_v1_member(
        {"id": 3, "relationship": "spouse", "name": "Ann Smith", "firstName": "Anne"}
    )

    assert member["firstName"] == "Anne"
    assert "birthLastName" not in member


def test_upgrade_v1_member_rederives_flags():
    member = upgrade_v1_member({"id": 5, "relationship": "cousin", "isPrimary": True})

    assert member["isPrimary"] is False
    assert member["isAncestor"] is False


@pytest.mark.parametrize("missing", ["user", "familyMembers", "documents"])
def test_missing_top_level_key(missing):
    data = {key: value for key, value in LEGACY_SNAPSHOT.items() if key != missing}

    with pytest.raises(SnapshotFormatError, match="Invalid data file format"):
        load_snapshot(data)


def test_not_an_object():
    with pytest.raises(SnapshotFormatError):
        load_snapshot([1, 2, 3])


def test_members_must_be_a_list():
    with pytest.raises(SnapshotFormatError):
        load_snapshot({**LEGACY_SNAPSHOT, "familyMembers": {"1": {}}})


def test_unknown_version():
    with pytest.raises(SnapshotFormatError, match="Unsupported snapshot version"):
        load_snapshot({**LEGACY_SNAPSHOT, "version": "3.0"})


def test_schema_errors_are_reported():
    data = {
        **LEGACY_SNAPSHOT,
        "version": "2.0",
        "familyMembers": [{"id": 1, "relationship": "grandchild"}],
    }

    with pytest.raises(SnapshotFormatError) as excinfo:
        load_snapshot(data)

    assert "relationship" in excinfo.value.message


def test_invalid_json():
    with pytest.raises(SnapshotFormatError, match="Invalid JSON format"):
        loads("{not json")


def test_default_export_name():
    assert default_export_name(date(2024, 5, 1)) == "radici-data-2024-05-01.json"


def test_write_and_read_file(tmp_path, family_roster):
    path = write_snapshot(family_roster, tmp_path / "backups" / "radici.json")

    assert path.exists()
    assert read_snapshot(path) == family_roster
    assert Relationship.SPOUSE in {m.relationship for m in read_snapshot(path).family_members}
