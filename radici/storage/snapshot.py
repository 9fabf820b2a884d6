"""JSON snapshots of a roster for backup and restore.

Version 2.0 is the current format. Version 1.0 snapshots, written by the
first browser release, may describe a member with a single ``name`` and keep
the ancestor's birthplace in ``birthState``; they are upgraded member by
member on import. Snapshots without a version are treated as 1.0.
"""

import json
from collections.abc import Mapping
from datetime import date, datetime, timezone
from pathlib import Path
from typing import Any

from pydantic import ValidationError

from radici.config import settings
from radici.exceptions import SnapshotFormatError
from radici.logging import get_logger
from radici.roster import describe_validation_error
from radici.schemas.roster import Relationship, Roster

logger = get_logger(__name__)

LEGACY_VERSION = "1.0"
REQUIRED_KEYS = ("user", "familyMembers", "documents")


def export_snapshot(roster: Roster, exported_at: datetime | None = None) -> dict[str, Any]:
    """Convert a roster to a JSON-ready dictionary.

    Args:
        roster: Roster to export
        exported_at: Export timestamp (default: now, UTC)

    Returns:
        Dictionary with user, familyMembers, documents, exportDate, version
        and lastMemberId keys
    """
    exported_at = exported_at or datetime.now(timezone.utc)
    return {
        "user": roster.user.model_dump(by_alias=True, mode="json") if roster.user else None,
        "familyMembers": [
            member.model_dump(by_alias=True, mode="json") for member in roster.family_members
        ],
        "documents": [doc.model_dump(by_alias=True, mode="json") for doc in roster.documents],
        "exportDate": exported_at.isoformat(),
        "version": settings.export_version,
        "lastMemberId": roster.last_member_id,
    }


def upgrade_v1_member(raw: Mapping[str, Any]) -> dict[str, Any]:
    """Convert a version 1.0 family member to the current shape.

    Args:
        raw: Member as found in a 1.0 snapshot

    Returns:
        Member dictionary using camelCase keys of the current schema
    """
    member = dict(raw)

    legacy_name = member.pop("name", None) or ""
    if legacy_name.strip() and not member.get("firstName") and not member.get("birthLastName"):
        # Last word is the birth last name
        first, _, last = legacy_name.strip().rpartition(" ")
        if not first:
            first, last = last, ""
        member["firstName"] = first
        member["birthLastName"] = last

    relationship = member.get("relationship")
    if relationship == Relationship.ITALIAN_ANCESTOR.value:
        legacy_place = member.pop("birthState", None) or ""
        if not member.get("birthLocation"):
            member["birthLocation"] = legacy_place

    member["isPrimary"] = relationship == Relationship.SELF.value
    member["isAncestor"] = relationship == Relationship.ITALIAN_ANCESTOR.value
    return member


def load_snapshot(data: Any) -> Roster:
    """Rebuild a roster from an exported snapshot.

    Args:
        data: Parsed snapshot

    Returns:
        The restored roster

    Raises:
        SnapshotFormatError: If keys are missing, the version is unknown, or
            the content does not match the schema
    """
    if not isinstance(data, Mapping) or any(key not in data for key in REQUIRED_KEYS):
        raise SnapshotFormatError("Invalid data file format")

    members = data["familyMembers"]
    if not isinstance(members, list) or not all(isinstance(m, Mapping) for m in members):
        raise SnapshotFormatError("familyMembers must be a list of objects")

    version = data.get("version") or LEGACY_VERSION
    if version == LEGACY_VERSION:
        members = [upgrade_v1_member(member) for member in members]
    elif version != settings.export_version:
        raise SnapshotFormatError(
            f"Unsupported snapshot version: {version}", context={"version": version}
        )

    try:
        roster = Roster.model_validate(
            {
                "user": data["user"],
                "familyMembers": members,
                "documents": data["documents"],
                "lastMemberId": data.get("lastMemberId") or 0,
            }
        )
    except ValidationError as e:
        raise SnapshotFormatError(describe_validation_error(e), cause=e) from e

    highest = max((member.id for member in roster.family_members), default=0)
    roster = roster.model_copy(update={"last_member_id": max(roster.last_member_id, highest)})

    logger.info(
        "snapshot_loaded",
        version=version,
        members=len(roster.family_members),
        documents=len(roster.documents),
    )
    return roster


def dumps(roster: Roster, exported_at: datetime | None = None) -> str:
    """Serialize a roster to snapshot JSON text."""
    return json.dumps(export_snapshot(roster, exported_at), indent=2, ensure_ascii=False)


def loads(text: str) -> Roster:
    """Parse snapshot JSON text into a roster."""
    try:
        data = json.loads(text)
    except json.JSONDecodeError as e:
        raise SnapshotFormatError("Invalid JSON format", cause=e) from e
    return load_snapshot(data)


def default_export_name(today: date | None = None) -> str:
    """File name for a new export, e.g. ``radici-data-2024-05-01.json``."""
    today = today or datetime.now(timezone.utc).date()
    return f"radici-data-{today.isoformat()}.json"


def write_snapshot(roster: Roster, path: Path) -> Path:
    """Write a roster snapshot to disk.

    Args:
        roster: Roster to export
        path: Output file path

    Returns:
        The path written
    """
    path.parent.mkdir(parents=True, exist_ok=True)
    with open(path, "w", encoding="utf-8") as f:
        f.write(dumps(roster))
    return path


def read_snapshot(path: Path) -> Roster:
    """Read a roster snapshot from disk."""
    with open(path, encoding="utf-8") as f:
        return loads(f.read())
