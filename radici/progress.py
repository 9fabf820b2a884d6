"""Progress summaries and member grouping for display."""

from collections.abc import Iterable, Sequence
from dataclasses import dataclass

from radici.catalog import relationship_title
from radici.schemas.roster import Document, DocumentStatus, FamilyMember, Relationship

# Order in which relationship groups are listed
GROUP_ORDER = (
    Relationship.ITALIAN_ANCESTOR,
    Relationship.SELF,
    Relationship.SPOUSE,
    Relationship.PARENT,
    Relationship.CHILD,
    Relationship.SIBLING,
    Relationship.COUSIN,
)


@dataclass(frozen=True)
class ProgressStats:
    """Document counts by status."""

    total: int
    completed: int
    in_progress: int
    not_started: int

    @property
    def percent(self) -> int:
        """Share of complete documents, rounded half up; 0 when there are none."""
        if self.total == 0:
            return 0
        return (200 * self.completed + self.total) // (2 * self.total)


def progress_stats(documents: Iterable[Document]) -> ProgressStats:
    counts = {status: 0 for status in DocumentStatus}
    for doc in documents:
        counts[doc.status] += 1
    return ProgressStats(
        total=sum(counts.values()),
        completed=counts[DocumentStatus.COMPLETE],
        in_progress=counts[DocumentStatus.IN_PROGRESS],
        not_started=counts[DocumentStatus.NOT_STARTED],
    )


def person_progress(member_id: int, documents: Iterable[Document]) -> tuple[int, int]:
    """Get (completed, total) document counts for one member."""
    owned = [doc for doc in documents if doc.family_member_id == member_id]
    completed = sum(1 for doc in owned if doc.status is DocumentStatus.COMPLETE)
    return completed, len(owned)


def group_members_by_relationship(
    members: Iterable[FamilyMember],
) -> dict[Relationship, list[FamilyMember]]:
    """Group members by relationship, in display order, keeping roster order within a group."""
    groups: dict[Relationship, list[FamilyMember]] = {rel: [] for rel in GROUP_ORDER}
    for member in members:
        groups[member.relationship].append(member)
    return groups


def display_name(member: FamilyMember, members: Sequence[FamilyMember]) -> str:
    """Get a name to show for a member.

    Members without a name are shown by relationship, numbered when several
    members share it (``Child #2``).
    """
    if member.full_name:
        return member.full_name

    title = relationship_title(member.relationship)
    same_group = [m for m in members if m.relationship is member.relationship]
    index = next((i for i, m in enumerate(same_group, 1) if m.id == member.id), None)
    if len(same_group) > 1 and index is not None:
        return f"{title} #{index}"
    return title


def roster_is_complete(members: Iterable[FamilyMember]) -> bool:
    """Check whether basic information is filled in for every member."""
    return all(member.is_complete for member in members)
