"""Onboarding: build the initial roster from the applicant's first answers.

The applicant is always member 1 and the Italian ancestor member 2; the
optional relatives follow in a fixed order.
"""

from collections.abc import Mapping
from typing import Any

from pydantic import BaseModel, Field, ValidationError, field_validator

from radici.exceptions import InvalidMemberDataError
from radici.logging import get_logger
from radici.roster import RosterManager, describe_validation_error
from radici.schemas.roster import AncestorType, Relationship, Roster, UserProfile

logger = get_logger(__name__)

# Relatives can be added in groups of 1 to 10
MIN_GROUP_SIZE = 1
MAX_GROUP_SIZE = 10


class OnboardingForm(BaseModel):
    """Answers collected by the onboarding flow."""

    first_name: str = Field(min_length=1, description="Applicant first & middle names")
    birth_last_name: str = Field(min_length=1, description="Applicant last name at birth")
    ancestor_first_name: str = Field(min_length=1, description="Ancestor first & middle names")
    ancestor_birth_last_name: str = Field(min_length=1, description="Ancestor last name at birth")
    ancestor_type: AncestorType = "grandparent"
    include_spouse: bool = False
    include_lineage_parent: bool = Field(
        default=False,
        description="Add the applicant's parent in the line when the ancestor is further back",
    )
    children: int = 0
    siblings: int = 0
    cousins: int = 0

    @field_validator(
        "first_name",
        "birth_last_name",
        "ancestor_first_name",
        "ancestor_birth_last_name",
        mode="before",
    )
    @classmethod
    def strip_name(cls, value: Any) -> Any:
        return value.strip() if isinstance(value, str) else value

    @field_validator("children", "siblings", "cousins", mode="before")
    @classmethod
    def clamp_group_size(cls, value: Any) -> Any:
        """0 or None leaves the group out; anything else is clamped to 1-10."""
        if value is None:
            return 0
        if isinstance(value, str):
            text = value.strip()
            if not text:
                return 0
            try:
                value = int(text)
            except ValueError:
                return value
        if isinstance(value, int) and not isinstance(value, bool):
            if value <= 0:
                return 0
            return max(MIN_GROUP_SIZE, min(MAX_GROUP_SIZE, value))
        return value


def start_roster(
    form: OnboardingForm | Mapping[str, Any], manager: RosterManager | None = None
) -> Roster:
    """Create the roster for a new application.

    Args:
        form: Onboarding answers
        manager: Roster manager to apply the additions (default: a new one)

    Returns:
        Roster with the applicant, the ancestor, the selected relatives and
        all of their required documents

    Raises:
        InvalidMemberDataError: If a required answer is missing or invalid
    """
    if not isinstance(form, OnboardingForm):
        try:
            form = OnboardingForm.model_validate(dict(form))
        except ValidationError as e:
            raise InvalidMemberDataError(describe_validation_error(e), cause=e) from e

    manager = manager or RosterManager()
    profile = UserProfile(
        first_name=form.first_name,
        birth_last_name=form.birth_last_name,
        ancestor_first_name=form.ancestor_first_name,
        ancestor_birth_last_name=form.ancestor_birth_last_name,
        ancestor_type=form.ancestor_type,
        created_at=manager.clock(),
    )

    additions: list[dict[str, Any]] = [
        {
            "relationship": Relationship.SELF,
            "first_name": form.first_name,
            "birth_last_name": form.birth_last_name,
        },
        {
            "relationship": Relationship.ITALIAN_ANCESTOR,
            "first_name": form.ancestor_first_name,
            "birth_last_name": form.ancestor_birth_last_name,
            "birth_location": "Italy",
            "is_deceased": None,  # asked later
        },
    ]
    if form.include_spouse:
        additions.append({"relationship": Relationship.SPOUSE})
    # A parent ancestor is already the parent in the line
    if form.include_lineage_parent and form.ancestor_type != "parent":
        additions.append({"relationship": Relationship.PARENT})
    for relationship, count in (
        (Relationship.CHILD, form.children),
        (Relationship.SIBLING, form.siblings),
        (Relationship.COUSIN, form.cousins),
    ):
        additions.extend({"relationship": relationship} for _ in range(count))

    roster = Roster(user=profile)
    for member_data in additions:
        roster = manager.add_member(roster, member_data).roster

    logger.info(
        "onboarding_complete",
        members=len(roster.family_members),
        documents=len(roster.documents),
    )
    return roster
