"""Display names and guidance for document types, relationships and statuses."""

from radici.schemas.roster import DocumentStatus, DocumentType, Relationship

DOCUMENT_DISPLAY_NAMES = {
    DocumentType.BIRTH_CERTIFICATE: "Birth Certificate",
    DocumentType.MARRIAGE_CERTIFICATE: "Marriage Certificate",
    DocumentType.ITALIAN_ANCESTOR_BIRTH: "Italian Ancestor Birth Certificate",
    DocumentType.NATURALIZATION_RECORDS: "Naturalization Records",
    DocumentType.ITALIAN_BIRTH_CERTIFICATE: "Italian Birth Certificate",
    DocumentType.US_NATURALIZATION_FILE: "US Naturalization File",
    DocumentType.DEATH_CERTIFICATE: "Death Certificate",
}

# Where each document is usually requested
DOCUMENT_HELP_TEXT = {
    DocumentType.BIRTH_CERTIFICATE: "Usually obtained from state vital records office",
    DocumentType.MARRIAGE_CERTIFICATE: "Usually obtained from county clerk or vital records",
    DocumentType.ITALIAN_ANCESTOR_BIRTH: "Request from Italian municipality (comune)",
    DocumentType.NATURALIZATION_RECORDS: "USCIS FOIA request or court records",
    DocumentType.ITALIAN_BIRTH_CERTIFICATE: (
        "Request from Italian municipality where ancestor was born"
    ),
    DocumentType.US_NATURALIZATION_FILE: "USCIS A-File or court naturalization records",
    DocumentType.DEATH_CERTIFICATE: "From state/county where ancestor died",
}

RELATIONSHIP_LABELS = {
    Relationship.ITALIAN_ANCESTOR: "Italian Ancestor Documents",
    Relationship.SELF: "Primary Applicant",
    Relationship.SPOUSE: "Spouse",
    Relationship.PARENT: "Parents",
    Relationship.CHILD: "Children",
    Relationship.SIBLING: "Siblings",
    Relationship.COUSIN: "Cousins",
}

STATUS_LABELS = {
    DocumentStatus.NOT_STARTED: "Not Started",
    DocumentStatus.IN_PROGRESS: "In Progress",
    DocumentStatus.COMPLETE: "Complete",
}


def relationship_title(relationship: Relationship) -> str:
    """Title-case a relationship tag, e.g. ``italian_ancestor`` -> ``Italian ancestor``."""
    return relationship.value.replace("_", " ").capitalize()
