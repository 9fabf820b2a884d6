import json

import pytest
from typer.testing import CliRunner

from radici import __version__
from radici.cli import main as cli_main
from radici.cli.main import app
from radici.schemas.roster import DocumentStatus
from radici.storage.sqlite import RosterDatabase

runner = CliRunner()

INIT_ARGS = [
    "init",
    "--first-name",
    "Maria",
    "--last-name",
    "Rossi",
    "--ancestor-first-name",
    "Giuseppe",
    "--ancestor-last-name",
    "Rossi",
    "--spouse",
    "--children",
    "1",
]


@pytest.fixture(autouse=True)
def wide_console(monkeypatch):
    monkeypatch.setattr(cli_main.console, "width", 200)


@pytest.fixture
def db_path(tmp_path):
    return tmp_path / "radici.db"


@pytest.fixture
def initialized(db_path):
    result = runner.invoke(app, [*INIT_ARGS, "--db", str(db_path)])
    assert result.exit_code == 0, result.output
    return db_path


def invoke(db_path, *args, input=None):
    return runner.invoke(app, [*args, "--db", str(db_path)], input=input)


def load(db_path):
    return RosterDatabase(db_path=db_path).load()


def test_init_creates_roster(initialized):
    roster = load(initialized)

    assert [m.id for m in roster.family_members] == [1, 2, 3, 4]
    assert len(roster.documents) == 7
    assert roster.user.first_name == "Maria"


def test_init_asks_before_replacing(initialized):
    result = invoke(initialized, *INIT_ARGS[:9], input="n\n")

    assert result.exit_code == 0
    assert "Cancelled" in result.output
    assert len(load(initialized).family_members) == 4


def test_init_rejects_unknown_ancestor_type(db_path):
    result = invoke(db_path, *INIT_ARGS, "--ancestor-type", "cousin")

    assert result.exit_code == 1
    assert "not valid" in result.output


def test_commands_need_a_roster(db_path):
    result = invoke(db_path, "members")

    assert result.exit_code == 1
    assert "radici init" in result.output


def test_members(initialized):
    result = invoke(initialized, "members")

    assert result.exit_code == 0
    assert "Maria Rossi" in result.output
    assert "Giuseppe Rossi" in result.output
    assert "Some basic information is still missing" in result.output


def test_add_member(initialized):
    result = invoke(initialized, "add-member", "sibling", "--first-name", "Luca", "--birth-state", "nj")

    assert result.exit_code == 0, result.output
    member = load(initialized).get_member(5)
    assert member.first_name == "Luca"
    assert member.birth_state == "NJ"


@pytest.mark.parametrize("relationship", ["self", "italian_ancestor", "spouse", "uncle"])
def test_add_member_refuses_relationship(initialized, relationship):
    result = invoke(initialized, "add-member", relationship)

    assert result.exit_code == 1
    assert len(load(initialized).family_members) == 4


def test_add_member_invalid_field(initialized):
    result = invoke(initialized, "add-member", "child", "--birth-month", "13")

    assert result.exit_code == 1
    assert "Some family member details are not valid" in result.output


def test_removed_ids_are_not_reused(initialized):
    assert invoke(initialized, "remove-member", "4", "--yes").exit_code == 0
    assert invoke(initialized, "add-member", "cousin").exit_code == 0

    assert [m.id for m in load(initialized).family_members] == [1, 2, 3, 5]


def test_update_member_deceased(initialized):
    result = invoke(initialized, "update-member", "2", "--deceased", "--birth-location", "Lucca")

    assert result.exit_code == 0, result.output
    roster = load(initialized)
    assert roster.get_member(2).is_deceased is True
    assert "2-death_certificate" in [doc.id for doc in roster.documents_for(2)]


def test_update_member_confirms_before_discarding_progress(initialized):
    invoke(initialized, "status", "2-italian_birth_certificate", "complete")

    result = invoke(initialized, "update-member", "2", "--deceased", input="n\n")

    assert result.exit_code == 0
    assert "Cancelled" in result.output
    roster = load(initialized)
    assert roster.get_member(2).is_deceased is None
    assert roster.documents_for(2)[0].status is DocumentStatus.COMPLETE


def test_update_member_nothing_to_do(initialized):
    result = invoke(initialized, "update-member", "3")

    assert result.exit_code == 0
    assert "Nothing to update" in result.output


def test_remove_primary_is_refused(initialized):
    result = invoke(initialized, "remove-member", "1", "--yes")

    assert result.exit_code == 1
    assert "cannot remove the primary applicant" in result.output


def test_remove_member_can_be_cancelled(initialized):
    result = invoke(initialized, "remove-member", "3", input="n\n")

    assert result.exit_code == 0
    assert load(initialized).get_member(3) is not None


def test_remove_member(initialized):
    result = invoke(initialized, "remove-member", "3", "--yes")

    assert result.exit_code == 0
    roster = load(initialized)
    assert roster.get_member(3) is None
    assert roster.documents_for(3) == ()


def test_docs_and_show(initialized):
    result = invoke(initialized, "docs", "--member", "2")
    assert result.exit_code == 0
    assert "US Naturalization File" in result.output

    result = invoke(initialized, "show", "1-birth_certificate")
    assert result.exit_code == 0
    assert "Birth Certificate" in result.output
    assert "vital records" in result.output


def test_docs_are_grouped_by_relationship(initialized):
    result = invoke(initialized, "docs")

    assert result.exit_code == 0
    output = result.output
    assert output.index("Italian Ancestor Documents") < output.index("Primary Applicant")
    assert output.index("Spouse") < output.index("Children")
    assert "Siblings" not in output


def test_user_text_is_printed_literally(initialized):
    notes = "asked clerk [/] tbd [bold]"
    result = invoke(initialized, "status", "1-birth_certificate", "in_progress", "--notes", notes)
    assert result.exit_code == 0, result.output

    result = invoke(initialized, "docs")
    assert result.exit_code == 0, result.output
    assert "asked clerk [/] tbd [bold]" in result.output

    result = invoke(initialized, "show", "1-birth_certificate")
    assert result.exit_code == 0, result.output
    assert notes in result.output


def test_member_names_are_printed_literally(initialized):
    result = invoke(initialized, "add-member", "sibling", "--first-name", "[red]Luca[/red]")
    assert result.exit_code == 0, result.output

    result = invoke(initialized, "members")
    assert result.exit_code == 0, result.output
    assert "[red]Luca[/red]" in result.output


def test_status(initialized):
    result = invoke(initialized, "status", "1-birth_certificate", "complete", "--notes", "Apostilled")

    assert result.exit_code == 0, result.output
    doc = load(initialized).documents[0]
    assert doc.status is DocumentStatus.COMPLETE
    assert doc.notes == "Apostilled"


@pytest.mark.parametrize(
    "args, message",
    [
        (("9-birth_certificate", "complete"), "no longer exists"),
        (("1-birth_certificate", "finished"), "Status must be"),
    ],
)
def test_status_errors(initialized, args, message):
    result = invoke(initialized, "status", *args)

    assert result.exit_code == 1
    assert message in result.output


def test_attach_and_detach(initialized, tmp_path):
    image = tmp_path / "birth.png"
    image.write_bytes(b"\x89PNG\r\n\x1a\n" + b"\x00" * 64)

    result = invoke(initialized, "attach", "1-birth_certificate", str(image))

    assert result.exit_code == 0, result.output
    doc = load(initialized).documents[0]
    assert doc.image_url == image.resolve().as_uri()
    assert doc.status is DocumentStatus.IN_PROGRESS

    result = invoke(initialized, "detach", "1-birth_certificate")

    assert result.exit_code == 0
    doc = load(initialized).documents[0]
    assert doc.image_url is None
    assert doc.status is DocumentStatus.IN_PROGRESS


def test_attach_rejects_non_images(initialized, tmp_path):
    scan = tmp_path / "birth.pdf"
    scan.write_bytes(b"%PDF-1.4")

    result = invoke(initialized, "attach", "1-birth_certificate", str(scan))

    assert result.exit_code == 1
    assert "File must be an image" in result.output


def test_progress(initialized):
    invoke(initialized, "status", "1-birth_certificate", "complete")

    result = invoke(initialized, "progress")

    assert result.exit_code == 0
    assert "Overall Progress" in result.output
    assert "14%" in result.output


def test_export_reset_import(initialized, tmp_path):
    backup = tmp_path / "backup.json"
    original = load(initialized)

    result = invoke(initialized, "export", str(backup))
    assert result.exit_code == 0, result.output
    assert json.loads(backup.read_text(encoding="utf-8"))["version"] == "2.0"

    assert invoke(initialized, "reset", "--yes").exit_code == 0
    assert load(initialized).family_members == ()

    result = invoke(initialized, "import", str(backup))
    assert result.exit_code == 0, result.output
    assert load(initialized) == original


def test_import_invalid_file(initialized, tmp_path):
    bad = tmp_path / "bad.json"
    bad.write_text("{oops", encoding="utf-8")

    result = invoke(initialized, "import", str(bad), "--yes")

    assert result.exit_code == 1
    assert "Invalid data file format" in result.output
    assert len(load(initialized).family_members) == 4


def test_reset_can_be_cancelled(initialized):
    result = invoke(initialized, "reset", input="n\n")

    assert result.exit_code == 0
    assert "4 family members and 7 documents (0 complete)" in result.output
    assert len(load(initialized).family_members) == 4


def test_version():
    result = runner.invoke(app, ["version"])

    assert result.exit_code == 0
    assert __version__ in result.output
