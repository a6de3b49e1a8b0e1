from __future__ import annotations

import json
from datetime import UTC, datetime

import pytest

from monetaris.apps.users.service import UserService
from tools import create_user, init_db
from tools.workflow_due_report import collect, main as due_report_main, render_markdown

CREATED_AT = datetime(2024, 3, 1, 8, 0, tzinfo=UTC)
AS_OF = "2024-03-20T08:00:00+00:00"


def _printed(capsys) -> list[str]:
    return [line for line in capsys.readouterr().out.splitlines() if line and not line.startswith("{")]


def test_init_db_creates_tables(tmp_path, capsys) -> None:
    url = f"sqlite:///{tmp_path / 'fresh.db'}"
    assert init_db.main(["--database-url", url]) == 0
    line = _printed(capsys)[-1]
    assert line.startswith("Created ")
    for table in ("cases", "debtors", "event_outbox", "kreditoren", "users"):
        assert table in line


def test_create_user(engine, db_url, capsys) -> None:
    code = create_user.main(["--name", "Ida Initial", "--email", "ida@monetaris.example", "--database-url", db_url])
    assert code == 0
    user_id = _printed(capsys)[-1]
    assert UserService(engine).get_user(user_id).role.value == "ADMIN"


def test_create_user_errors(engine, db_url, kreditor, capsys) -> None:
    assert create_user.main(["--name", "X", "--email", "bad", "--database-url", db_url]) == 2
    args = ["--name", "Cleo Client", "--email", "cleo@x.example", "--role", "CLIENT", "--database-url", db_url]
    assert create_user.main(args) == 1
    assert "Client users require a kreditor_id" in capsys.readouterr().err
    assert create_user.main([*args, "--kreditor-id", kreditor.id]) == 0


@pytest.fixture
def overdue_case(create_case):
    # NEW for 7 days: due 2024-03-08, 12 days overdue on AS_OF
    return create_case(now=CREATED_AT)


def test_collect_scopes_by_kreditor(engine, overdue_case, other_kreditor) -> None:
    as_of = datetime.fromisoformat(AS_OF)
    items = collect(engine, as_of, limit=10)
    assert [i.id for i in items] == [overdue_case.id]
    assert items[0].days_overdue == 12
    assert collect(engine, as_of, limit=10, kreditor_id=other_kreditor.id) == []


def test_due_report_markdown(engine, db_url, overdue_case, tmp_path) -> None:
    out = tmp_path / "reports" / "due.md"
    code = due_report_main(["--database-url", db_url, "--as-of", AS_OF, "--format", "md", "--output", str(out)])
    assert code == 0
    text = out.read_text(encoding="utf-8")
    assert text.startswith("# Workflow actions due (2024-03-20)")
    assert f"| {overdue_case.invoice_number} | Max Mustermann | NEW | 2024-03-08 | 12 | 115.50 |" in text


def test_due_report_json(engine, db_url, overdue_case, tmp_path) -> None:
    out = tmp_path / "due.json"
    assert due_report_main(["--database-url", db_url, "--as-of", "2024-03-20T08:00:00", "--output", str(out)]) == 0
    report = json.loads(out.read_text(encoding="utf-8"))
    assert report["count"] == 1
    assert report["items"][0]["invoice_number"] == overdue_case.invoice_number
    assert report["items"][0]["total_amount"] == "115.50"


def test_due_report_offset_as_of(engine, db_url, overdue_case, tmp_path) -> None:
    out = tmp_path / "due.json"
    # 09:00+02:00 is one hour before the 08:00 UTC deadline
    args = ["--database-url", db_url, "--as-of", "2024-03-08T09:00:00+02:00", "--output", str(out)]
    assert due_report_main(args) == 0
    assert json.loads(out.read_text(encoding="utf-8"))["count"] == 0

    args[3] = "2024-03-08T11:00:00+02:00"
    assert due_report_main(args) == 0
    assert json.loads(out.read_text(encoding="utf-8"))["count"] == 1


def test_due_report_rejects_bad_timestamp(capsys) -> None:
    assert due_report_main(["--as-of", "gestern"]) == 2
    assert "Invalid --as-of timestamp" in capsys.readouterr().err


def test_render_markdown_empty() -> None:
    text = render_markdown([], datetime(2024, 1, 2, tzinfo=UTC))
    assert "0 case(s) overdue." in text
    assert "| Invoice |" not in text
