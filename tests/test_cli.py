"""
Tests for the command-line front-end.

Each test drives ``main()`` against its own SQLite file and checks what the
user would see: stdout for results, stderr for refusals, and the exit code.
"""

import pytest

from library_circulation.cli import build_parser, main


@pytest.fixture
def run(tmp_path, capsys):
    """Run the CLI against a per-test database file and capture its output."""
    url = f"sqlite:///{tmp_path / 'cli.db'}"

    def _run(*argv: str) -> tuple[int, str, str]:
        code = main(["--database-url", url, *argv])
        captured = capsys.readouterr()
        return code, captured.out, captured.err

    return _run


@pytest.fixture
def seeded(run):
    code, out, _ = run("init-db", "--sample-data", "--extra-members", "3")
    assert code == 0
    return run


class TestInitDb:
    def test_schema_and_sample_data(self, run):
        code, out, _ = run("init-db", "--sample-data", "--extra-members", "3")
        assert code == 0
        assert "Database schema ready" in out
        assert "Loaded 5 books and 8 members (0 already present)" in out

    def test_seeding_twice_skips_everything(self, seeded):
        code, out, _ = seeded("init-db", "--sample-data", "--extra-members", "3")
        assert code == 0
        assert "Loaded 0 books and 0 members (13 already present)" in out


class TestBooks:
    def test_add_and_show(self, run):
        code, out, _ = run(
            "book", "add",
            "--isbn", "978-1-59327-584-6",
            "--title", "Python Crash Course",
            "--author", "Eric Matthes",
            "--copies", "2",
        )
        assert code == 0
        assert "Added [1] Python Crash Course by Eric Matthes" in out
        assert "(ISBN 9781593275846) 2/2 available" in out

        code, out, _ = run("book", "show", "1")
        assert code == 0
        assert "Python Crash Course" in out

    def test_duplicate_isbn_is_refused(self, seeded):
        code, _, err = seeded(
            "book", "add", "--isbn", "9780132350884", "--title", "Again", "--author", "Someone"
        )
        assert code == 1
        assert "isbn" in err
        assert "already exists" in err

    def test_search_and_update(self, seeded):
        code, out, _ = seeded("book", "search", "author", "bloch")
        assert code == 0
        assert "Effective Java" in out
        assert "Clean Code" not in out

        code, out, _ = seeded("book", "update", "5", "--total-copies", "3")
        assert code == 0
        assert "3/3 available" in out

    def test_missing_book(self, seeded):
        code, _, err = seeded("book", "show", "99")
        assert code == 1
        assert "Book 99 not found" in err


class TestMembers:
    def test_invalid_member_code_names_the_field(self, run):
        code, _, err = run(
            "member", "register",
            "--code", "ab",
            "--first-name", "Ada",
            "--last-name", "Lovelace",
            "--email", "ada@example.com",
        )
        assert code == 1
        assert "member_code" in err

    def test_register_and_suspend(self, run):
        code, out, _ = run(
            "member", "register",
            "--code", "MEM100",
            "--first-name", "Ada",
            "--last-name", "Lovelace",
            "--email", "ada@example.com",
        )
        assert code == 0
        assert "MEM100 Ada Lovelace <ada@example.com> ACTIVE, limit 5" in out

        code, out, _ = run("member", "status", "1", "suspended")
        assert code == 0
        assert "SUSPENDED" in out

    def test_update_member_fields(self, seeded):
        code, out, _ = seeded(
            "member", "update", "1", "--email", "john.d@example.org", "--max-books", "7"
        )
        assert code == 0
        assert "MEM001 John Doe <john.d@example.org> ACTIVE, limit 7" in out

        code, out, _ = seeded("member", "show", "1")
        assert "john.d@example.org" in out

    def test_update_member_to_taken_email_is_refused(self, seeded):
        code, _, err = seeded("member", "update", "2", "--email", "john.doe@email.com")
        assert code == 1
        assert "email" in err

    def test_update_member_with_long_phone_names_the_field(self, seeded):
        code, _, err = seeded("member", "update", "1", "--phone", "555-0101-0101-0101-01")
        assert code == 1
        assert "phone" in err

    def test_suspended_member_cannot_borrow(self, seeded):
        seeded("member", "status", "2", "SUSPENDED")
        code, _, err = seeded("borrow", "1", "2")
        assert code == 1
        assert "only ACTIVE members may borrow" in err


class TestCirculation:
    def test_last_copy_then_return(self, seeded):
        code, out, _ = seeded("borrow", "3", "1")
        assert code == 0
        assert "Borrowing 1 created: book 3" in out

        code, _, err = seeded("borrow", "3", "2")
        assert code == 1
        assert "no copies available" in err

        code, out, _ = seeded("stats")
        assert code == 0
        assert "=== LIBRARY STATISTICS ===" in out
        assert "Total Books: 5" in out
        assert "Borrowed Copies: 1" in out
        assert "Current Borrowings: 1" in out
        assert "Overdue Books: 0" in out

        code, out, _ = seeded("borrowings", "current")
        assert code == 0
        assert "'Introduction to Algorithms' / John Doe" in out

        code, out, _ = seeded("return", "1")
        assert code == 0
        assert "returned on time, no fine" in out

        code, _, err = seeded("return", "1")
        assert code == 1
        assert "already returned" in err

    def test_unknown_borrowing(self, seeded):
        code, _, err = seeded("return", "42")
        assert code == 1
        assert "Borrowing 42 not found" in err

    def test_cannot_delete_book_on_loan(self, seeded):
        seeded("borrow", "1", "1")
        code, _, err = seeded("book", "delete", "1")
        assert code == 1
        assert "still open" in err


class TestUsage:
    def test_unknown_command_exits_2(self, run):
        with pytest.raises(SystemExit) as exc_info:
            run("lend", "1", "1")
        assert exc_info.value.code == 2

    def test_non_numeric_id_exits_2(self, run):
        with pytest.raises(SystemExit) as exc_info:
            run("borrow", "three", "1")
        assert exc_info.value.code == 2

    def test_parser_lists_every_command(self):
        help_text = build_parser().format_help()
        for command in ("init-db", "book", "member", "borrow", "return", "borrowings", "stats"):
            assert command in help_text

    def test_unreachable_database_exits_1(self, tmp_path, capsys):
        url = f"sqlite:///{tmp_path / 'missing' / 'dir' / 'cli.db'}"
        code = main(["--database-url", url, "book", "list"])
        assert code == 1
        assert "Cannot connect to database" in capsys.readouterr().err
