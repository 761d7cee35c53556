"""
Command-line front-end for the library circulation package.

Usage:
    library-circulation init-db [--drop-existing] [--sample-data]
    library-circulation book add --isbn 9780132350884 --title "Clean Code" --author "Robert C. Martin"
    library-circulation member register --code MEM010 --first-name Ada --last-name Lovelace --email ada@example.com
    library-circulation member update MEMBER_ID --email ada@example.org
    library-circulation borrow BOOK_ID MEMBER_ID
    library-circulation return BORROWING_ID
    library-circulation stats

Exit codes: 0 on success, 1 when the library refused the request (the message
names the rule that failed), 2 on usage errors.
"""

import argparse
import logging
import sys
from datetime import date

from pydantic import ValidationError

from . import __version__
from .config import get_config
from .database.seed import seed_database
from .database.session import DatabaseManager, get_db_manager
from .errors import LibraryError
from .models.book import Book
from .models.borrowing import Borrowing
from .models.member import Member, MembershipStatus
from .services import CatalogService, CirculationService, MembershipService, ReportService

logger = logging.getLogger(__name__)


class CommandContext:
    """Services shared by every command of one invocation."""

    def __init__(self, db_manager: DatabaseManager):
        self.db_manager = db_manager
        self.config = get_config()
        self.catalog = CatalogService(db_manager, config=self.config)
        self.membership = MembershipService(db_manager, config=self.config)
        self.circulation = CirculationService(db_manager, config=self.config)
        self.reports = ReportService(db_manager, config=self.config)

    def today(self) -> date:
        return self.circulation.today()


# =============================================================================
# OUTPUT FORMATTING
# =============================================================================


def format_book(book: Book) -> str:
    year = f", {book.publication_year}" if book.publication_year else ""
    return (
        f"[{book.book_id}] {book.title} by {book.author}{year} "
        f"(ISBN {book.isbn}) {book.available_copies}/{book.total_copies} available"
    )


def format_member(member: Member) -> str:
    return (
        f"[{member.member_id}] {member.member_code} {member.full_name} <{member.email}> "
        f"{member.membership_status.value}, limit {member.max_books_allowed}"
    )


def format_borrowing(borrowing: Borrowing, today: date) -> str:
    status = borrowing.display_status(today).value
    line = (
        f"[{borrowing.borrowing_id}] book {borrowing.book_id} -> member {borrowing.member_id} "
        f"borrowed {borrowing.borrow_date}, due {borrowing.due_date}, {status}"
    )
    if borrowing.book is not None and borrowing.member is not None:
        line += f" | '{borrowing.book.title}' / {borrowing.member.full_name}"
    if borrowing.return_date is not None:
        line += f", returned {borrowing.return_date}, fine ${borrowing.fine_amount}"
    elif borrowing.is_overdue(today):
        line += f", {borrowing.days_overdue(today)} day(s) overdue"
    return line


def _print_rows(rows: list, formatter, empty: str) -> None:
    if not rows:
        print(empty)
        return
    for row in rows:
        print(formatter(row))


# =============================================================================
# COMMAND HANDLERS
# =============================================================================


def cmd_init_db(ctx: CommandContext, args: argparse.Namespace) -> None:
    ctx.db_manager.init_database(drop_existing=args.drop_existing)
    print("Database schema ready")
    if args.sample_data:
        summary = seed_database(ctx.db_manager, extra_members=args.extra_members, today=ctx.today())
        print(
            f"Loaded {summary.books_added} books and {summary.members_added} members "
            f"({summary.skipped} already present)"
        )


def cmd_book_add(ctx: CommandContext, args: argparse.Namespace) -> None:
    book = Book(
        isbn=args.isbn,
        title=args.title,
        author=args.author,
        publisher=args.publisher,
        genre=args.genre,
        publication_year=args.year,
        total_copies=args.copies,
        available_copies=args.copies,
    )
    print(f"Added {format_book(ctx.catalog.add_book(book))}")


def cmd_book_list(ctx: CommandContext, args: argparse.Namespace) -> None:  # noqa: ARG001
    _print_rows(ctx.catalog.list_books(), format_book, "No books in the catalog")


def cmd_book_show(ctx: CommandContext, args: argparse.Namespace) -> None:
    print(format_book(ctx.catalog.get_book(args.book_id)))


def cmd_book_search(ctx: CommandContext, args: argparse.Namespace) -> None:
    search = {
        "title": ctx.catalog.search_by_title,
        "author": ctx.catalog.search_by_author,
        "genre": ctx.catalog.search_by_genre,
    }[args.field]
    _print_rows(search(args.term), format_book, f"No books match {args.field} '{args.term}'")


def cmd_book_update(ctx: CommandContext, args: argparse.Namespace) -> None:
    changes = {
        field: value
        for field, value in {
            "isbn": args.isbn,
            "title": args.title,
            "author": args.author,
            "publisher": args.publisher,
            "genre": args.genre,
            "publication_year": args.year,
            "total_copies": args.total_copies,
        }.items()
        if value is not None
    }
    current = ctx.catalog.get_book(args.book_id)
    # Re-validate so the ISBN is normalized again; the shelf count is
    # recomputed by the catalog from the stored row
    book = Book.model_validate({**current.model_dump(), **changes})
    print(f"Updated {format_book(ctx.catalog.update_book(book))}")


def cmd_book_delete(ctx: CommandContext, args: argparse.Namespace) -> None:
    ctx.catalog.delete_book(args.book_id)
    print(f"Deleted book {args.book_id}")


def cmd_book_available(ctx: CommandContext, args: argparse.Namespace) -> None:  # noqa: ARG001
    _print_rows(ctx.catalog.available_books(), format_book, "No books available")


def cmd_member_register(ctx: CommandContext, args: argparse.Namespace) -> None:
    member = Member(
        member_code=args.code,
        first_name=args.first_name,
        last_name=args.last_name,
        email=args.email,
        phone=args.phone,
        address=args.address,
        membership_date=ctx.today(),
        max_books_allowed=args.max_books or ctx.config.default_max_books,
    )
    print(f"Registered {format_member(ctx.membership.register_member(member))}")


def cmd_member_list(ctx: CommandContext, args: argparse.Namespace) -> None:  # noqa: ARG001
    _print_rows(ctx.membership.list_members(), format_member, "No members registered")


def cmd_member_show(ctx: CommandContext, args: argparse.Namespace) -> None:
    print(format_member(ctx.membership.get_member(args.member_id)))


def cmd_member_search(ctx: CommandContext, args: argparse.Namespace) -> None:
    _print_rows(
        ctx.membership.search_by_name(args.name), format_member, f"No members match '{args.name}'"
    )


def cmd_member_status(ctx: CommandContext, args: argparse.Namespace) -> None:
    member = ctx.membership.update_status(args.member_id, args.status)
    print(f"Updated {format_member(member)}")


def cmd_member_update(ctx: CommandContext, args: argparse.Namespace) -> None:
    changes = {
        field: value
        for field, value in {
            "member_code": args.code,
            "first_name": args.first_name,
            "last_name": args.last_name,
            "email": args.email,
            "phone": args.phone,
            "address": args.address,
            "max_books_allowed": args.max_books,
        }.items()
        if value is not None
    }
    current = ctx.membership.get_member(args.member_id)
    member = Member.model_validate({**current.model_dump(), **changes})
    print(f"Updated {format_member(ctx.membership.update_member(member))}")


def cmd_member_delete(ctx: CommandContext, args: argparse.Namespace) -> None:
    ctx.membership.delete_member(args.member_id)
    print(f"Deleted member {args.member_id}")


def cmd_member_active(ctx: CommandContext, args: argparse.Namespace) -> None:  # noqa: ARG001
    _print_rows(ctx.membership.active_members(), format_member, "No active members")


def cmd_borrow(ctx: CommandContext, args: argparse.Namespace) -> None:
    borrowing = ctx.circulation.borrow_book(args.book_id, args.member_id)
    print(
        f"Borrowing {borrowing.borrowing_id} created: book {borrowing.book_id} "
        f"due back {borrowing.due_date}"
    )


def cmd_return(ctx: CommandContext, args: argparse.Namespace) -> None:
    receipt = ctx.circulation.return_book(args.borrowing_id)
    if receipt.fine_amount > 0:
        print(
            f"Borrowing {args.borrowing_id} returned {receipt.days_overdue} day(s) late, "
            f"fine ${receipt.fine_amount}"
        )
    else:
        print(f"Borrowing {args.borrowing_id} returned on time, no fine")


def cmd_borrowings(ctx: CommandContext, args: argparse.Namespace) -> None:
    today = ctx.today()
    if args.scope == "current":
        rows = ctx.circulation.current_borrowings_with_details()
    elif args.scope == "overdue":
        rows = ctx.circulation.overdue_borrowings(today)
    elif args.scope == "member":
        if args.member_id is None:
            raise LibraryError("borrowings member needs a MEMBER_ID")
        rows = ctx.circulation.member_borrowings(args.member_id)
    else:
        rows = ctx.circulation.all_borrowings(with_details=True)
    _print_rows(rows, lambda b: format_borrowing(b, today), "No borrowings")


def cmd_stats(ctx: CommandContext, args: argparse.Namespace) -> None:  # noqa: ARG001
    print("=== LIBRARY STATISTICS ===")
    for line in ctx.reports.statistics().lines():
        print(line)


# =============================================================================
# ARGUMENT PARSING
# =============================================================================


def _add_book_fields(parser: argparse.ArgumentParser, required: bool) -> None:
    parser.add_argument("--isbn", required=required, help="ISBN-10 or ISBN-13")
    parser.add_argument("--title", required=required)
    parser.add_argument("--author", required=required)
    parser.add_argument("--publisher")
    parser.add_argument("--genre")
    parser.add_argument("--year", type=int, help="Publication year")


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="library-circulation",
        description="Library catalog and circulation tracker",
    )
    parser.add_argument("--version", action="version", version=f"%(prog)s {__version__}")
    parser.add_argument("--database-url", help="Override the configured database URL")
    parser.add_argument(
        "-v", "--verbose", action="store_true", help="Log debug messages to stderr"
    )
    commands = parser.add_subparsers(dest="command", required=True)

    init_db = commands.add_parser("init-db", help="Create the database schema")
    init_db.add_argument(
        "--drop-existing", action="store_true", help="Drop existing tables before creating new ones"
    )
    init_db.add_argument("--sample-data", action="store_true", help="Load sample books and members")
    init_db.add_argument(
        "--extra-members", type=int, default=10, help="Generated members added to the sample set"
    )
    init_db.set_defaults(handler=cmd_init_db)

    # --- books ---
    book = commands.add_parser("book", help="Manage the catalog")
    book_commands = book.add_subparsers(dest="book_command", required=True)

    add = book_commands.add_parser("add", help="Add a book")
    _add_book_fields(add, required=True)
    add.add_argument("--copies", type=int, default=1, help="Number of copies owned")
    add.set_defaults(handler=cmd_book_add)

    book_commands.add_parser("list", help="List all books").set_defaults(handler=cmd_book_list)

    show = book_commands.add_parser("show", help="Show one book")
    show.add_argument("book_id", type=int)
    show.set_defaults(handler=cmd_book_show)

    search = book_commands.add_parser("search", help="Search books")
    search.add_argument("field", choices=["title", "author", "genre"])
    search.add_argument("term")
    search.set_defaults(handler=cmd_book_search)

    update = book_commands.add_parser("update", help="Edit a book")
    update.add_argument("book_id", type=int)
    _add_book_fields(update, required=False)
    update.add_argument(
        "--total-copies", type=int, help="Copies owned; the shelf count moves by the same amount"
    )
    update.set_defaults(handler=cmd_book_update)

    delete = book_commands.add_parser("delete", help="Delete a book with no open borrowings")
    delete.add_argument("book_id", type=int)
    delete.set_defaults(handler=cmd_book_delete)

    book_commands.add_parser("available", help="List books with copies on the shelf").set_defaults(
        handler=cmd_book_available
    )

    # --- members ---
    member = commands.add_parser("member", help="Manage members")
    member_commands = member.add_subparsers(dest="member_command", required=True)

    register = member_commands.add_parser("register", help="Register a member")
    register.add_argument("--code", required=True, help="Library card code (3-20 letters/digits)")
    register.add_argument("--first-name", required=True)
    register.add_argument("--last-name", required=True)
    register.add_argument("--email", required=True)
    register.add_argument("--phone")
    register.add_argument("--address")
    register.add_argument("--max-books", type=int, help="Borrowing limit (1-10)")
    register.set_defaults(handler=cmd_member_register)

    member_commands.add_parser("list", help="List all members").set_defaults(
        handler=cmd_member_list
    )

    member_show = member_commands.add_parser("show", help="Show one member")
    member_show.add_argument("member_id", type=int)
    member_show.set_defaults(handler=cmd_member_show)

    member_search = member_commands.add_parser("search", help="Search members by name")
    member_search.add_argument("name")
    member_search.set_defaults(handler=cmd_member_search)

    status = member_commands.add_parser("status", help="Change a membership status")
    status.add_argument("member_id", type=int)
    status.add_argument(
        "status", type=str.upper, choices=[s.value for s in MembershipStatus]
    )
    status.set_defaults(handler=cmd_member_status)

    member_update = member_commands.add_parser("update", help="Edit a member")
    member_update.add_argument("member_id", type=int)
    member_update.add_argument("--code", help="Library card code (3-20 letters/digits)")
    member_update.add_argument("--first-name")
    member_update.add_argument("--last-name")
    member_update.add_argument("--email")
    member_update.add_argument("--phone")
    member_update.add_argument("--address")
    member_update.add_argument("--max-books", type=int, help="Borrowing limit (1-10)")
    member_update.set_defaults(handler=cmd_member_update)

    member_delete = member_commands.add_parser(
        "delete", help="Delete a member with no open borrowings"
    )
    member_delete.add_argument("member_id", type=int)
    member_delete.set_defaults(handler=cmd_member_delete)

    member_commands.add_parser("active", help="List active members").set_defaults(
        handler=cmd_member_active
    )

    # --- circulation ---
    borrow = commands.add_parser("borrow", help="Lend a book to a member")
    borrow.add_argument("book_id", type=int)
    borrow.add_argument("member_id", type=int)
    borrow.set_defaults(handler=cmd_borrow)

    return_ = commands.add_parser("return", help="Return a borrowed book")
    return_.add_argument("borrowing_id", type=int)
    return_.set_defaults(handler=cmd_return)

    borrowings = commands.add_parser("borrowings", help="List borrowings")
    borrowings.add_argument("scope", choices=["current", "overdue", "member", "all"])
    borrowings.add_argument("member_id", type=int, nargs="?")
    borrowings.set_defaults(handler=cmd_borrowings)

    commands.add_parser("stats", help="Show library statistics").set_defaults(handler=cmd_stats)

    return parser


def main(argv: list[str] | None = None) -> int:
    """Entry point for the ``library-circulation`` command."""
    parser = build_parser()
    args = parser.parse_args(argv)

    config = get_config()
    logging.basicConfig(
        level="DEBUG" if args.verbose else config.effective_log_level,
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
        stream=sys.stderr,
    )

    if args.database_url:
        db_manager = DatabaseManager(args.database_url)
    else:
        db_manager = get_db_manager()

    try:
        if not db_manager.verify_connection():
            print(
                f"Error: Cannot connect to database at {db_manager.database_url}",
                file=sys.stderr,
            )
            return 1
        # Every command can run against a fresh database file
        if args.command != "init-db":
            db_manager.init_database()
        args.handler(CommandContext(db_manager), args)
    except (LibraryError, ValidationError) as e:
        logger.debug("Command %s failed", args.command, exc_info=True)
        print(f"Error: {e}", file=sys.stderr)
        return 1
    finally:
        db_manager.close()

    return 0


if __name__ == "__main__":
    sys.exit(main())
