"""Administrative commands for the interview tracker database."""
from __future__ import annotations

import argparse
import sys
from typing import List, Optional

from candidate_management import migrate_self_analysis
from config.settings import settings
from errors import InterviewError
from interview_session import SessionStore
from principal_management import PrincipalStore
from services.access import AccessGuard
from services.principals import PrincipalService
from storage import Database, DocumentStore, migrate


def _open(db_path: Optional[str]) -> DocumentStore:
    db = Database(db_path or settings.DB_PATH)
    migrate(db)
    return DocumentStore(db)


def _principal_service(documents: DocumentStore) -> PrincipalService:
    return PrincipalService(PrincipalStore(documents), AccessGuard(SessionStore(documents)))


def init_admin(documents: DocumentStore, *, name: str, email: str, department: str) -> int:
    service = _principal_service(documents)
    try:
        admin = service.bootstrap_admin({"name": name, "email": email, "department": department})
    except InterviewError as exc:
        print(f"error: {exc.message}" + (f" ({exc.details})" if exc.details else ""), file=sys.stderr)
        return 1
    print(f"Created admin {admin.name} <{admin.email}> id={admin.id}")
    return 0


def list_principals(documents: DocumentStore) -> int:
    for principal in PrincipalStore(documents).find():
        state = "active" if principal.is_active else "inactive"
        print(f"{principal.id} {principal.role:<11} {state:<8} {principal.name} <{principal.email}> [{principal.department}]")
    return 0


def run_migrate_self_analysis(documents: DocumentStore) -> int:
    result = migrate_self_analysis(documents)
    print(f"Updated {result['updated']} candidate(s), skipped {result['skipped']}")
    return 0


def main(argv: Optional[List[str]] = None) -> int:
    parser = argparse.ArgumentParser(description=__doc__)
    parser.add_argument("--db", help="SQLite database path (defaults to DB_PATH)")
    sub = parser.add_subparsers(dest="command", required=True)

    init = sub.add_parser("init-admin", help="Create the first admin user")
    init.add_argument("--name", required=True)
    init.add_argument("--email", required=True)
    init.add_argument("--department", required=True)

    sub.add_parser("migrate-self-analysis", help="Convert legacy self-analysis phrases to scores")
    sub.add_parser("list-principals", help="Show admins and interviewers")

    args = parser.parse_args(argv)
    documents = _open(args.db)

    if args.command == "init-admin":
        return init_admin(documents, name=args.name, email=args.email, department=args.department)
    if args.command == "migrate-self-analysis":
        return run_migrate_self_analysis(documents)
    return list_principals(documents)


if __name__ == "__main__":
    sys.exit(main())
