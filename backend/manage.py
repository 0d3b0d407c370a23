"""
Vault Management Commands

Usage:
    python manage.py seed-requirements data/requirements.sample.json
    python manage.py reset-locker <user_id>
"""
import argparse
import json
import sys

from pydantic import ValidationError as SchemaValidationError

from vault.database import SessionLocal, init_db
from vault.exceptions import VaultError
from vault.schemas.schemas import RequirementSet
from vault.services.locker_service import LockerService
from vault.services.requirement_validator import RequirementCatalog


def seed_requirements(path: str) -> int:
    """Load RequirementSets from a JSON file holding a list (or a single object)."""
    with open(path, encoding="utf-8") as f:
        payload = json.load(f)
    if isinstance(payload, dict):
        payload = [payload]

    try:
        requirement_sets = [RequirementSet.model_validate(item) for item in payload]
    except SchemaValidationError as e:
        print(f"Invalid requirements file: {e}", file=sys.stderr)
        return 1

    db = SessionLocal()
    try:
        catalog = RequirementCatalog(db)
        for requirement_set in requirement_sets:
            catalog.upsert(requirement_set)
            print(f"  [OK] {requirement_set.service_id}: {len(requirement_set.documents)} documents")
    finally:
        db.close()
    return 0


def reset_locker(user_id: str) -> int:
    db = SessionLocal()
    try:
        removed = LockerService(db).reset(user_id)
    except VaultError as e:
        print(f"  [!] {e.message}", file=sys.stderr)
        return 1
    finally:
        db.close()
    print(f"  [OK] Locker for {user_id} removed with {removed} documents")
    return 0


def main(argv=None) -> int:
    parser = argparse.ArgumentParser(description="Secure Document Vault management commands")
    commands = parser.add_subparsers(dest="command", required=True)

    seed = commands.add_parser("seed-requirements", help="Load service document requirements from JSON")
    seed.add_argument("path", help="JSON file with one or more RequirementSets")

    reset = commands.add_parser("reset-locker", help="Hard-delete a user's locker and its documents")
    reset.add_argument("user_id")

    args = parser.parse_args(argv)
    init_db()

    if args.command == "seed-requirements":
        return seed_requirements(args.path)
    return reset_locker(args.user_id)


if __name__ == "__main__":
    sys.exit(main())
