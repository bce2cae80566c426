"""Bootstrap the first administrator.

Administrators cannot be invited (no one outranks them to grant the role),
so the first one is created here, against the configured database.

Usage:
    ADMIN_PASSWORD=... python -m src.identity.scripts.bootstrap_admin \\
        --email admin@example.com --first-name Ada --last-name Admin

    # Promote an existing identity instead
    python -m src.identity.scripts.bootstrap_admin --email member@example.com
"""

import argparse
import asyncio
import os
import sys
from typing import Any

from src.identity.core.config import get_settings
from src.identity.core.db import dispose_engine, get_session
from src.identity.core.logging import get_logger, mask_email, setup_logging
from src.identity.core.migrations import run_migrations_async
from src.identity.core.security import hash_password, normalize_email
from src.identity.models import AuditAction, Identity, Role
from src.identity.models.base import utc_now
from src.identity.repositories import AuditEntryRepository, IdentityRepository
from src.identity.schemas.passwords import validate_password_strength
from src.identity.services import SystemLogger

logger = get_logger(__name__)


async def bootstrap_admin(
    email: str,
    password: str | None,
    first_name: str,
    last_name: str,
    dry_run: bool = False,
) -> dict[str, Any]:
    """Create an admin identity, or promote an existing one.

    Returns:
        dict with identity_id, email and status
        ('created', 'promoted', 'already_admin' or 'dry_run')
    """
    email = normalize_email(email)

    async with get_session() as session, get_session() as audit_session:
        identities = IdentityRepository(session)
        audit = SystemLogger(AuditEntryRepository(audit_session), audit_session)

        existing = await identities.get_by_email(email)
        if existing is not None:
            if existing.role == Role.ADMIN.value:
                return {"identity_id": existing.id, "email": email, "status": "already_admin"}
            if dry_run:
                return {"identity_id": existing.id, "email": email, "status": "dry_run"}

            old_role = existing.role
            existing.role = Role.ADMIN.value
            existing.updated_at = utc_now()
            identities.add(existing)
            await session.commit()
            await audit.append(
                None,
                AuditAction.ROLE_CHANGE,
                "identity",
                existing.id,
                detail=f"from={old_role} to={Role.ADMIN.value} source=bootstrap",
            )
            logger.info("Promoted identity to admin", email=mask_email(email))
            return {"identity_id": existing.id, "email": email, "status": "promoted"}

        if password is None:
            raise ValueError("A password is required to create a new admin")
        validate_password_strength(password)

        if dry_run:
            return {"identity_id": None, "email": email, "status": "dry_run"}

        identity = Identity(
            email=email,
            hashed_password=hash_password(password),
            first_name=first_name,
            last_name=last_name,
            role=Role.ADMIN.value,
        )
        identities.add(identity)
        await session.commit()
        await audit.append(
            None,
            AuditAction.IDENTITY_CREATE,
            "identity",
            identity.id,
            detail=f"role={Role.ADMIN.value} source=bootstrap",
        )
        logger.info("Created admin identity", email=mask_email(email))
        return {"identity_id": identity.id, "email": email, "status": "created"}


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="Create or promote an administrator.")
    parser.add_argument("--email", default=os.environ.get("ADMIN_EMAIL"), help="Admin email")
    parser.add_argument(
        "--password",
        default=os.environ.get("ADMIN_PASSWORD"),
        help="Admin password (prefer the ADMIN_PASSWORD environment variable)",
    )
    parser.add_argument("--first-name", default="System")
    parser.add_argument("--last-name", default="Administrator")
    parser.add_argument(
        "--migrate", action="store_true", help="Upgrade the schema before bootstrapping"
    )
    parser.add_argument("--dry-run", action="store_true", help="Report without writing")
    return parser


async def _run(args: argparse.Namespace) -> dict[str, Any]:
    try:
        if args.migrate:
            await run_migrations_async()
        return await bootstrap_admin(
            args.email,
            args.password,
            args.first_name,
            args.last_name,
            dry_run=args.dry_run,
        )
    finally:
        await dispose_engine()


def main(argv: list[str] | None = None) -> int:
    args = build_parser().parse_args(argv)
    setup_logging(get_settings().debug)

    if not args.email:
        print("Error: --email or ADMIN_EMAIL is required", file=sys.stderr)
        return 2

    try:
        result = asyncio.run(_run(args))
    except ValueError as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1

    print(f"{result['status']}: {result['email']} (id: {result['identity_id']})")
    return 0


if __name__ == "__main__":
    sys.exit(main())
