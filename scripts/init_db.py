#!/usr/bin/env python3
"""
Create the warehouse schema from the active settings.

Reads settings through warehouse_config (WAREHOUSE_CONFIG /
WAREHOUSE_DATABASE_URL), creates any missing tables, and optionally drops
everything first or registers an initial Admin user.

Usage:
  python3 scripts/init_db.py [--config PATH] [--reset] [--admin-email EMAIL]
"""

import argparse
import sys
from pathlib import Path
from uuid import uuid4

ROOT = Path(__file__).resolve().parent.parent
sys.path.insert(0, str(ROOT))


def _parse_args(argv: list[str] | None = None) -> argparse.Namespace:
    p = argparse.ArgumentParser(description="Create warehouse kernel tables")
    p.add_argument("--config", default=None, help="Settings YAML (default: WAREHOUSE_CONFIG or packaged defaults)")
    p.add_argument("--reset", action="store_true", help="Drop all tables before creating them")
    p.add_argument("--admin-email", default=None, help="Create an active Admin user with this email")
    p.add_argument("--admin-name", default="Administrator", help="Name for --admin-email (default: %(default)s)")
    return p.parse_args(argv)


def main(argv: list[str] | None = None) -> int:
    args = _parse_args(argv)

    from warehouse_config import get_active_settings
    from warehouse_kernel.db.engine import (
        create_tables,
        drop_tables,
        get_session,
        init_engine_from_url,
    )
    from warehouse_kernel.db.immutability import register_immutability_listeners
    from warehouse_kernel.domain.dtos import UserRole
    from warehouse_kernel.logging_config import configure_logging, get_logger
    from warehouse_kernel.models.user import User

    settings = get_active_settings(args.config)
    configure_logging(level=settings.logging.level)
    logger = get_logger("scripts.init_db")

    db = settings.database
    init_engine_from_url(
        db.url,
        echo=db.echo,
        pool_size=db.pool_size,
        max_overflow=db.max_overflow,
        pool_timeout=db.pool_timeout,
    )
    if args.reset:
        drop_tables()
        logger.warning("tables_dropped", extra={"database_url": db.url})
    create_tables()
    register_immutability_listeners()
    logger.info("tables_created", extra={"database_url": db.url})

    if args.admin_email:
        session = get_session()
        try:
            system_id = uuid4()
            admin = User(
                name=args.admin_name,
                email=args.admin_email,
                role=UserRole.ADMIN.value,
                is_active=True,
                created_by_id=system_id,
            )
            session.add(admin)
            session.commit()
            logger.info("admin_created", extra={"user_id": str(admin.id), "email": admin.email})
            print(f"Admin user {admin.email}: {admin.id}")
        finally:
            session.close()

    print(f"Schema ready at {db.url}")
    return 0


if __name__ == "__main__":
    sys.exit(main())
