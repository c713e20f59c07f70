"""
Startup check: creates the tables and the platform console manager when missing.
"""
import os
from uuid import uuid4

from sqlalchemy import inspect

from sitebudget.db.enums import CompanyStatus, UserRole
from sitebudget.db.init_db import init_db
from sitebudget.db.session import get_engine, session_scope
from sitebudget.logger import get_logger
from sitebudget.models.company import Company
from sitebudget.models.user import User
from sitebudget.services.audit_log_service import AuditLogService
from sitebudget.services.user_service import UserService

logger = get_logger(__name__)

PLATFORM_COMPANY_NAME = "sitebudget platform"


def check_tables_exist() -> bool:
    inspector = inspect(get_engine())
    return "users" in inspector.get_table_names()


def check_console_manager_exists() -> bool:
    with session_scope() as db:
        return db.query(User.id).filter(User.role == UserRole.console_manager).first() is not None


def create_console_manager() -> None:
    '''
    Platform company plus its console manager. Credentials come from
    CONSOLE_MANAGER_EMAIL / CONSOLE_MANAGER_PASSWORD; the password must be
    changed at first login.
    '''
    email = os.getenv("CONSOLE_MANAGER_EMAIL", "console@sitebudget.local")
    password = os.getenv("CONSOLE_MANAGER_PASSWORD", "change-me-now")

    with session_scope() as db:
        company = db.query(Company).filter(Company.name == PLATFORM_COMPANY_NAME).first()
        if company is None:
            company = Company(
                id=str(uuid4()),
                name=PLATFORM_COMPANY_NAME,
                email=email,
                status=CompanyStatus.active,
                currency=os.getenv("DEFAULT_CURRENCY", "NGN"),
            )
            db.add(company)
            db.flush()

        UserService(db, AuditLogService(db)).create_user(
            company_id=company.id,
            email=email,
            password=password,
            first_name="Console",
            last_name="Manager",
            role=UserRole.console_manager,
            must_change_password=True,
        )
    logger.info(f"Console manager {email} created, change the password after first login")


def auto_init() -> None:
    logger.info("Checking database initialisation")

    if not check_tables_exist():
        logger.info("Tables missing, creating them")
        init_db()
    else:
        logger.info("Tables present")

    if not check_console_manager_exists():
        create_console_manager()

    logger.info("Database initialisation check done")


if __name__ == "__main__":
    auto_init()
