# create_admin.py
"""
Create a demo tenant with an admin and a team leader.
Development / manual maintenance only.
"""
import os

from sitebudget.db.auto_init import auto_init
from sitebudget.db.enums import UserRole
from sitebudget.db.session import configure_engine, session_scope
from sitebudget.models.company import Company
from sitebudget.services.audit_log_service import AuditLogService
from sitebudget.services.company_service import CompanyService
from sitebudget.services.user_service import UserService

DEMO_COMPANY = {
    "name": "Demo Construction Ltd",
    "email": "office@demo-construction.example",
    "admin_email": "admin@demo-construction.example",
    "admin_password": "admin12345",
    "admin_first_name": "Demo",
    "admin_last_name": "Admin",
    "industry": "construction",
    "currency": "NGN",
}

DEMO_TEAM_LEADER = {
    "email": "lead@demo-construction.example",
    "password": "leader12345",
    "first_name": "Site",
    "last_name": "Lead",
}


def create_admin():
    configure_engine(os.getenv("DATABASE_URL", "sqlite:///sitebudget.db"))
    auto_init()

    with session_scope() as db:
        if db.query(Company).filter(Company.name == DEMO_COMPANY["name"]).first():
            print(f"Company '{DEMO_COMPANY['name']}' already exists, skipping")
            return

        audit_log_service = AuditLogService(db)
        user_service = UserService(db, audit_log_service)
        company_service = CompanyService(db, audit_log_service, user_service)

        company, admin = company_service.create_company(**DEMO_COMPANY)
        company_service.populate_industry(company=company, industry="construction", operator_id=admin.id)
        user_service.create_user(
            company_id=company.id,
            role=UserRole.team_leader,
            operator_id=admin.id,
            **DEMO_TEAM_LEADER,
        )

    print(f"Demo tenant created: admin {DEMO_COMPANY['admin_email']} / {DEMO_COMPANY['admin_password']}")


if __name__ == "__main__":
    create_admin()
