# sitebudget/services/company_service.py
from typing import Dict, List, Optional, Tuple
from uuid import uuid4

from sqlalchemy.orm import Session

from sitebudget.db import industry_templates
from sitebudget.db.enums import AuditAction, CompanyStatus, UserRole
from sitebudget.errors import InputError, NotFoundError
from sitebudget.logger import get_logger
from sitebudget.models.catalog import LineItem, Material
from sitebudget.models.company import Company
from sitebudget.models.user import User
from sitebudget.services.audit_log_service import AuditLogService
from sitebudget.services.user_service import UserService

logger = get_logger(__name__)

# fields an update may touch
UPDATABLE_FIELDS = ("name", "email", "phone", "address", "industry", "subscription_plan", "status", "currency")


class CompanyService:
    """
    Tenants. Console managers create and maintain them; an admin reads and
    updates their own company only (enforced by the routes).
    """

    def __init__(self, db: Session, audit_log_service: AuditLogService, user_service: UserService):
        self.db = db
        self.audit_log_service = audit_log_service
        self.user_service = user_service

    def get_company(self, company_id: str) -> Company:
        company = self.db.query(Company).filter(Company.id == company_id).first()
        if not company:
            raise NotFoundError("Company", company_id)
        return company

    def list_companies(self) -> List[Company]:
        return self.db.query(Company).order_by(Company.created_at).all()

    def create_company(
        self,
        *,
        name: str,
        email: str,
        admin_email: str,
        admin_password: str,
        admin_first_name: Optional[str] = None,
        admin_last_name: Optional[str] = None,
        phone: Optional[str] = None,
        address: Optional[str] = None,
        industry: Optional[str] = None,
        subscription_plan: str = "basic",
        currency: str = "NGN",
        operator_id: Optional[str] = None,
    ) -> Tuple[Company, User]:
        '''
        Create a tenant together with its first admin user.

        :param currency: ISO 4217 code of every amount of the tenant
        :param operator_id: console manager creating the company
        :return: (company, admin user)
        '''
        if industry and industry not in industry_templates.INDUSTRY_LABELS:
            raise InputError(f"Unknown industry '{industry}'", details={"field": "industry"})

        company = Company(
            id=str(uuid4()),
            name=name.strip(),
            email=email.strip(),
            phone=phone,
            address=address,
            industry=industry,
            subscription_plan=subscription_plan,
            status=CompanyStatus.active,
            currency=currency.upper(),
            created_by=operator_id,
        )
        self.db.add(company)
        self.db.flush()

        admin = self.user_service.create_user(
            company_id=company.id,
            email=admin_email,
            password=admin_password,
            first_name=admin_first_name,
            last_name=admin_last_name,
            role=UserRole.admin,
            operator_id=operator_id,
        )

        self.audit_log_service.record(
            action=AuditAction.company_created,
            entity_type="company",
            entity_id=company.id,
            user_id=operator_id,
            tenant_id=company.id,
            details={"name": company.name, "admin_id": admin.id, "currency": company.currency},
        )
        logger.info(f"Company {company.id} '{company.name}' created with admin {admin.id}")
        return company, admin

    def update_company(self, *, company: Company, changes: Dict, operator_id: str) -> Company:
        if "industry" in changes and changes["industry"] and changes["industry"] not in industry_templates.INDUSTRY_LABELS:
            raise InputError(f"Unknown industry '{changes['industry']}'", details={"field": "industry"})

        before = {}
        after = {}
        for field in UPDATABLE_FIELDS:
            if field not in changes or changes[field] is None:
                continue
            value = changes[field]
            if field == "status":
                value = CompanyStatus(value)
            if field == "currency":
                value = value.upper()
            if getattr(company, field) != value:
                before[field] = getattr(company, field)
                after[field] = value
                setattr(company, field, value)

        if after:
            self.audit_log_service.record(
                action=AuditAction.company_updated,
                entity_type="company",
                entity_id=company.id,
                user_id=operator_id,
                tenant_id=company.id,
                details={"before": before, "after": after},
            )
        return company

    def get_company_admin(self, company_id: str) -> User:
        admin = (
            self.db.query(User)
            .filter(User.company_id == company_id, User.role == UserRole.admin)
            .order_by(User.created_at)
            .first()
        )
        if not admin:
            raise NotFoundError("Company admin", company_id)
        return admin

    def change_admin_password(self, *, company_id: str, new_password: str, operator_id: str) -> User:
        '''
        Console manager resets the password of the company's first admin.
        The admin has to choose a new one on next login.
        '''
        self.get_company(company_id)
        admin = self.get_company_admin(company_id)
        self.user_service.reset_password(
            user=admin,
            new_password=new_password,
            operator_id=operator_id,
            action=AuditAction.company_admin_password_changed,
        )
        return admin

    def populate_industry(self, *, company: Company, industry: str, operator_id: str) -> Dict[str, int]:
        '''
        Seed line items and materials from an industry template.
        Names already present in the tenant's catalogue are skipped.

        :return: {"line_items_created": n, "materials_created": m}
        '''
        try:
            template = industry_templates.get_template(industry)
        except KeyError:
            raise InputError(f"Unknown industry '{industry}'", details={"field": "industry"})

        existing_line_items = {
            name.lower() for (name,) in
            self.db.query(LineItem.name).filter(LineItem.tenant_id == company.id).all()
        }
        existing_materials = {
            name.lower() for (name,) in
            self.db.query(Material.name).filter(Material.tenant_id == company.id).all()
        }

        line_items_created = 0
        for item in template["line_items"]:
            if item["name"].lower() in existing_line_items:
                continue
            self.db.add(LineItem(id=str(uuid4()), tenant_id=company.id, **item))
            line_items_created += 1

        materials_created = 0
        for material in template["materials"]:
            if material["name"].lower() in existing_materials:
                continue
            self.db.add(Material(id=str(uuid4()), tenant_id=company.id, **material))
            materials_created += 1

        company.industry = industry
        self.db.flush()

        result = {"line_items_created": line_items_created, "materials_created": materials_created}
        self.audit_log_service.record(
            action=AuditAction.company_industry_populated,
            entity_type="company",
            entity_id=company.id,
            user_id=operator_id,
            tenant_id=company.id,
            details={"industry": industry, **result},
        )
        logger.info(f"Company {company.id} seeded from '{industry}' template: {result}")
        return result
