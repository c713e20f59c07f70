# sitebudget/services/user_service.py
from uuid import uuid4
from typing import List, Optional
from datetime import datetime, timedelta
import os
import bcrypt
from sqlalchemy import func
from sqlalchemy.orm import Session

from sitebudget.db.enums import AuditAction, UserRole, UserStatus
from sitebudget.errors import (
    AuthRequiredError,
    DuplicateError,
    InputError,
    NotFoundError,
    PermissionDeniedError,
)
from sitebudget.logger import get_logger
from sitebudget.models.user import User
from sitebudget.services.audit_log_service import AuditLogService

logger = get_logger(__name__)

MIN_PASSWORD_LENGTH = 8
MAX_FAILED_LOGINS = 5
LOCKOUT_MINUTES = 15
DEFAULT_BCRYPT_ROUNDS = 12


def _naive(moment: Optional[datetime]) -> Optional[datetime]:
    # sqlite returns naive datetimes even for timezone=True columns
    if moment is not None and moment.tzinfo is not None:
        return moment.replace(tzinfo=None)
    return moment


class UserService:
    """
    Users of a tenant.
    Provides:
    - registration (bcrypt hash, email unique per company)
    - authentication with lock-out
    - password change / reset
    - role and status maintenance
    """

    def __init__(self, db: Session, audit_log_service: AuditLogService):
        self.db = db
        self.audit_log_service = audit_log_service

    # ======================================================
    # 🔐 Internal helpers
    # ======================================================

    def _hash_password(self, password: str) -> str:
        '''Hash a password using bcrypt'''
        return bcrypt.hashpw(
            password.encode("utf-8"),
            bcrypt.gensalt(rounds=int(os.getenv("BCRYPT_ROUNDS", DEFAULT_BCRYPT_ROUNDS))),
        ).decode("utf-8")

    def _verify_password(self, password: str, password_hash: Optional[str]) -> bool:
        '''verify a password against its hash'''
        if not password_hash:
            return False
        return bcrypt.checkpw(
            password.encode("utf-8"),
            password_hash.encode("utf-8"),
        )

    def _check_password_rules(self, password: str) -> None:
        if not password or len(password) < MIN_PASSWORD_LENGTH:
            raise InputError(
                f"Password must be at least {MIN_PASSWORD_LENGTH} characters",
                details={"field": "password"},
            )

    # ======================================================
    # 👤 User CRUD
    # ======================================================

    def create_user(
        self,
        *,
        company_id: str,
        email: str,
        password: str,
        first_name: Optional[str] = None,
        last_name: Optional[str] = None,
        role: UserRole = UserRole.user,
        status: UserStatus = UserStatus.active,
        manager_id: Optional[str] = None,
        must_change_password: bool = True,
        operator_id: Optional[str] = None,
    ) -> User:
        """
        Register a new user inside one company.

        :param company_id: Owning tenant
        :type company_id: str
        :param email: Login email, unique per company regardless of case
        :type email: str
        :param password: Plaintext password, at least 8 characters
        :type password: str
        :param role: Role inside the tenant
        :type role: UserRole
        :param operator_id: Admin creating the user, None for bootstrap / company creation
        :type operator_id: Optional[str]
        """
        email = email.strip()
        if not email or "@" not in email:
            raise InputError("A valid email is required", details={"field": "email"})
        self._check_password_rules(password)

        # 1️⃣ email unique per company
        if self.get_user_by_email(email, company_id=company_id):
            raise DuplicateError(f"User with email '{email}' already exists", details={"field": "email"})

        # 2️⃣ create
        user = User(
            id=str(uuid4()),
            email=email,
            first_name=first_name,
            last_name=last_name,
            role=role,
            status=status,
            manager_id=manager_id,
            company_id=company_id,
            password_hash=self._hash_password(password),
            must_change_password=must_change_password,
            failed_login_count=0,
        )
        self.db.add(user)
        self.db.flush()

        self.audit_log_service.record(
            action=AuditAction.user_created,
            entity_type="user",
            entity_id=user.id,
            user_id=operator_id,
            tenant_id=company_id,
            details={"email": email, "role": role},
        )
        logger.info(f"User {user.id} ({role.value}) created in company {company_id}")
        return user

    def get_user_by_id(self, user_id: str) -> Optional[User]:
        return (
            self.db.query(User)
            .filter(User.id == user_id)
            .first()
        )

    def get_user_in_company(self, *, user_id: str, company_id: str) -> User:
        user = (
            self.db.query(User)
            .filter(User.id == user_id, User.company_id == company_id)
            .first()
        )
        if not user:
            raise NotFoundError("User", user_id)
        return user

    def get_user_by_email(self, email: str, *, company_id: Optional[str] = None) -> Optional[User]:
        query = self.db.query(User).filter(func.lower(User.email) == email.strip().lower())
        if company_id:
            query = query.filter(User.company_id == company_id)
        return query.first()

    def list_users(self, *, company_id: str, role: Optional[UserRole] = None) -> List[User]:
        query = self.db.query(User).filter(User.company_id == company_id)
        if role:
            query = query.filter(User.role == role)
        return query.order_by(User.created_at).all()

    # ======================================================
    # 🔑 Authentication
    # ======================================================

    def authenticate(
        self,
        *,
        email: str,
        password: str,
        company_id: Optional[str] = None,
    ) -> User:
        """
        Authenticate by email + password.
        Failures are audited and counted; the caller must commit even when this raises
        so the counter and the audit rows survive.

        :param company_id: Required only when the email exists in several companies
        :raises AuthRequiredError: unknown email or wrong password
        :raises PermissionDeniedError: account locked or inactive
        """
        query = self.db.query(User).filter(func.lower(User.email) == email.strip().lower())
        if company_id:
            query = query.filter(User.company_id == company_id)
        candidates = query.all()

        if len(candidates) > 1:
            raise InputError(
                "This email is registered with several companies, companyId is required",
                details={"field": "companyId"},
            )
        if not candidates:
            self.audit_log_service.record(
                action=AuditAction.login_failed_user_not_found,
                entity_type="user",
                entity_id="unknown",
                user_id=None,
                tenant_id=company_id,
                details={"email": email},
            )
            logger.warning(f"Login refused: unknown email {email}")
            raise AuthRequiredError("Invalid email or password")

        user = candidates[0]
        now = datetime.now()

        if user.locked_until and _naive(user.locked_until) > now:
            self._record_login(user, AuditAction.login_failed_account_locked)
            logger.warning(f"Login refused: user {user.id} locked until {user.locked_until}")
            raise PermissionDeniedError(
                "Account is temporarily locked after repeated failed logins",
                granted_by=[f"wait until {user.locked_until.isoformat()}"],
            )

        if user.status != UserStatus.active:
            self._record_login(user, AuditAction.login_failed_account_inactive)
            raise PermissionDeniedError("Account is not active", granted_by=["active account"])

        if not self._verify_password(password, user.password_hash):
            user.failed_login_count = (user.failed_login_count or 0) + 1
            if user.failed_login_count >= MAX_FAILED_LOGINS:
                user.locked_until = now + timedelta(minutes=LOCKOUT_MINUTES)
                user.failed_login_count = 0
                logger.warning(f"User {user.id} locked for {LOCKOUT_MINUTES} minutes")
            self._record_login(user, AuditAction.login_failed_invalid_password)
            raise AuthRequiredError("Invalid email or password")

        user.failed_login_count = 0
        user.locked_until = None
        self._record_login(user, AuditAction.login_successful)
        return user

    def _record_login(self, user: User, action: AuditAction) -> None:
        self.audit_log_service.record(
            action=action,
            entity_type="user",
            entity_id=user.id,
            user_id=user.id,
            tenant_id=user.company_id,
        )

    # ======================================================
    # 🔁 Account maintenance
    # ======================================================

    def change_password(
        self,
        *,
        user: User,
        current_password: str,
        new_password: str,
    ) -> None:
        """
        Self-service password change; clears must_change_password.
        """
        if not self._verify_password(current_password, user.password_hash):
            raise InputError("Current password is incorrect", details={"field": "currentPassword"})
        self._check_password_rules(new_password)
        user.password_hash = self._hash_password(new_password)
        user.must_change_password = False
        self.audit_log_service.record(
            action=AuditAction.password_changed,
            entity_type="user",
            entity_id=user.id,
            user_id=user.id,
            tenant_id=user.company_id,
        )

    def reset_password(
        self,
        *,
        user: User,
        new_password: str,
        operator_id: str,
        action: AuditAction = AuditAction.password_changed,
    ) -> None:
        """
        Reset by someone else; the user must pick a new password on next login.
        """
        self._check_password_rules(new_password)
        user.password_hash = self._hash_password(new_password)
        user.must_change_password = True
        user.failed_login_count = 0
        user.locked_until = None
        self.audit_log_service.record(
            action=action,
            entity_type="user",
            entity_id=user.id,
            user_id=operator_id,
            tenant_id=user.company_id,
        )

    def update_role(self, *, user: User, role: UserRole, operator_id: str) -> User:
        if role == UserRole.console_manager:
            raise PermissionDeniedError("console_manager can not be granted from a tenant", granted_by=[])
        before = user.role
        user.role = role
        self.audit_log_service.record_update(
            action=AuditAction.user_role_updated,
            entity_type="user",
            entity_id=user.id,
            changed_attribute="role",
            before_value=before,
            after_value=role,
            user_id=operator_id,
            tenant_id=user.company_id,
        )
        return user

    def update_status(self, *, user: User, status: UserStatus, operator_id: str) -> User:
        if user.id == operator_id and status != UserStatus.active:
            raise InputError("You can not deactivate your own account")
        before = user.status
        user.status = status
        self.audit_log_service.record_update(
            action=AuditAction.user_status_updated,
            entity_type="user",
            entity_id=user.id,
            changed_attribute="status",
            before_value=before,
            after_value=status,
            user_id=operator_id,
            tenant_id=user.company_id,
        )
        return user
