"""
Organization Module Service (``backoffice_modules.organization.service``).

Responsibility
--------------
``DepartmentService`` administers departments, their managers and their
material-request approvers.  ``UserAdminService`` administers users:
creation with bcrypt-hashed passwords, updates, deactivation, password
changes and approver lookups.

Invariants enforced
-------------------
* Department name is unique within a business unit.
* A department with members cannot be deleted.
* A department manager holds MANAGER, HR or ADMIN.
* (department, user, approver type) is unique.
* Employee ID and email are unique; passwords meet the minimum length.
* Users cannot delete themselves.

Failure modes
-------------
* ``DuplicateDepartmentError``, ``DepartmentHasMembersError``,
  ``InvalidManagerRoleError``, ``DuplicateEmployeeIdError``,
  ``DuplicateEmailError``, ``SelfDeletionError``,
  ``PasswordMismatchError``, ``ValidationError``,
  ``EntityNotFoundError``, ``PermissionDeniedError``.
"""

from __future__ import annotations

from typing import Sequence
from uuid import UUID

from sqlalchemy import func, or_, select
from sqlalchemy.orm import Session

from backoffice_config.schema import AccessSettings
from backoffice_kernel.domain.access import (
    Actor,
    UserRole,
    require_business_unit_access,
    require_role,
)
from backoffice_kernel.domain.clock import Clock, SystemClock
from backoffice_kernel.domain.pagination import Page
from backoffice_kernel.exceptions import (
    DepartmentHasMembersError,
    DuplicateDepartmentError,
    DuplicateEmailError,
    DuplicateEmployeeIdError,
    EntityNotFoundError,
    InvalidManagerRoleError,
    PasswordMismatchError,
    SelfDeletionError,
    ValidationError,
)
from backoffice_kernel.logging_config import get_logger
from backoffice_kernel.models.audit_log import AuditAction
from backoffice_kernel.models.organization import BusinessUnit, Department, User
from backoffice_kernel.services.audit_service import AuditService
from backoffice_modules.organization.models import (
    MANAGER_ROLES,
    ApproverType,
    DepartmentData,
    UserData,
    UserUpdateData,
)
from backoffice_modules.organization.orm import DepartmentApproverModel
from backoffice_modules.organization.passwords import hash_password, verify_password

logger = get_logger("modules.organization.service")

DEPARTMENT_ADMIN_ROLES = (UserRole.ADMIN, UserRole.HR)
USER_ADMIN_ROLES = (UserRole.ADMIN, UserRole.HR)


# =============================================================================
# Departments
# =============================================================================

class DepartmentService:
    """Departments, managers and department approvers.  Flushes; never commits."""

    def __init__(self, session: Session, clock: Clock | None = None):
        self._session = session
        self._clock = clock or SystemClock()
        self._audit = AuditService(session, self._clock)

    def _get(self, department_id: UUID) -> Department:
        department = self._session.get(Department, department_id)
        if department is None:
            raise EntityNotFoundError("Department", str(department_id))
        return department

    def _check_unique_name(
        self, business_unit_id: UUID, name: str, exclude_id: UUID | None = None,
    ) -> None:
        stmt = (
            select(Department.id)
            .where(Department.business_unit_id == business_unit_id)
            .where(func.lower(Department.name) == name.lower())
        )
        if exclude_id is not None:
            stmt = stmt.where(Department.id != exclude_id)
        if self._session.execute(stmt).first() is not None:
            raise DuplicateDepartmentError(name, str(business_unit_id))

    def create_department(self, actor: Actor, data: DepartmentData) -> Department:
        require_role(actor, "create_department", *DEPARTMENT_ADMIN_ROLES)
        name = data.name.strip()
        if not name:
            raise ValidationError("Department name is required", field="name")
        if self._session.get(BusinessUnit, data.business_unit_id) is None:
            raise EntityNotFoundError("BusinessUnit", str(data.business_unit_id))
        self._check_unique_name(data.business_unit_id, name)

        department = Department(
            business_unit_id=data.business_unit_id,
            code=(data.code or "").strip().upper() or None,
            name=name,
            description=data.description,
            is_active=data.is_active,
            created_by_id=actor.user_id,
        )
        self._session.add(department)
        self._session.flush()
        self._audit.record(
            "departments", department.id, AuditAction.CREATE, actor.user_id,
            new_values={"name": name, "code": department.code},
            business_unit_id=data.business_unit_id,
        )
        logger.info("department_created", extra={
            "department_id": str(department.id), "department_name": name,
        })
        return department

    def update_department(
        self, actor: Actor, department_id: UUID, data: DepartmentData,
    ) -> Department:
        require_role(actor, "update_department", *DEPARTMENT_ADMIN_ROLES)
        department = self._get(department_id)
        name = data.name.strip()
        if not name:
            raise ValidationError("Department name is required", field="name")
        self._check_unique_name(data.business_unit_id, name, exclude_id=department.id)

        old = {"name": department.name, "code": department.code, "is_active": department.is_active}
        department.business_unit_id = data.business_unit_id
        department.name = name
        department.code = (data.code or "").strip().upper() or None
        department.description = data.description
        department.is_active = data.is_active
        department.updated_by_id = actor.user_id
        self._session.flush()
        self._audit.record(
            "departments", department.id, AuditAction.UPDATE, actor.user_id,
            old_values=old,
            new_values={"name": name, "code": department.code, "is_active": data.is_active},
            business_unit_id=department.business_unit_id,
        )
        return department

    def delete_department(self, actor: Actor, department_id: UUID) -> None:
        require_role(actor, "delete_department", *DEPARTMENT_ADMIN_ROLES)
        department = self._get(department_id)
        members = self._session.execute(
            select(func.count(User.id)).where(User.department_id == department.id)
        ).scalar_one()
        if members:
            raise DepartmentHasMembersError(str(department.id), members)

        for approver in self._approvers_of(department.id):
            self._session.delete(approver)
        self._audit.record(
            "departments", department.id, AuditAction.DELETE, actor.user_id,
            old_values={"name": department.name},
            business_unit_id=department.business_unit_id,
        )
        self._session.delete(department)
        self._session.flush()
        logger.info("department_deleted", extra={"department_id": str(department_id)})

    def assign_manager(
        self, actor: Actor, department_id: UUID, manager_id: UUID | None,
    ) -> Department:
        """Set (or clear with ``None``) the department manager."""
        require_role(actor, "assign_department_manager", *DEPARTMENT_ADMIN_ROLES)
        department = self._get(department_id)
        if manager_id is not None:
            manager = self._session.get(User, manager_id)
            if manager is None or not manager.is_active:
                raise EntityNotFoundError("User", str(manager_id))
            if UserRole(manager.role) not in MANAGER_ROLES:
                raise InvalidManagerRoleError(str(manager.id), manager.role)
        department.manager_id = manager_id
        department.updated_by_id = actor.user_id
        self._session.flush()
        logger.info("department_manager_assigned", extra={
            "department_id": str(department.id),
            "manager_id": str(manager_id) if manager_id else None,
        })
        return department

    def list_departments(
        self, actor: Actor, business_unit_id: UUID, include_inactive: bool = False,
    ) -> list[Department]:
        require_business_unit_access(actor, business_unit_id)
        stmt = (
            select(Department)
            .where(Department.business_unit_id == business_unit_id)
            .order_by(Department.name)
        )
        if not include_inactive:
            stmt = stmt.where(Department.is_active.is_(True))
        return list(self._session.execute(stmt).scalars())

    # -------------------------------------------------------------------------
    # Department approvers
    # -------------------------------------------------------------------------

    def _approvers_of(self, department_id: UUID) -> list[DepartmentApproverModel]:
        return list(self._session.execute(
            select(DepartmentApproverModel)
            .where(DepartmentApproverModel.department_id == department_id)
        ).scalars())

    def _get_approver(self, approver_id: UUID) -> DepartmentApproverModel:
        approver = self._session.get(DepartmentApproverModel, approver_id)
        if approver is None:
            raise EntityNotFoundError("DepartmentApprover", str(approver_id))
        return approver

    def _find_approver(
        self, department_id: UUID, user_id: UUID, approver_type: ApproverType,
    ) -> DepartmentApproverModel | None:
        return self._session.execute(
            select(DepartmentApproverModel)
            .where(DepartmentApproverModel.department_id == department_id)
            .where(DepartmentApproverModel.user_id == user_id)
            .where(DepartmentApproverModel.approver_type == approver_type.value)
        ).scalar_one_or_none()

    def create_department_approvers(
        self,
        actor: Actor,
        department_id: UUID,
        user_id: UUID,
        approver_types: Sequence[ApproverType],
    ) -> list[DepartmentApproverModel]:
        """Assign ``user_id`` for each type; types already assigned are skipped."""
        require_role(actor, "create_department_approver", *DEPARTMENT_ADMIN_ROLES)
        if not approver_types:
            raise ValidationError("At least one approver type is required", field="approver_types")
        self._get(department_id)
        user = self._session.get(User, user_id)
        if user is None or not user.is_active:
            raise EntityNotFoundError("User", str(user_id))

        created = []
        for approver_type in dict.fromkeys(approver_types):
            if self._find_approver(department_id, user_id, approver_type) is not None:
                logger.info("department_approver_exists", extra={
                    "department_id": str(department_id),
                    "user_id": str(user_id),
                    "approver_type": approver_type.value,
                })
                continue
            approver = DepartmentApproverModel(
                department_id=department_id,
                user_id=user_id,
                approver_type=approver_type.value,
                is_active=True,
                created_by_id=actor.user_id,
            )
            self._session.add(approver)
            created.append(approver)
        self._session.flush()
        logger.info("department_approvers_created", extra={
            "department_id": str(department_id), "created": len(created),
        })
        return created

    def update_department_approver(
        self,
        actor: Actor,
        approver_id: UUID,
        user_id: UUID | None = None,
        approver_type: ApproverType | None = None,
        is_active: bool | None = None,
    ) -> DepartmentApproverModel:
        require_role(actor, "update_department_approver", *DEPARTMENT_ADMIN_ROLES)
        approver = self._get_approver(approver_id)
        new_user = user_id or approver.user_id
        new_type = approver_type or ApproverType(approver.approver_type)
        clash = self._find_approver(approver.department_id, new_user, new_type)
        if clash is not None and clash.id != approver.id:
            raise ValidationError(
                "This employee already holds that approver type for the department",
                field="approver_type",
            )
        approver.user_id = new_user
        approver.approver_type = new_type.value
        if is_active is not None:
            approver.is_active = is_active
        approver.updated_by_id = actor.user_id
        self._session.flush()
        return approver

    def toggle_department_approver(
        self, actor: Actor, approver_id: UUID,
    ) -> DepartmentApproverModel:
        require_role(actor, "toggle_department_approver", *DEPARTMENT_ADMIN_ROLES)
        approver = self._get_approver(approver_id)
        approver.is_active = not approver.is_active
        approver.updated_by_id = actor.user_id
        self._session.flush()
        logger.info("department_approver_toggled", extra={
            "approver_id": str(approver.id), "is_active": approver.is_active,
        })
        return approver

    def delete_department_approver(self, actor: Actor, approver_id: UUID) -> None:
        require_role(actor, "delete_department_approver", *DEPARTMENT_ADMIN_ROLES)
        approver = self._get_approver(approver_id)
        self._session.delete(approver)
        self._session.flush()

    def get_department_approvers(
        self, department_id: UUID | None = None,
    ) -> list[DepartmentApproverModel]:
        stmt = (
            select(DepartmentApproverModel)
            .join(Department, DepartmentApproverModel.department_id == Department.id)
            .join(User, DepartmentApproverModel.user_id == User.id)
            .order_by(Department.name, DepartmentApproverModel.approver_type, User.name)
        )
        if department_id is not None:
            stmt = stmt.where(DepartmentApproverModel.department_id == department_id)
        return list(self._session.execute(stmt).scalars())


# =============================================================================
# Users
# =============================================================================

class UserAdminService:
    """User administration.  Flushes; never commits."""

    def __init__(
        self,
        session: Session,
        clock: Clock | None = None,
        settings: AccessSettings | None = None,
    ):
        self._session = session
        self._clock = clock or SystemClock()
        self._settings = settings or AccessSettings()
        self._audit = AuditService(session, self._clock)

    def _get(self, user_id: UUID) -> User:
        user = self._session.get(User, user_id)
        if user is None:
            raise EntityNotFoundError("User", str(user_id))
        return user

    def _check_password(self, password: str) -> None:
        if not password or len(password) < self._settings.min_password_length:
            raise ValidationError(
                f"Password must be at least {self._settings.min_password_length} characters",
                field="password",
            )

    def _check_unique(
        self, employee_id: str | None, email: str | None, exclude_id: UUID | None = None,
    ) -> None:
        if employee_id:
            stmt = select(User.id).where(User.employee_id == employee_id)
            if exclude_id is not None:
                stmt = stmt.where(User.id != exclude_id)
            if self._session.execute(stmt).first() is not None:
                raise DuplicateEmployeeIdError(employee_id)
        if email:
            stmt = select(User.id).where(func.lower(User.email) == email.lower())
            if exclude_id is not None:
                stmt = stmt.where(User.id != exclude_id)
            if self._session.execute(stmt).first() is not None:
                raise DuplicateEmailError(email)

    def create_user(self, actor: Actor, data: UserData) -> User:
        require_role(actor, "create_user", *USER_ADMIN_ROLES)
        employee_id = data.employee_id.strip()
        if not employee_id:
            raise ValidationError("Employee ID is required", field="employee_id")
        if not data.name.strip():
            raise ValidationError("Name is required", field="name")
        self._check_password(data.password)
        email = (data.email or "").strip() or None
        self._check_unique(employee_id, email)
        if self._session.get(BusinessUnit, data.business_unit_id) is None:
            raise EntityNotFoundError("BusinessUnit", str(data.business_unit_id))

        user = User(
            employee_id=employee_id,
            name=data.name.strip(),
            email=email,
            password_hash=hash_password(data.password, self._settings.bcrypt_rounds),
            role=data.role.value,
            business_unit_id=data.business_unit_id,
            department_id=data.department_id,
            approver_id=data.approver_id,
            position=data.position,
            classification=data.classification,
            is_acctg=data.is_acctg,
            is_purchaser=data.is_purchaser,
            is_treasury=data.is_treasury,
            created_by_id=actor.user_id,
        )
        self._session.add(user)
        self._session.flush()
        self._audit.record(
            "users", user.id, AuditAction.CREATE, actor.user_id,
            new_values={"employee_id": employee_id, "role": data.role.value},
            business_unit_id=data.business_unit_id,
        )
        logger.info("user_created", extra={
            "user_id": str(user.id), "employee_id": employee_id, "role": data.role.value,
        })
        return user

    def update_user(self, actor: Actor, user_id: UUID, data: UserUpdateData) -> User:
        require_role(actor, "update_user", *USER_ADMIN_ROLES)
        user = self._get(user_id)
        employee_id = data.employee_id.strip() if data.employee_id else None
        email = data.email.strip() if data.email else None
        self._check_unique(
            employee_id if employee_id != user.employee_id else None,
            email if email != user.email else None,
            exclude_id=user.id,
        )

        changes = {}
        for attr in (
            "name", "business_unit_id", "department_id", "approver_id", "position",
            "classification", "is_active", "is_acctg", "is_purchaser", "is_treasury",
        ):
            value = getattr(data, attr)
            if value is not None and value != getattr(user, attr):
                changes[attr] = value
                setattr(user, attr, value)
        if employee_id and employee_id != user.employee_id:
            changes["employee_id"] = user.employee_id = employee_id
        if email and email != user.email:
            changes["email"] = user.email = email
        if data.role is not None and data.role.value != user.role:
            changes["role"] = user.role = data.role.value
        if data.password:
            self._check_password(data.password)
            user.password_hash = hash_password(data.password, self._settings.bcrypt_rounds)
            changes["password"] = "***"
        user.updated_by_id = actor.user_id
        self._session.flush()

        self._audit.record(
            "users", user.id, AuditAction.UPDATE, actor.user_id,
            new_values=changes, business_unit_id=user.business_unit_id,
        )
        logger.info("user_updated", extra={
            "user_id": str(user.id), "changed_fields": sorted(changes),
        })
        return user

    def delete_user(self, actor: Actor, user_id: UUID) -> User:
        """Deactivate a user; the row stays for the records that reference it."""
        require_role(actor, "delete_user", UserRole.ADMIN)
        if user_id == actor.user_id:
            raise SelfDeletionError(str(user_id))
        user = self._get(user_id)
        user.is_active = False
        user.updated_by_id = actor.user_id
        self._session.flush()
        self._audit.record(
            "users", user.id, AuditAction.DELETE, actor.user_id,
            old_values={"employee_id": user.employee_id, "is_active": True},
            business_unit_id=user.business_unit_id,
        )
        logger.info("user_deactivated", extra={"user_id": str(user.id)})
        return user

    def change_password(
        self, actor: Actor, current_password: str, new_password: str,
    ) -> None:
        """The actor changes their own password."""
        user = self._get(actor.user_id)
        if not verify_password(current_password, user.password_hash):
            raise PasswordMismatchError(str(user.id))
        self._check_password(new_password)
        user.password_hash = hash_password(new_password, self._settings.bcrypt_rounds)
        user.updated_by_id = actor.user_id
        self._session.flush()
        logger.info("password_changed", extra={"user_id": str(user.id)})

    def list_users(
        self,
        actor: Actor,
        business_unit_id: UUID | None = None,
        search: str | None = None,
        role: UserRole | None = None,
        include_inactive: bool = False,
        page: int = 1,
        page_size: int = 20,
    ) -> Page[User]:
        require_role(actor, "list_users", *USER_ADMIN_ROLES, UserRole.MANAGER)
        stmt = select(User)
        if business_unit_id is not None:
            require_business_unit_access(actor, business_unit_id)
            stmt = stmt.where(User.business_unit_id == business_unit_id)
        if not include_inactive:
            stmt = stmt.where(User.is_active.is_(True))
        if role is not None:
            stmt = stmt.where(User.role == role.value)
        if search and search.strip():
            pattern = f"%{search.strip()}%"
            stmt = stmt.where(or_(
                User.name.ilike(pattern),
                User.employee_id.ilike(pattern),
                User.email.ilike(pattern),
            ))

        page = max(1, page)
        total = self._session.execute(
            select(func.count()).select_from(stmt.subquery())
        ).scalar_one()
        rows = self._session.execute(
            stmt.order_by(User.name).offset((page - 1) * page_size).limit(page_size)
        ).scalars().all()
        return Page(items=tuple(rows), total_count=total, page=page, page_size=page_size)

    def _approvers(self, department_id: UUID, approver_type: ApproverType) -> list[User]:
        return list(self._session.execute(
            select(User)
            .join(DepartmentApproverModel, DepartmentApproverModel.user_id == User.id)
            .where(DepartmentApproverModel.department_id == department_id)
            .where(DepartmentApproverModel.approver_type == approver_type.value)
            .where(DepartmentApproverModel.is_active.is_(True))
            .where(User.is_active.is_(True))
            .order_by(User.name)
        ).scalars())

    def get_recommending_approvers(self, department_id: UUID) -> list[User]:
        return self._approvers(department_id, ApproverType.RECOMMENDING)

    def get_final_approvers(self, department_id: UUID) -> list[User]:
        return self._approvers(department_id, ApproverType.FINAL)
