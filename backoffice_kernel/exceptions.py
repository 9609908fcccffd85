"""
Typed Exception Hierarchy for the back-office services.

===============================================================================
CONVENTIONS
===============================================================================

1. Every error has a TYPED exception class (catch by type, not message).
2. Every exception has a ``code`` class attribute (machine-readable,
   safe to hand to an API or UI toast).
3. Exceptions carry structured DATA as attributes, never only a message.

    try:
        service.approve_request(actor, request_id)
    except NotAssignedApproverError as e:
        return {"error": e.code, "stage": e.stage}

===============================================================================
EXCEPTION HIERARCHY
===============================================================================

    BackOfficeError (base)
    |
    +-- ValidationError
    +-- EntityNotFoundError
    +-- ConfigurationError
    |
    +-- AuthorizationError
    |   +-- PermissionDeniedError
    |   +-- BusinessUnitAccessError
    |   +-- NotRequestOwnerError
    |   +-- NotAssignedApproverError
    |
    +-- WorkflowError
    |   +-- InvalidTransitionError
    |   +-- GuardNotSatisfiedError
    |
    +-- MaterialRequestError
    |   +-- MissingApproverError
    |   +-- RequestNotEditableError
    |   +-- OverServedQuantityError
    |
    +-- AssetError
    |   +-- DuplicateItemCodeError
    |   +-- AssetNotAvailableError
    |   +-- AssetAlreadyDeployedError
    |   +-- NoActiveDeploymentError
    |   +-- AssetNotDisposableError
    |
    +-- DepreciationError
    |   +-- DepreciationWindowClosedError
    |   +-- DepreciationNotConfiguredError
    |   +-- AssetFullyDepreciatedError
    |   +-- AssetAtSalvageValueError
    |
    +-- LeaveError
    |   +-- DuplicateLeaveBalanceError
    |   +-- AllocationBelowUsedError
    |   +-- BalancesAlreadyExistError
    |   +-- ExcessCarryOverNotAcknowledgedError
    |
    +-- OrganizationError
        +-- DuplicateDepartmentError
        +-- DepartmentHasMembersError
        +-- InvalidManagerRoleError
        +-- DuplicateEmployeeIdError
        +-- DuplicateEmailError
        +-- SelfDeletionError
        +-- PasswordMismatchError

===============================================================================
"""


class BackOfficeError(Exception):
    """
    Base exception for all back-office errors.

    All subclasses must have a ``code`` class attribute.
    """

    code: str = "BACKOFFICE_ERROR"


class ValidationError(BackOfficeError):
    """Input failed field validation."""

    code: str = "VALIDATION_ERROR"

    def __init__(self, message: str, field: str | None = None):
        self.field = field
        super().__init__(message if field is None else f"{field}: {message}")


class EntityNotFoundError(BackOfficeError):
    """Entity with given ID does not exist."""

    code: str = "ENTITY_NOT_FOUND"

    def __init__(self, entity_type: str, entity_id: str):
        self.entity_type = entity_type
        self.entity_id = entity_id
        super().__init__(f"{entity_type} not found: {entity_id}")


class ConfigurationError(BackOfficeError):
    """Settings file is missing required values or is malformed."""

    code: str = "CONFIGURATION_ERROR"

    def __init__(self, detail: str):
        self.detail = detail
        super().__init__(f"Invalid configuration: {detail}")


# Authorization


class AuthorizationError(BackOfficeError):
    """Base exception for authorization failures."""

    code: str = "AUTHORIZATION_ERROR"


class PermissionDeniedError(AuthorizationError):
    """Actor's role or flags do not allow the operation."""

    code: str = "PERMISSION_DENIED"

    def __init__(self, actor_id: str, operation: str, required: tuple[str, ...] = ()):
        self.actor_id = actor_id
        self.operation = operation
        self.required = required
        detail = f" (requires one of: {', '.join(required)})" if required else ""
        super().__init__(f"Actor {actor_id} may not {operation}{detail}")


class BusinessUnitAccessError(AuthorizationError):
    """Actor has no access to the business unit."""

    code: str = "BUSINESS_UNIT_ACCESS_DENIED"

    def __init__(self, actor_id: str, business_unit_id: str):
        self.actor_id = actor_id
        self.business_unit_id = business_unit_id
        super().__init__(
            f"Actor {actor_id} has no access to business unit {business_unit_id}"
        )


class NotRequestOwnerError(AuthorizationError):
    """Only the requester may perform this operation."""

    code: str = "NOT_REQUEST_OWNER"

    def __init__(self, document_id: str, actor_id: str):
        self.document_id = document_id
        self.actor_id = actor_id
        super().__init__(f"Actor {actor_id} is not the requester of {document_id}")


class NotAssignedApproverError(AuthorizationError):
    """Actor is not the approver for the document's current stage."""

    code: str = "NOT_ASSIGNED_APPROVER"

    def __init__(self, document_id: str, actor_id: str, stage: str):
        self.document_id = document_id
        self.actor_id = actor_id
        self.stage = stage
        super().__init__(
            f"Actor {actor_id} is not authorized to act on {document_id} "
            f"at stage {stage}"
        )


# Workflow


class WorkflowError(BackOfficeError):
    """Base exception for state machine errors."""

    code: str = "WORKFLOW_ERROR"


class InvalidTransitionError(WorkflowError):
    """No transition exists for the action from the current state."""

    code: str = "INVALID_TRANSITION"

    def __init__(self, workflow: str, from_state: str, action: str):
        self.workflow = workflow
        self.from_state = from_state
        self.action = action
        super().__init__(
            f"No transition from '{from_state}' via action '{action}' "
            f"in workflow '{workflow}'"
        )


class GuardNotSatisfiedError(WorkflowError):
    """Transition exists but its guard rejected the context."""

    code: str = "GUARD_NOT_SATISFIED"

    def __init__(self, workflow: str, action: str, guard: str):
        self.workflow = workflow
        self.action = action
        self.guard = guard
        super().__init__(
            f"Guard '{guard}' not satisfied for '{action}' in workflow '{workflow}'"
        )


# Material requests


class MaterialRequestError(BackOfficeError):
    """Base exception for material-request errors."""

    code: str = "MATERIAL_REQUEST_ERROR"


class MissingApproverError(MaterialRequestError):
    """Request cannot be submitted without a recommending or final approver."""

    code: str = "MISSING_APPROVER"

    def __init__(self, document_id: str):
        self.document_id = document_id
        super().__init__(
            f"Request {document_id} needs a recommending or final approver"
        )


class RequestNotEditableError(MaterialRequestError):
    """Request content cannot change in its current status."""

    code: str = "REQUEST_NOT_EDITABLE"

    def __init__(self, document_id: str, status: str):
        self.document_id = document_id
        self.status = status
        super().__init__(f"Request {document_id} cannot be edited in status {status}")


class OverServedQuantityError(MaterialRequestError):
    """Served quantity would exceed the requested quantity."""

    code: str = "OVER_SERVED_QUANTITY"

    def __init__(self, item_id: str, requested: str, served: str):
        self.item_id = item_id
        self.requested = requested
        self.served = served
        super().__init__(
            f"Item {item_id}: served {served} exceeds requested {requested}"
        )


# Assets


class AssetError(BackOfficeError):
    """Base exception for asset lifecycle errors."""

    code: str = "ASSET_ERROR"


class DuplicateItemCodeError(AssetError):
    """Item code already used in the business unit."""

    code: str = "DUPLICATE_ITEM_CODE"

    def __init__(self, item_code: str, business_unit_id: str):
        self.item_code = item_code
        self.business_unit_id = business_unit_id
        super().__init__(
            f"Item code {item_code} already exists in business unit {business_unit_id}"
        )


class AssetNotAvailableError(AssetError):
    """Asset status does not allow the operation."""

    code: str = "ASSET_NOT_AVAILABLE"

    def __init__(self, asset_id: str, status: str):
        self.asset_id = asset_id
        self.status = status
        super().__init__(f"Asset {asset_id} is not available (status {status})")


class AssetAlreadyDeployedError(AssetError):
    """Asset has an active deployment."""

    code: str = "ASSET_ALREADY_DEPLOYED"

    def __init__(self, asset_id: str):
        self.asset_id = asset_id
        super().__init__(f"Asset {asset_id} already has an active deployment")


class NoActiveDeploymentError(AssetError):
    """Asset has no deployment to return or transfer."""

    code: str = "NO_ACTIVE_DEPLOYMENT"

    def __init__(self, asset_id: str):
        self.asset_id = asset_id
        super().__init__(f"Asset {asset_id} has no active deployment")


class AssetNotDisposableError(AssetError):
    """Asset status or deployment prevents disposal or retirement."""

    code: str = "ASSET_NOT_DISPOSABLE"

    def __init__(self, asset_id: str, reason: str):
        self.asset_id = asset_id
        self.reason = reason
        super().__init__(f"Asset {asset_id} cannot be disposed: {reason}")


# Depreciation


class DepreciationError(BackOfficeError):
    """Base exception for depreciation errors."""

    code: str = "DEPRECIATION_ERROR"


class DepreciationWindowClosedError(DepreciationError):
    """Batch calculation attempted outside the end-of-month window."""

    code: str = "DEPRECIATION_WINDOW_CLOSED"

    def __init__(self, calculation_date: str):
        self.calculation_date = calculation_date
        super().__init__(
            f"Depreciation can only be calculated at end of month, not {calculation_date}"
        )


class DepreciationNotConfiguredError(DepreciationError):
    """Asset lacks the fields needed to depreciate."""

    code: str = "DEPRECIATION_NOT_CONFIGURED"

    def __init__(self, asset_id: str, missing: str):
        self.asset_id = asset_id
        self.missing = missing
        super().__init__(f"Asset {asset_id} has no {missing}")


class AssetFullyDepreciatedError(DepreciationError):
    """Asset is already fully depreciated."""

    code: str = "ASSET_FULLY_DEPRECIATED"

    def __init__(self, asset_id: str):
        self.asset_id = asset_id
        super().__init__(f"Asset {asset_id} is already fully depreciated")


class DepreciationAlreadyCalculatedError(DepreciationError):
    """The calculation month is already covered by an earlier depreciation."""

    code: str = "DEPRECIATION_ALREADY_CALCULATED"

    def __init__(self, asset_id: str, last_depreciation_date: str, calculation_date: str):
        self.asset_id = asset_id
        self.last_depreciation_date = last_depreciation_date
        self.calculation_date = calculation_date
        super().__init__(
            f"Asset {asset_id} was already depreciated on {last_depreciation_date}; "
            f"nothing left to calculate for {calculation_date}"
        )


class AssetAtSalvageValueError(DepreciationError):
    """Book value has reached the salvage floor."""

    code: str = "ASSET_AT_SALVAGE_VALUE"

    def __init__(self, asset_id: str, book_value: str, salvage_value: str):
        self.asset_id = asset_id
        self.book_value = book_value
        self.salvage_value = salvage_value
        super().__init__(
            f"Asset {asset_id} book value {book_value} is at salvage value {salvage_value}"
        )


# Leave


class LeaveError(BackOfficeError):
    """Base exception for leave-balance errors."""

    code: str = "LEAVE_ERROR"


class DuplicateLeaveBalanceError(LeaveError):
    """A balance already exists for (user, leave type, year)."""

    code: str = "DUPLICATE_LEAVE_BALANCE"

    def __init__(self, user_id: str, leave_type_id: str, year: int):
        self.user_id = user_id
        self.leave_type_id = leave_type_id
        self.year = year
        super().__init__(
            f"Leave balance already exists for user {user_id}, "
            f"type {leave_type_id}, year {year}"
        )


class AllocationBelowUsedError(LeaveError):
    """Allocated days cannot drop below days already used."""

    code: str = "ALLOCATION_BELOW_USED"

    def __init__(self, balance_id: str, allocated: str, used: str):
        self.balance_id = balance_id
        self.allocated = allocated
        self.used = used
        super().__init__(
            f"Balance {balance_id}: allocation {allocated} is below used days {used}"
        )


class BalancesAlreadyExistError(LeaveError):
    """Replenishment target year already has balances."""

    code: str = "BALANCES_ALREADY_EXIST"

    def __init__(self, year: int, count: int):
        self.year = year
        self.count = count
        super().__init__(f"{count} leave balance(s) already exist for {year}")


class ExcessCarryOverNotAcknowledgedError(LeaveError):
    """Carry-over above the limit requires explicit acknowledgement."""

    code: str = "EXCESS_CARRY_OVER_NOT_ACKNOWLEDGED"

    def __init__(self, year: int, limit: str, employee_ids: list[str]):
        self.year = year
        self.limit = limit
        self.employee_ids = employee_ids
        super().__init__(
            f"{len(employee_ids)} employee(s) carry over more than {limit} days "
            f"into {year}; acknowledgement required"
        )


class InsufficientLeaveBalanceError(LeaveError):
    """Approved days exceed what is left on the balance."""

    code: str = "INSUFFICIENT_LEAVE_BALANCE"

    def __init__(self, request_id: str, requested: str, remaining: str):
        self.request_id = request_id
        self.requested = requested
        self.remaining = remaining
        super().__init__(
            f"Leave request {request_id} needs {requested} day(s) but only "
            f"{remaining} remain"
        )


# Organization


class OrganizationError(BackOfficeError):
    """Base exception for department and user administration errors."""

    code: str = "ORGANIZATION_ERROR"


class DuplicateDepartmentError(OrganizationError):
    """Department name already exists in the business unit."""

    code: str = "DUPLICATE_DEPARTMENT"

    def __init__(self, department_name: str, business_unit_id: str):
        self.department_name = department_name
        self.business_unit_id = business_unit_id
        super().__init__(
            f"Department '{department_name}' already exists in business unit {business_unit_id}"
        )


class DepartmentHasMembersError(OrganizationError):
    """Department cannot be deleted while users belong to it."""

    code: str = "DEPARTMENT_HAS_MEMBERS"

    def __init__(self, department_id: str, member_count: int):
        self.department_id = department_id
        self.member_count = member_count
        super().__init__(
            f"Department {department_id} still has {member_count} member(s)"
        )


class InvalidManagerRoleError(OrganizationError):
    """Department manager must hold MANAGER, HR or ADMIN."""

    code: str = "INVALID_MANAGER_ROLE"

    def __init__(self, user_id: str, role: str):
        self.user_id = user_id
        self.role = role
        super().__init__(f"User {user_id} with role {role} cannot manage a department")


class DuplicateEmployeeIdError(OrganizationError):
    """Employee ID already taken."""

    code: str = "DUPLICATE_EMPLOYEE_ID"

    def __init__(self, employee_id: str):
        self.employee_id = employee_id
        super().__init__(f"Employee ID is already taken: {employee_id}")


class DuplicateEmailError(OrganizationError):
    """Email already taken."""

    code: str = "DUPLICATE_EMAIL"

    def __init__(self, email: str):
        self.email = email
        super().__init__(f"Email is already taken: {email}")


class SelfDeletionError(OrganizationError):
    """Users cannot delete their own account."""

    code: str = "SELF_DELETION"

    def __init__(self, user_id: str):
        self.user_id = user_id
        super().__init__("You cannot delete your own account")


class PasswordMismatchError(OrganizationError):
    """Current password did not verify."""

    code: str = "PASSWORD_MISMATCH"

    def __init__(self, user_id: str):
        self.user_id = user_id
        super().__init__(f"Current password is incorrect for user {user_id}")
