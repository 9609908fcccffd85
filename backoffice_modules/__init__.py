"""
Back-Office Modules.

Domain services over the back-office kernel.  Each module contains:
- Domain models (the nouns: enums and frozen DTOs)
- ORM models (persistence)
- Workflows (state machines), where the module has a document lifecycle
- Pure helpers (calculations and validation)
- A service facade (validation, authorization, persistence)

Modules:
- material_requests: MR approval, serving, posting and receiving
- assets: Asset register, deployment, transfer, disposal, retirement
- depreciation: Depreciation runs, schedules and reports
- organization: Departments, department approvers, user administration
- leave: Leave types, leave balances, year-end replenishment
"""
