"""
Module ORM Registry (``backoffice_modules._orm_registry``).

Responsibility
--------------
Ensure all module-level SQLAlchemy ORM models are imported so that
``Base.metadata`` contains their table definitions before
``backoffice_kernel.db.engine.create_tables()`` runs ``create_all``.

Architecture position
---------------------
**Modules layer** -- utility.  Imported lazily by the kernel's
``create_tables()``; MUST NOT be imported at kernel module import time.
"""


def import_all_orm_models() -> None:
    """Import kernel models and every ``backoffice_modules.*.orm`` module.

    Kernel tables (business units, departments, users, audit log, sequence
    counters) are registered first; module tables reference them by FK.

    This function is idempotent -- repeated calls are harmless.
    """
    import backoffice_kernel.models  # noqa: F401
    # fmt: off
    import backoffice_modules.assets.orm  # noqa: F401
    import backoffice_modules.depreciation.orm  # noqa: F401
    import backoffice_modules.leave.orm  # noqa: F401
    import backoffice_modules.material_requests.orm  # noqa: F401
    import backoffice_modules.organization.orm  # noqa: F401
    # fmt: on
