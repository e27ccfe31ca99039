"""I/O utilities for CSV import/export."""

from .export_csv import assignments_frame, export_assignments_csv, export_employees_csv
from .import_csv import (
    import_availability_csv,
    import_departments_csv,
    import_employees_csv,
    import_leave_csv,
    import_preferences_csv,
    import_roles_csv,
    import_templates_csv,
)

__all__ = [
    "import_departments_csv",
    "import_employees_csv",
    "import_roles_csv",
    "import_templates_csv",
    "import_availability_csv",
    "import_leave_csv",
    "import_preferences_csv",
    "assignments_frame",
    "export_assignments_csv",
    "export_employees_csv",
]
