"""Domain models, data access layer and engine snapshot types."""

from .models import (
    Assignment,
    AvailabilityWindow,
    Base,
    Department,
    Employee,
    LeaveRequest,
    Role,
    RolePreference,
    ShiftTemplate,
)
from .repositories import (
    AssignmentRepository,
    DepartmentRepository,
    EmployeeRepository,
    LeaveRepository,
    RoleRepository,
)
from .types import (
    EmployeeProfile,
    ExistingAssignment,
    LeavePeriod,
    Placement,
    RoleProfile,
    ScheduleSnapshot,
    ShiftSlot,
    UnfilledSlot,
)

__all__ = [
    "Assignment",
    "AvailabilityWindow",
    "Base",
    "Department",
    "Employee",
    "LeaveRequest",
    "Role",
    "RolePreference",
    "ShiftTemplate",
    "AssignmentRepository",
    "DepartmentRepository",
    "EmployeeRepository",
    "LeaveRepository",
    "RoleRepository",
    "EmployeeProfile",
    "ExistingAssignment",
    "LeavePeriod",
    "Placement",
    "RoleProfile",
    "ScheduleSnapshot",
    "ShiftSlot",
    "UnfilledSlot",
]
