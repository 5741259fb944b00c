"""
Permission codes and role mappings.

Permissions are static per role: the app has three fixed roles and no
per-tenant role editing. decorators.require_permission checks these sets.

DESIGN PRINCIPLES:
- Permissions are granular (one action per permission)
- Workers get only what the point of sale and their own dashboard need
- Developer has the admin set and may hold a session without an organization
"""

class PermissionCategory:
    """Permission categories for organization."""
    CATALOG = "CATALOG"
    SALES = "SALES"
    PAYROLL = "PAYROLL"
    EXPENSES = "EXPENSES"
    USERS = "USERS"
    REPORTS = "REPORTS"


# Each permission is defined as: (code, name, description, category)
PERMISSION_DEFINITIONS = [
    ("VIEW_CATALOG", "View Catalog", "View shops and products", PermissionCategory.CATALOG),
    ("MANAGE_CATALOG", "Manage Catalog", "Create and edit shops and products", PermissionCategory.CATALOG),

    ("CREATE_SALE", "Create Sale", "Submit a checkout at the point of sale", PermissionCategory.SALES),
    ("VIEW_OWN_SALES", "View Own Sales", "View sales recorded by the current worker", PermissionCategory.SALES),
    ("VIEW_ALL_SALES", "View All Sales", "View every sale in the organization", PermissionCategory.SALES),

    ("VIEW_OWN_EARNINGS", "View Own Earnings", "View the current worker's earnings summary", PermissionCategory.PAYROLL),
    ("VIEW_ALL_EARNINGS", "View All Earnings", "View earnings for every worker", PermissionCategory.PAYROLL),
    ("RECORD_SALARY_PAYMENT", "Record Salary Payment", "Record money paid to a worker", PermissionCategory.PAYROLL),

    ("SUBMIT_EXPENSE_REQUEST", "Submit Expense Request", "Ask for an expense to be approved", PermissionCategory.EXPENSES),
    ("DECIDE_EXPENSE_REQUEST", "Decide Expense Request", "Approve or reject expense requests", PermissionCategory.EXPENSES),
    ("VIEW_ALL_EXPENSE_REQUESTS", "View All Expense Requests", "View every expense request in the organization", PermissionCategory.EXPENSES),

    ("MANAGE_WORKERS", "Manage Workers", "Create and list worker accounts", PermissionCategory.USERS),

    ("VIEW_DASHBOARD", "View Dashboard", "View organization-wide reports", PermissionCategory.REPORTS),
]

PERMISSION_CODES = {code for code, _, _, _ in PERMISSION_DEFINITIONS}

_ADMIN_PERMISSIONS = {
    "VIEW_CATALOG",
    "MANAGE_CATALOG",
    "VIEW_ALL_SALES",
    "VIEW_ALL_EARNINGS",
    "RECORD_SALARY_PAYMENT",
    "DECIDE_EXPENSE_REQUEST",
    "VIEW_ALL_EXPENSE_REQUESTS",
    "MANAGE_WORKERS",
    "VIEW_DASHBOARD",
}

ROLE_PERMISSIONS = {
    "developer": set(_ADMIN_PERMISSIONS),
    "admin": set(_ADMIN_PERMISSIONS),
    "worker": {
        "VIEW_CATALOG",
        "CREATE_SALE",
        "VIEW_OWN_SALES",
        "VIEW_OWN_EARNINGS",
        "SUBMIT_EXPENSE_REQUEST",
    },
}


def permissions_for_role(role: str) -> set[str]:
    """Permission codes granted to a role; unknown roles get nothing."""
    return set(ROLE_PERMISSIONS.get(role, set()))
