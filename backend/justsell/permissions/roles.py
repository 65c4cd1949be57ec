# Overview: Static role -> permission table.

from .helpers import get_all_permission_codes

CASHIER_PERMISSIONS = frozenset({
    "CREATE_TRANSACTION",
    "VIEW_TRANSACTIONS",
    "VIEW_PRODUCTS",
    "CREATE_CUSTOMER",
    "VIEW_CUSTOMERS",
    "UPDATE_CUSTOMER",
    "VERIFY_AGE",
})

MANAGER_PERMISSIONS = CASHIER_PERMISSIONS | {
    "MANAGE_PRODUCTS",
    "DELETE_CUSTOMER",
    "VIEW_USERS",
    "VIEW_REPORTS",
    "MANAGE_COMPLIANCE",
    "OVERRIDE_AGE_VERIFICATION",
}

DEFAULT_ROLE_PERMISSIONS = {
    "CASHIER": CASHIER_PERMISSIONS,
    "MANAGER": MANAGER_PERMISSIONS,
    "ADMIN": frozenset(get_all_permission_codes()),
}
