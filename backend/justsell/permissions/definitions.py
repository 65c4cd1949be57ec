# Overview: All permission definitions organized by category.
# Each permission is defined as: (code, name, description, category)

from .categories import PermissionCategory


# -- TRANSACTIONS --

TRANSACTION_PERMISSIONS = [
    (
        "CREATE_TRANSACTION",
        "Create Transaction",
        "Check out carts and print receipts (POS access)",
        PermissionCategory.TRANSACTIONS,
    ),
    (
        "VIEW_TRANSACTIONS",
        "View Transactions",
        "View transactions and receipts",
        PermissionCategory.TRANSACTIONS,
    ),
]


# -- PRODUCTS --

PRODUCT_PERMISSIONS = [
    (
        "VIEW_PRODUCTS",
        "View Products",
        "View catalog and on-hand quantities",
        PermissionCategory.PRODUCTS,
    ),
    (
        "MANAGE_PRODUCTS",
        "Manage Products",
        "Create and edit products, adjust stock",
        PermissionCategory.PRODUCTS,
    ),
]


# -- CUSTOMERS --

CUSTOMER_PERMISSIONS = [
    (
        "VIEW_CUSTOMERS",
        "View Customers",
        "Search and view customers",
        PermissionCategory.CUSTOMERS,
    ),
    (
        "CREATE_CUSTOMER",
        "Create Customer",
        "Register new customers",
        PermissionCategory.CUSTOMERS,
    ),
    (
        "UPDATE_CUSTOMER",
        "Update Customer",
        "Edit customers and adjust loyalty points",
        PermissionCategory.CUSTOMERS,
    ),
    (
        "DELETE_CUSTOMER",
        "Deactivate Customer",
        "Deactivate customer records",
        PermissionCategory.CUSTOMERS,
    ),
]


# -- COMPLIANCE --

COMPLIANCE_PERMISSIONS = [
    (
        "VERIFY_AGE",
        "Verify Age",
        "Record ID checks for age-restricted sales",
        PermissionCategory.COMPLIANCE,
    ),
    (
        "OVERRIDE_AGE_VERIFICATION",
        "Override Age Verification",
        "Approve a denied 18-20 age verification (manager override)",
        PermissionCategory.COMPLIANCE,
    ),
    (
        "MANAGE_COMPLIANCE",
        "Manage Compliance",
        "View verification history and compliance reports",
        PermissionCategory.COMPLIANCE,
    ),
]


# -- USERS --

USER_PERMISSIONS = [
    (
        "VIEW_USERS",
        "View Users",
        "View employee accounts",
        PermissionCategory.USERS,
    ),
    (
        "MANAGE_USERS",
        "Manage Users",
        "Create, edit and deactivate employee accounts",
        PermissionCategory.USERS,
    ),
]


# -- SYSTEM --

SYSTEM_PERMISSIONS = [
    (
        "VIEW_REPORTS",
        "View Reports",
        "View sales reports",
        PermissionCategory.SYSTEM,
    ),
    (
        "MANAGE_STORES",
        "Manage Stores",
        "Edit store details and tax rates",
        PermissionCategory.SYSTEM,
    ),
    (
        "SYSTEM_ADMIN",
        "System Admin",
        "Full system administration",
        PermissionCategory.SYSTEM,
    ),
]


PERMISSION_DEFINITIONS = (
    TRANSACTION_PERMISSIONS
    + PRODUCT_PERMISSIONS
    + CUSTOMER_PERMISSIONS
    + COMPLIANCE_PERMISSIONS
    + USER_PERMISSIONS
    + SYSTEM_PERMISSIONS
)
