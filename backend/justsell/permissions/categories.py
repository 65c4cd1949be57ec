# Overview: Permission category constants for grouping related permissions.


class PermissionCategory:
    """Permission categories for organization and UI display."""
    TRANSACTIONS = "TRANSACTIONS"
    PRODUCTS = "PRODUCTS"
    CUSTOMERS = "CUSTOMERS"
    COMPLIANCE = "COMPLIANCE"
    USERS = "USERS"
    SYSTEM = "SYSTEM"
