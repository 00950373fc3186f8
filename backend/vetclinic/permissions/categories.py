# Overview: Permission category constants for grouping related permissions.


class PermissionCategory:
    """Permission categories for organization and UI display."""
    CLIENTS = "CLIENTS"
    APPOINTMENTS = "APPOINTMENTS"
    BILLING = "BILLING"
    INVENTORY = "INVENTORY"
    PURCHASES = "PURCHASES"
    EXPENSES = "EXPENSES"
    CASHIER = "CASHIER"
    HOSPITALIZATION = "HOSPITALIZATION"
    SETTINGS = "SETTINGS"
