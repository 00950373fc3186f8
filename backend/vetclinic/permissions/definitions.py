# Overview: All permission definitions organized by category.
# Each permission is defined as: (code, name, description, category)

from .categories import PermissionCategory


# -- CLIENTS & PETS --

CLIENT_PERMISSIONS = [
    (
        "VIEW_CLIENTS",
        "View Clients",
        "View clients, pets and reminders",
        PermissionCategory.CLIENTS,
    ),
    (
        "MANAGE_CLIENTS",
        "Manage Clients",
        "Create, edit and delete clients and pets",
        PermissionCategory.CLIENTS,
    ),
    (
        "VIEW_PET_MEDICAL_RECORDS",
        "View Medical Records",
        "View pet medical history, prescriptions and weight entries",
        PermissionCategory.CLIENTS,
    ),
    (
        "MANAGE_PET_MEDICAL_RECORDS",
        "Manage Medical Records",
        "Add, edit and delete medical records (may bill the consultation) and write prescriptions",
        PermissionCategory.CLIENTS,
    ),
]


# -- APPOINTMENTS --

APPOINTMENT_PERMISSIONS = [
    (
        "VIEW_APPOINTMENTS",
        "View Appointments",
        "View the appointment agenda",
        PermissionCategory.APPOINTMENTS,
    ),
    (
        "MANAGE_APPOINTMENTS",
        "Manage Appointments",
        "Book, reschedule and cancel appointments",
        PermissionCategory.APPOINTMENTS,
    ),
]


# -- BILLING --

BILLING_PERMISSIONS = [
    (
        "VIEW_BILLING",
        "View Billing",
        "View invoices and payment history",
        PermissionCategory.BILLING,
    ),
    (
        "MANAGE_BILLING",
        "Manage Billing",
        "Create counter sales, edit unpaid invoices and record payments",
        PermissionCategory.BILLING,
    ),
]


# -- INVENTORY --

INVENTORY_PERMISSIONS = [
    (
        "VIEW_INVENTORY",
        "View Inventory",
        "View products, lots and stock levels",
        PermissionCategory.INVENTORY,
    ),
    (
        "MANAGE_INVENTORY",
        "Manage Inventory",
        "Create and edit products",
        PermissionCategory.INVENTORY,
    ),
    (
        "MANAGE_INTERNAL_CONSUMPTION",
        "Manage Internal Consumption",
        "Record internal use, waste and expired stock",
        PermissionCategory.INVENTORY,
    ),
]


# -- PURCHASES & SUPPLIERS --

PURCHASE_PERMISSIONS = [
    (
        "VIEW_PURCHASES",
        "View Purchases",
        "View purchases and suppliers",
        PermissionCategory.PURCHASES,
    ),
    (
        "MANAGE_PURCHASES",
        "Manage Purchases",
        "Receive purchases and manage suppliers",
        PermissionCategory.PURCHASES,
    ),
]


# -- EXPENSES --

EXPENSE_PERMISSIONS = [
    (
        "VIEW_EXPENSES",
        "View Expenses",
        "View expenses and expense categories",
        PermissionCategory.EXPENSES,
    ),
    (
        "MANAGE_EXPENSES",
        "Manage Expenses",
        "Record expenses and manage expense categories",
        PermissionCategory.EXPENSES,
    ),
]


# -- CASHIER --

CASHIER_PERMISSIONS = [
    (
        "VIEW_CASHIER",
        "View Cashier",
        "View cashier shifts and their movements",
        PermissionCategory.CASHIER,
    ),
    (
        "MANAGE_CASHIER_SHIFTS",
        "Manage Cashier Shifts",
        "Open and close cashier shifts",
        PermissionCategory.CASHIER,
    ),
    (
        "MANAGE_POINTS_OF_SALE",
        "Manage Points of Sale",
        "Create points of sale",
        PermissionCategory.CASHIER,
    ),
]


# -- HOSPITALIZATION --

HOSPITALIZATION_PERMISSIONS = [
    (
        "VIEW_HOSPITALIZATIONS",
        "View Hospitalizations",
        "View in-patient stays and their logs",
        PermissionCategory.HOSPITALIZATION,
    ),
    (
        "MANAGE_HOSPITALIZATIONS",
        "Manage Hospitalizations",
        "Admit, log treatments and discharge patients",
        PermissionCategory.HOSPITALIZATION,
    ),
]


# -- SETTINGS --

SETTINGS_PERMISSIONS = [
    (
        "VIEW_SETTINGS",
        "View Settings",
        "View company settings",
        PermissionCategory.SETTINGS,
    ),
]


# Combined list of all permissions
PERMISSION_DEFINITIONS = (
    CLIENT_PERMISSIONS
    + APPOINTMENT_PERMISSIONS
    + BILLING_PERMISSIONS
    + INVENTORY_PERMISSIONS
    + PURCHASE_PERMISSIONS
    + EXPENSE_PERMISSIONS
    + CASHIER_PERMISSIONS
    + HOSPITALIZATION_PERMISSIONS
    + SETTINGS_PERMISSIONS
)
