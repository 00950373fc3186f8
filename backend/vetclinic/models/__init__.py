from .tenancy import Company, PointOfSale
from .inventory import Product, ProductLot, StockMovement, Supplier, Purchase, InternalConsumption
from .billing import Invoice, InvoiceItem, InvoicePayment
from .registers import CashierShift, Expense, ExpenseCategory
from .clinic import Client, Pet, WeightEntry, MedicalRecord, Reminder, Appointment, Prescription
from .hospitalization import Hospitalization, MedicationLogEntry, VitalSignEntry, ProgressNote
from .ledger import DocumentSequence, LedgerEvent

__all__ = [
    'Company', 'PointOfSale',
    'Product', 'ProductLot', 'StockMovement', 'Supplier', 'Purchase', 'InternalConsumption',
    'Invoice', 'InvoiceItem', 'InvoicePayment',
    'CashierShift', 'Expense', 'ExpenseCategory',
    'Client', 'Pet', 'WeightEntry', 'MedicalRecord', 'Reminder', 'Appointment', 'Prescription',
    'Hospitalization', 'MedicationLogEntry', 'VitalSignEntry', 'ProgressNote',
    'DocumentSequence', 'LedgerEvent',
]
