from models.audit_log import AuditLog
from models.business_partners import BusinessPartner
from models.products import Product
from models.product_stock_audit import ProductStockAudit
from models.ledger_entries import LedgerEntry
from models.ledger_entry_items import LedgerEntryItem
from models.payment_records import PaymentRecord
from models.payment_allocations import PaymentAllocation
from models.update_requests import UpdateRequest
from models.notifications import Notification
from models.users import User

__all__ = ['AuditLog', 'BusinessPartner', 'LedgerEntry', 'LedgerEntryItem', 'Notification', 'PaymentAllocation', 'PaymentRecord', 'Product', 'ProductStockAudit', 'UpdateRequest', 'User',]
