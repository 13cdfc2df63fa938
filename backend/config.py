"""
Application settings for the billing ledger backend.

Values come from environment variables (optionally loaded from a .env file).
"""

import os
from decimal import Decimal
from dotenv import load_dotenv

load_dotenv()

# GST applied to the subtotal when an entry has apply_gst set
TAX_RATE = Decimal(os.getenv("TAX_RATE", "0.18"))

# How many times an atomic ledger operation is re-run after a concurrent write
LEDGER_MAX_RETRIES = int(os.getenv("LEDGER_MAX_RETRIES", "3"))

# Products at or below this stock level are reported as "Low Stock"
LOW_STOCK_THRESHOLD = int(os.getenv("LOW_STOCK_THRESHOLD", "10"))

APP_TIMEZONE = os.getenv("APP_TIMEZONE", "Asia/Kolkata")

UNKNOWN_CUSTOMER_NAME = "Unknown Customer"
UNKNOWN_SELLER_NAME = "Unknown Seller"
