"""Date helpers for invoicing"""

import uuid
from datetime import date, timedelta


def invoice_due_date(issued_on: date, days: int) -> date:
    """Due date a fixed number of calendar days after issue"""
    return issued_on + timedelta(days=days)


def generate_invoice_number(issued_on: date) -> str:
    """Invoice number of the form INV-YYYYMMDD-XXXXXXXX"""
    return f"INV-{issued_on:%Y%m%d}-{uuid.uuid4().hex[:8].upper()}"
