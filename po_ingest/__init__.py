"""Procurement spreadsheet ingestion.

Normalizes Thai purchase-order exports (merged headers, Buddhist-era dates,
combined cells) into PO header / line-item tables plus supplier and category
dimensions, ready for a spreadsheet-backed store.
"""

__version__ = "0.3.0"
