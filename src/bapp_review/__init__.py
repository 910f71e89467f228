"""Session-authenticated review queue for BAPP delivery verification.

Pulls pending rows from the verification spreadsheet, loads each item's
detail page from the approval portal, submits the reviewer's decision and
writes the outcome back to the sheet.
"""

__version__ = "0.1.0"
