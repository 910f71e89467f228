"""Verification spreadsheet access: task queue and write-back."""
