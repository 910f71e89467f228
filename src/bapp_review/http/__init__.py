"""Portal and spreadsheet HTTP helpers."""
