"""Approval portal clients: identifier lookup, detail fetch and decision submit."""
