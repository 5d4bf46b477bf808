"""Ledgerflow services."""
