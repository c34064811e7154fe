"""Lighthouse history ledger and dashboard pipeline."""
