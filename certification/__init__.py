"""Certification — certificate issuance and the badge ledger."""
