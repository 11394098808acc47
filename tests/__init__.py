"""
Test suite for vaultledger

Contains:
- tests/unit/          : Unit tests for individual modules and ledger scenarios
"""
