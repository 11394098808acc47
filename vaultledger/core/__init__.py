"""
Core domain models, share math, and contracts.

This module contains the foundational building blocks that are independent
of external systems (yield protocols, asset wrappers, etc.).
"""
