"""
Expense Sync - Source Package

Keeps a personal transaction list in step across a user's devices and,
optionally, with one partner, using Google Drive JSON documents.

DESIGN PRINCIPLES:
1. Local first: every record is durable on the device before any network I/O
2. Never throw across a public boundary; degrade to local-only data
3. Last writer wins on remote documents (no version tokens)
4. Every sync, share and link outcome is auditable
5. Storage layers are swappable
"""

__version__ = "1.0.0"
__author__ = "Expense Sync Team"
