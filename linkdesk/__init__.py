"""
linkdesk Review Backend

Reconciliation and review engine for link-building orders:
1. Maps a pool of suggested sites onto each client's requested link slots
2. Tracks approval state per candidate and supports reassignment
3. Drives domain qualification for bulk analysis
4. Autosaves order drafts
"""

__version__ = "0.1.0"
