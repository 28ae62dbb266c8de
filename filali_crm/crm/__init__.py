"""Client domain: notes, change diffs, timelines, dossiers, and the store.

This module provides:
- ClientService for client CRUD, notes, and statistics
- compute_diff and build_timeline, pure functions over client data
- load_dossier for the client detail view
"""
