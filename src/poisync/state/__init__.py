"""State/store layer.

This package is the single source of truth for settings, user-created POIs,
the last fetched remote POIs and the last known location, plus the policy
that decides when a new remote fetch is due.
"""
