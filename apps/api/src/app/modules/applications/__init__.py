"""
Applications Module

The permit application aggregate:
1. Draft creation and ownership checks
2. Status transition table (VALID_STATUS_TRANSITIONS) with optimistic,
   status-guarded updates
3. Status history audit rows written on every transition
"""
