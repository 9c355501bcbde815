"""
Consents Module

Overlap consent workflow: REQUIRED -> UPLOADED -> VERIFIED | REJECTED,
plus the consent summary that gates coordinate approval.
"""
