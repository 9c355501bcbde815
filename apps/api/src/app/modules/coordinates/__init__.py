"""
Coordinates Module

Project boundary handling:
1. Validator - decodes both input shapes into a canonical polygon
2. Overlap detector - geodesic overlap against approved polygons
3. Ledger - versioned approved polygons (ACTIVE / REPLACED / VOIDED)
4. Submission and admin review
"""
