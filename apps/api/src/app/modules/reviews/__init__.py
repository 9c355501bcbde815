"""
Reviews Module

Acceptance requirements and other documents:
1. Checklists per permit type
2. Pure review state machine (submit / accept / reject / void)
3. Phase advancement once every item of a phase is accepted
"""
