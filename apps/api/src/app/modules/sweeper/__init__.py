"""
Sweeper Module

Daily deadline sweep: auto-accepts what reviewers left waiting and voids
what applicants failed to revise in time.
"""
