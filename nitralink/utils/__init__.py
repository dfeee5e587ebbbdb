"""
NITRALINK utilities: logging and the exception hierarchy.
"""
