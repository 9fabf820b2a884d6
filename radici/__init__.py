"""
Radici - Document checklist for Italian citizenship applications.

This package derives the documents each family member must provide from
their relationship to the Italian ancestor and tracks progress on each one.
"""

__version__ = "0.1.0"
__author__ = "Radici Contributors"
