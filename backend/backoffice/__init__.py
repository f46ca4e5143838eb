"""
Back-office application: partners, staff, branches, orders, shifts,
delivery pricing, call center and POS integrations.
"""

__version__ = "1.0.0"
