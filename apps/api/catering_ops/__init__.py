"""
Catering operations API: production scheduling, dispatch, inventory and analytics
for a multi-branch catering business.
"""
__version__ = "0.1.0"
