"""
Policy administration backend with admin-defined dynamic field schemas.
"""

__version__ = "1.0.0"
