"""
                Food Delivery Backend

REST backend for customer ordering, the admin dashboard and the
driver delivery console, with an enforced order lifecycle.

Version: 1.0.0
License: MIT
"""

__version__ = "1.0.0"
