"""
Blood Bank Store Service

Data access layer for the blood bank coordination application. Donors,
blood requests, inventory, volunteers and user accounts are persisted to
MongoDB, or to a JSON file mirror when MongoDB cannot be reached.

Version: 1.0.0
"""

__version__ = "1.0.0"
__author__ = "High Five"
__description__ = "Dual-backend persistence for blood bank management"
