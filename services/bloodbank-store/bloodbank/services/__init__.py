"""
Domain operation sets and the persistence facade.
"""

from .facade import BloodBankStore
from .donors import DonorOperations
from .requests import BloodRequestOperations
from .inventory import InventoryOperations
from .volunteers import VolunteerOperations
from .users import UserOperations

__all__ = [
    "BloodBankStore",
    "DonorOperations",
    "BloodRequestOperations",
    "InventoryOperations",
    "VolunteerOperations",
    "UserOperations",
]
