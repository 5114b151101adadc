from enum import Enum


class MovementType(str, Enum):
    ENTRY = "entry"
    EXIT = "exit"


class RefundMethod(str, Enum):
    CASH = "Cash"
    CREDIT = "Credit"
    STORE_CREDIT = "Store Credit"


class SaleStatusFilter(str, Enum):
    ACTIVE = "active"
    RETURNED = "returned"
    ALL = "all"


class ClientType(str, Enum):
    INDIVIDUAL = "Individual"
    BUSINESS = "Business"


class ClientStatus(str, Enum):
    ACTIVE = "Active"
    INACTIVE = "Inactive"
    BLOCKED = "Blocked"
