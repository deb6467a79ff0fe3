from enum import Enum


class BillingPeriodStatus(str, Enum):
    active = "active"
    inactive = "inactive"
