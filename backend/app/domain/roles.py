from enum import Enum


class UserRole(str, Enum):
    admin = "admin"
    accountant = "accountant"
    teacher = "teacher"
    parent = "parent"


PAYMENT_RECORDING_ROLES = [UserRole.admin, UserRole.accountant]
