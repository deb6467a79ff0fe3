from enum import Enum


class ParentFeeStatus(str, Enum):
    unpaid = "unpaid"
    partial = "partial"
    paid = "paid"
    advanced = "advanced"


class TeacherSalaryStatus(str, Enum):
    unpaid = "unpaid"
    partial = "partial"
    paid = "paid"
    outstanding = "outstanding"
    advance_covered = "advance_covered"
