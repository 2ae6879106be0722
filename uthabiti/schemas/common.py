from __future__ import annotations

from enum import Enum


class MembershipType(str, Enum):
    INDIVIDUAL = "Individual"
    FACILITY_IN = "Facility In"
    SACCO_IN = "Sacco In"


class MemberStatus(str, Enum):
    DRAFT = "Draft"
    PENDING = "Pending"
    ACTIVE = "Active"
    SUSPENDED = "Suspended"
    INACTIVE = "Inactive"


class FacilityStatus(str, Enum):
    PENDING = "Pending"
    ACTIVE = "Active"
    INACTIVE = "Inactive"
    CLOSED = "Closed"


class SaccoStatus(str, Enum):
    PENDING = "Pending"
    ACTIVE = "Active"
    INACTIVE = "Inactive"
    SUSPENDED = "Suspended"


class ContributionType(str, Enum):
    SHARES = "Shares"
    SAVINGS = "Savings"
    LOAN_REPAYMENT = "Loan Repayment"
    PENALTY = "Penalty"
    MEMBERSHIP_FEE = "Membership Fee"


class LoanStatus(str, Enum):
    ACTIVE = "Active"
    CLOSED = "Closed"
    DEFAULTED = "Defaulted"


class SurveyStatus(str, Enum):
    PENDING = "Pending"
    ACTIVE = "Active"
    INACTIVE = "Inactive"


class UserStatus(str, Enum):
    PENDING = "Pending"
    ACTIVE = "Active"
    SUSPENDED = "Suspended"
    BLOCKED = "Blocked"
    DELETED = "Deleted"
