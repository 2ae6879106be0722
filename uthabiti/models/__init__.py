from uthabiti.models.activity_log import ActivityLog
from uthabiti.models.member import Facility, Member, MemberBenefits, MemberProfile
from uthabiti.models.notification import Notification
from uthabiti.models.registration_workflow import RegistrationWorkflow
from uthabiti.models.sacco import Contribution, Loan, LoanType, SaccoMember, SaccoSettings
from uthabiti.models.survey import ChildcareSurvey
from uthabiti.models.user import User
from uthabiti.models.verification_code import VerificationCode

__all__ = [
    "ActivityLog",
    "ChildcareSurvey",
    "Contribution",
    "Facility",
    "Loan",
    "LoanType",
    "Member",
    "MemberBenefits",
    "MemberProfile",
    "Notification",
    "RegistrationWorkflow",
    "SaccoMember",
    "SaccoSettings",
    "User",
    "VerificationCode",
]
