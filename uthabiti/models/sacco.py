from sqlalchemy import (
    CheckConstraint,
    Column,
    Date,
    DateTime,
    ForeignKey,
    Integer,
    Numeric,
    String,
    Text,
    UniqueConstraint,
    func,
)

from uthabiti.db.base import Base


class SaccoMember(Base):
    __tablename__ = "sacco_members"
    __table_args__ = (UniqueConstraint("member_id", name="uq_sacco_members_member"),)

    id = Column(Integer, primary_key=True, autoincrement=True)
    member_id = Column(Integer, ForeignKey("members.id", ondelete="CASCADE"), nullable=False)
    membership_no = Column(String(32), nullable=False, index=True)
    shares = Column(Numeric(14, 2), nullable=False, default=0, server_default="0")
    savings = Column(Numeric(14, 2), nullable=False, default=0, server_default="0")
    loan_balance = Column(Numeric(14, 2), nullable=False, default=0, server_default="0")
    status = Column(String(20), nullable=False, default="Pending")
    created_at = Column(DateTime(timezone=True), nullable=False, server_default=func.now())
    updated_at = Column(
        DateTime(timezone=True),
        nullable=False,
        server_default=func.now(),
        onupdate=func.now(),
    )


class Contribution(Base):
    __tablename__ = "contributions"
    __table_args__ = (CheckConstraint("amount > 0", name="ck_contributions_amount_positive"),)

    id = Column(Integer, primary_key=True, autoincrement=True)
    sacco_member_id = Column(
        Integer, ForeignKey("sacco_members.id", ondelete="CASCADE"), nullable=False, index=True
    )
    member_id = Column(Integer, ForeignKey("members.id", ondelete="CASCADE"), nullable=False)
    loan_id = Column(Integer, ForeignKey("loans.id", ondelete="SET NULL"), nullable=True)
    contribution_type = Column(String(30), nullable=False)
    amount = Column(Numeric(14, 2), nullable=False)
    payment_method = Column(String(50), nullable=False)
    reference_no = Column(String(100), nullable=True)
    notes = Column(Text, nullable=True)
    status = Column(String(20), nullable=False, default="Completed")
    recorded_by_user_id = Column(Integer, ForeignKey("users.id", ondelete="SET NULL"), nullable=True)
    contribution_date = Column(DateTime(timezone=True), nullable=False, server_default=func.now())


class LoanType(Base):
    __tablename__ = "loan_types"
    __table_args__ = (
        UniqueConstraint("loan_name", name="uq_loan_types_name"),
        CheckConstraint("min_amount <= max_amount", name="ck_loan_types_amount_range"),
    )

    id = Column(Integer, primary_key=True, autoincrement=True)
    loan_name = Column(String(100), nullable=False)
    interest_rate = Column(Numeric(6, 2), nullable=False)
    max_term_months = Column(Integer, nullable=False)
    min_amount = Column(Numeric(14, 2), nullable=False)
    max_amount = Column(Numeric(14, 2), nullable=False)
    created_at = Column(DateTime(timezone=True), nullable=False, server_default=func.now())
    updated_at = Column(
        DateTime(timezone=True),
        nullable=False,
        server_default=func.now(),
        onupdate=func.now(),
    )


class Loan(Base):
    __tablename__ = "loans"

    id = Column(Integer, primary_key=True, autoincrement=True)
    sacco_member_id = Column(
        Integer, ForeignKey("sacco_members.id", ondelete="CASCADE"), nullable=False, index=True
    )
    # copied from the loan type at issuance, not a reference
    loan_type = Column(String(100), nullable=False)
    principal = Column(Numeric(14, 2), nullable=False)
    interest_rate = Column(Numeric(6, 2), nullable=False)
    interest_amount = Column(Numeric(14, 2), nullable=False)
    total_repayment = Column(Numeric(14, 2), nullable=False)
    balance = Column(Numeric(14, 2), nullable=False)
    repayment_period = Column(Integer, nullable=False)
    repayment_source = Column(String(100), nullable=True)
    issue_date = Column(Date, nullable=False)
    due_date = Column(Date, nullable=False, index=True)
    status = Column(String(20), nullable=False, default="Active", index=True)
    issued_by_user_id = Column(Integer, ForeignKey("users.id", ondelete="SET NULL"), nullable=True)
    created_at = Column(DateTime(timezone=True), nullable=False, server_default=func.now())
    updated_at = Column(
        DateTime(timezone=True),
        nullable=False,
        server_default=func.now(),
        onupdate=func.now(),
    )


class SaccoSettings(Base):
    __tablename__ = "sacco_settings"

    id = Column(Integer, primary_key=True, autoincrement=True)
    sacco_name = Column(String(255), nullable=False)
    registration_number = Column(String(100), nullable=True)
    contact_email = Column(String(255), nullable=True)
    contact_phone = Column(String(50), nullable=True)
    address = Column(String(255), nullable=True)
    membership_fee = Column(Numeric(14, 2), nullable=False, default=0, server_default="0")
    loan_interest_default = Column(Numeric(6, 2), nullable=True)
    savings_interest_rate = Column(Numeric(6, 2), nullable=True)
    penalty_rate = Column(Numeric(6, 2), nullable=True)
    max_loan_multiple = Column(Numeric(6, 2), nullable=True)
    financial_year_start = Column(Date, nullable=True)
    created_at = Column(DateTime(timezone=True), nullable=False, server_default=func.now())
    updated_at = Column(
        DateTime(timezone=True),
        nullable=False,
        server_default=func.now(),
        onupdate=func.now(),
    )
