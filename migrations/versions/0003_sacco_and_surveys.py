"""Create sacco ledger tables, sacco settings and childcare surveys"""

from alembic import op
import sqlalchemy as sa

# revision identifiers, used by Alembic.
revision = "0003_sacco_and_surveys"
down_revision = "0002_members"
branch_labels = None
depends_on = None

MONEY = sa.Numeric(14, 2)
RATE = sa.Numeric(6, 2)


def _timestamps() -> list[sa.Column]:
    return [
        sa.Column("created_at", sa.TIMESTAMP(timezone=True), nullable=False, server_default=sa.func.now()),
        sa.Column(
            "updated_at",
            sa.TIMESTAMP(timezone=True),
            nullable=False,
            server_default=sa.func.now(),
            server_onupdate=sa.func.now(),
        ),
    ]


def upgrade() -> None:
    op.create_table(
        "sacco_members",
        sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column("member_id", sa.Integer(), sa.ForeignKey("members.id", ondelete="CASCADE"), nullable=False),
        sa.Column("membership_no", sa.String(length=32), nullable=False),
        sa.Column("shares", MONEY, nullable=False, server_default="0"),
        sa.Column("savings", MONEY, nullable=False, server_default="0"),
        sa.Column("loan_balance", MONEY, nullable=False, server_default="0"),
        sa.Column("status", sa.String(length=20), nullable=False, server_default="Pending"),
        *_timestamps(),
        sa.UniqueConstraint("member_id", name="uq_sacco_members_member"),
    )
    op.create_index("ix_sacco_members_membership_no", "sacco_members", ["membership_no"])

    op.create_table(
        "loan_types",
        sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column("loan_name", sa.String(length=100), nullable=False),
        sa.Column("interest_rate", RATE, nullable=False),
        sa.Column("max_term_months", sa.Integer(), nullable=False),
        sa.Column("min_amount", MONEY, nullable=False),
        sa.Column("max_amount", MONEY, nullable=False),
        *_timestamps(),
        sa.UniqueConstraint("loan_name", name="uq_loan_types_name"),
        sa.CheckConstraint("min_amount <= max_amount", name="ck_loan_types_amount_range"),
    )

    op.create_table(
        "loans",
        sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column(
            "sacco_member_id", sa.Integer(), sa.ForeignKey("sacco_members.id", ondelete="CASCADE"), nullable=False
        ),
        sa.Column("loan_type", sa.String(length=100), nullable=False),
        sa.Column("principal", MONEY, nullable=False),
        sa.Column("interest_rate", RATE, nullable=False),
        sa.Column("interest_amount", MONEY, nullable=False),
        sa.Column("total_repayment", MONEY, nullable=False),
        sa.Column("balance", MONEY, nullable=False),
        sa.Column("repayment_period", sa.Integer(), nullable=False),
        sa.Column("repayment_source", sa.String(length=100), nullable=True),
        sa.Column("issue_date", sa.Date(), nullable=False),
        sa.Column("due_date", sa.Date(), nullable=False),
        sa.Column("status", sa.String(length=20), nullable=False, server_default="Active"),
        sa.Column(
            "issued_by_user_id", sa.Integer(), sa.ForeignKey("users.id", ondelete="SET NULL"), nullable=True
        ),
        *_timestamps(),
    )
    op.create_index("ix_loans_sacco_member_id", "loans", ["sacco_member_id"])
    op.create_index("ix_loans_due_date", "loans", ["due_date"])
    op.create_index("ix_loans_status", "loans", ["status"])

    op.create_table(
        "contributions",
        sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column(
            "sacco_member_id", sa.Integer(), sa.ForeignKey("sacco_members.id", ondelete="CASCADE"), nullable=False
        ),
        sa.Column("member_id", sa.Integer(), sa.ForeignKey("members.id", ondelete="CASCADE"), nullable=False),
        sa.Column("loan_id", sa.Integer(), sa.ForeignKey("loans.id", ondelete="SET NULL"), nullable=True),
        sa.Column("contribution_type", sa.String(length=30), nullable=False),
        sa.Column("amount", MONEY, nullable=False),
        sa.Column("payment_method", sa.String(length=50), nullable=False),
        sa.Column("reference_no", sa.String(length=100), nullable=True),
        sa.Column("notes", sa.Text(), nullable=True),
        sa.Column("status", sa.String(length=20), nullable=False, server_default="Completed"),
        sa.Column(
            "recorded_by_user_id", sa.Integer(), sa.ForeignKey("users.id", ondelete="SET NULL"), nullable=True
        ),
        sa.Column(
            "contribution_date", sa.TIMESTAMP(timezone=True), nullable=False, server_default=sa.func.now()
        ),
        sa.CheckConstraint("amount > 0", name="ck_contributions_amount_positive"),
    )
    op.create_index("ix_contributions_sacco_member_id", "contributions", ["sacco_member_id"])

    op.create_table(
        "sacco_settings",
        sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column("sacco_name", sa.String(length=255), nullable=False),
        sa.Column("registration_number", sa.String(length=100), nullable=True),
        sa.Column("contact_email", sa.String(length=255), nullable=True),
        sa.Column("contact_phone", sa.String(length=50), nullable=True),
        sa.Column("address", sa.String(length=255), nullable=True),
        sa.Column("membership_fee", MONEY, nullable=False, server_default="0"),
        sa.Column("loan_interest_default", RATE, nullable=True),
        sa.Column("savings_interest_rate", RATE, nullable=True),
        sa.Column("penalty_rate", RATE, nullable=True),
        sa.Column("max_loan_multiple", RATE, nullable=True),
        sa.Column("financial_year_start", sa.Date(), nullable=True),
        *_timestamps(),
    )

    count_columns = [
        "total_children",
        "girls",
        "boys",
        "age_under6",
        "age_6_12",
        "age_12_24",
        "age_24_36",
        "age_36_plus",
        "children_with_disabilities",
        "boys_with_disabilities",
        "girls_with_disabilities",
        "total_workers",
        "female_workers",
        "male_workers",
        "workers_with_disabilities",
    ]
    op.create_table(
        "childcare_surveys",
        sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column("county_name", sa.String(length=100), nullable=True),
        sa.Column("sub_county_name", sa.String(length=100), nullable=True),
        sa.Column("ward_name", sa.String(length=100), nullable=True),
        sa.Column("enumerator_name", sa.String(length=255), nullable=True),
        sa.Column("id_number", sa.String(length=50), nullable=False),
        sa.Column("worker_category", sa.String(length=100), nullable=True),
        sa.Column("gender", sa.String(length=20), nullable=True),
        sa.Column("age", sa.String(length=20), nullable=True),
        sa.Column("education_level", sa.String(length=100), nullable=True),
        sa.Column("received_training", sa.String(length=20), nullable=True),
        sa.Column("received_certificate", sa.String(length=20), nullable=True),
        sa.Column("facility_name", sa.String(length=255), nullable=True),
        sa.Column("facility_classification", sa.String(length=100), nullable=True),
        sa.Column("geo_location", sa.String(length=255), nullable=True),
        sa.Column("year_established", sa.Integer(), nullable=True),
        *[sa.Column(name, sa.Integer(), nullable=False, server_default="0") for name in count_columns],
        sa.Column("member_institutions", sa.Text(), nullable=True),
        sa.Column("loan_institutions", sa.Text(), nullable=True),
        sa.Column("interested_in_finance", sa.String(length=20), nullable=True),
        sa.Column("provider_name", sa.String(length=255), nullable=True),
        sa.Column("phone_number", sa.String(length=30), nullable=True),
        sa.Column("status", sa.String(length=20), nullable=False, server_default="Pending"),
        sa.Column(
            "created_by_user_id", sa.Integer(), sa.ForeignKey("users.id", ondelete="SET NULL"), nullable=True
        ),
        *_timestamps(),
        sa.UniqueConstraint("id_number", name="uq_childcare_surveys_id_number"),
    )


def downgrade() -> None:
    op.drop_table("childcare_surveys")
    op.drop_table("sacco_settings")
    op.drop_index("ix_contributions_sacco_member_id", table_name="contributions")
    op.drop_table("contributions")
    op.drop_index("ix_loans_status", table_name="loans")
    op.drop_index("ix_loans_due_date", table_name="loans")
    op.drop_index("ix_loans_sacco_member_id", table_name="loans")
    op.drop_table("loans")
    op.drop_table("loan_types")
    op.drop_index("ix_sacco_members_membership_no", table_name="sacco_members")
    op.drop_table("sacco_members")
