"""Create members, profiles, facilities, benefits and registration workflows"""

from alembic import op
import sqlalchemy as sa

# revision identifiers, used by Alembic.
revision = "0002_members"
down_revision = "0001_accounts"
branch_labels = None
depends_on = None


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
        "members",
        sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column("membership_no", sa.String(length=32), nullable=True),
        sa.Column("first_name", sa.String(length=100), nullable=False),
        sa.Column("middle_name", sa.String(length=100), nullable=True),
        sa.Column("last_name", sa.String(length=100), nullable=False),
        sa.Column("email", sa.String(length=255), nullable=False),
        sa.Column("membership_type", sa.String(length=30), nullable=False),
        sa.Column("status", sa.String(length=20), nullable=False, server_default="Draft"),
        sa.Column("county", sa.String(length=100), nullable=True),
        sa.Column("sub_county", sa.String(length=100), nullable=True),
        sa.Column("ward", sa.String(length=100), nullable=True),
        sa.Column("hashed_password", sa.String(length=255), nullable=True),
        sa.Column("user_id", sa.Integer(), sa.ForeignKey("users.id", ondelete="SET NULL"), nullable=True),
        sa.Column(
            "created_by_user_id", sa.Integer(), sa.ForeignKey("users.id", ondelete="SET NULL"), nullable=True
        ),
        sa.Column("registered_at", sa.TIMESTAMP(timezone=True), nullable=False, server_default=sa.func.now()),
        sa.Column(
            "updated_at",
            sa.TIMESTAMP(timezone=True),
            nullable=False,
            server_default=sa.func.now(),
            server_onupdate=sa.func.now(),
        ),
        sa.UniqueConstraint("email", name="uq_members_email"),
        sa.UniqueConstraint("membership_no", name="uq_members_membership_no"),
        sa.UniqueConstraint("user_id", name="uq_members_user_id"),
    )

    op.create_table(
        "member_profiles",
        sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column("member_id", sa.Integer(), sa.ForeignKey("members.id", ondelete="CASCADE"), nullable=False),
        sa.Column("phone", sa.String(length=30), nullable=True),
        sa.Column("id_number", sa.String(length=50), nullable=True),
        sa.Column("dob", sa.Date(), nullable=True),
        sa.Column("gender", sa.String(length=20), nullable=True),
        sa.Column("disability", sa.String(length=50), nullable=True),
        sa.Column("education_level", sa.String(length=100), nullable=True),
        sa.Column("citizenship", sa.String(length=100), nullable=True),
        sa.Column("country", sa.String(length=100), nullable=True),
        sa.Column("county", sa.String(length=100), nullable=True),
        sa.Column("sub_county", sa.String(length=100), nullable=True),
        sa.Column("ward", sa.String(length=100), nullable=True),
        sa.Column("next_kin_name", sa.String(length=255), nullable=True),
        sa.Column("kin_rln", sa.String(length=100), nullable=True),
        sa.Column("kin_phone", sa.String(length=30), nullable=True),
        sa.Column("kin_location", sa.String(length=255), nullable=True),
        sa.Column("member_doc", sa.String(length=500), nullable=True),
        sa.Column("member_id_doc", sa.String(length=500), nullable=True),
        *_timestamps(),
        sa.UniqueConstraint("member_id", name="uq_member_profiles_member"),
    )
    op.create_index("ix_member_profiles_phone", "member_profiles", ["phone"])
    op.create_index("ix_member_profiles_id_number", "member_profiles", ["id_number"])

    op.create_table(
        "facilities",
        sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column("member_id", sa.Integer(), sa.ForeignKey("members.id", ondelete="CASCADE"), nullable=False),
        sa.Column("facility_name", sa.String(length=255), nullable=True),
        sa.Column("facility_type", sa.String(length=100), nullable=True),
        sa.Column("setup_type", sa.String(length=100), nullable=True),
        sa.Column("facility_estab_year", sa.Integer(), nullable=True),
        sa.Column("reg_no", sa.String(length=100), nullable=True),
        sa.Column("license_no", sa.String(length=100), nullable=True),
        sa.Column("male_b", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("female_b", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("male_b_dis", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("female_b_dis", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("male_c", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("female_c", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("f_county", sa.String(length=100), nullable=True),
        sa.Column("f_subcounty", sa.String(length=100), nullable=True),
        sa.Column("f_area", sa.String(length=255), nullable=True),
        sa.Column("status", sa.String(length=20), nullable=False, server_default="Pending"),
        *_timestamps(),
        sa.UniqueConstraint("reg_no", name="uq_facilities_reg_no"),
        sa.UniqueConstraint("license_no", name="uq_facilities_license_no"),
    )
    op.create_index("ix_facilities_member_id", "facilities", ["member_id"])

    op.create_table(
        "member_benefits",
        sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column("member_id", sa.Integer(), sa.ForeignKey("members.id", ondelete="CASCADE"), nullable=False),
        sa.Column("benefits", sa.JSON(), nullable=False),
        *_timestamps(),
        sa.UniqueConstraint("member_id", name="uq_member_benefits_member"),
    )

    op.create_table(
        "registration_workflows",
        sa.Column("id", sa.String(length=32), primary_key=True),
        sa.Column("member_id", sa.Integer(), sa.ForeignKey("members.id", ondelete="CASCADE"), nullable=False),
        sa.Column("actor_id", sa.Integer(), sa.ForeignKey("users.id", ondelete="SET NULL"), nullable=True),
        sa.Column("flow", sa.String(length=20), nullable=False, server_default="new"),
        sa.Column("step", sa.String(length=20), nullable=False, server_default="profile"),
        sa.Column("status", sa.String(length=20), nullable=False, server_default="open"),
        *_timestamps(),
        sa.Column("completed_at", sa.TIMESTAMP(timezone=True), nullable=True),
    )
    op.create_index("ix_registration_workflows_member_id", "registration_workflows", ["member_id"])


def downgrade() -> None:
    op.drop_index("ix_registration_workflows_member_id", table_name="registration_workflows")
    op.drop_table("registration_workflows")
    op.drop_table("member_benefits")
    op.drop_index("ix_facilities_member_id", table_name="facilities")
    op.drop_table("facilities")
    op.drop_index("ix_member_profiles_id_number", table_name="member_profiles")
    op.drop_index("ix_member_profiles_phone", table_name="member_profiles")
    op.drop_table("member_profiles")
    op.drop_table("members")
