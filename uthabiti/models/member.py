from sqlalchemy import (
    JSON,
    Column,
    Date,
    DateTime,
    ForeignKey,
    Integer,
    String,
    UniqueConstraint,
    func,
)
from sqlalchemy.orm import relationship

from uthabiti.db.base import Base


class Member(Base):
    __tablename__ = "members"
    __table_args__ = (
        UniqueConstraint("email", name="uq_members_email"),
        UniqueConstraint("membership_no", name="uq_members_membership_no"),
        UniqueConstraint("user_id", name="uq_members_user_id"),
    )

    id = Column(Integer, primary_key=True, autoincrement=True)
    # assigned right after insert, it embeds the primary key
    membership_no = Column(String(32), nullable=True)
    first_name = Column(String(100), nullable=False)
    middle_name = Column(String(100), nullable=True)
    last_name = Column(String(100), nullable=False)
    email = Column(String(255), nullable=False)
    membership_type = Column(String(30), nullable=False)
    status = Column(String(20), nullable=False, default="Draft")
    county = Column(String(100), nullable=True)
    sub_county = Column(String(100), nullable=True)
    ward = Column(String(100), nullable=True)
    hashed_password = Column(String(255), nullable=True)
    user_id = Column(Integer, ForeignKey("users.id", ondelete="SET NULL"), nullable=True)
    created_by_user_id = Column(Integer, ForeignKey("users.id", ondelete="SET NULL"), nullable=True)
    registered_at = Column(DateTime(timezone=True), nullable=False, server_default=func.now())
    updated_at = Column(
        DateTime(timezone=True),
        nullable=False,
        server_default=func.now(),
        onupdate=func.now(),
    )

    profile = relationship("MemberProfile", uselist=False, back_populates="member")
    facilities = relationship("Facility", back_populates="member")
    benefits = relationship("MemberBenefits", uselist=False, back_populates="member")

    @property
    def full_name(self) -> str:
        return " ".join(part for part in (self.first_name, self.last_name) if part).strip()


class MemberProfile(Base):
    __tablename__ = "member_profiles"
    __table_args__ = (UniqueConstraint("member_id", name="uq_member_profiles_member"),)

    id = Column(Integer, primary_key=True, autoincrement=True)
    member_id = Column(Integer, ForeignKey("members.id", ondelete="CASCADE"), nullable=False)
    phone = Column(String(30), nullable=True, index=True)
    id_number = Column(String(50), nullable=True, index=True)
    dob = Column(Date, nullable=True)
    gender = Column(String(20), nullable=True)
    disability = Column(String(50), nullable=True)
    education_level = Column(String(100), nullable=True)
    citizenship = Column(String(100), nullable=True)
    country = Column(String(100), nullable=True)
    county = Column(String(100), nullable=True)
    sub_county = Column(String(100), nullable=True)
    ward = Column(String(100), nullable=True)
    next_kin_name = Column(String(255), nullable=True)
    kin_rln = Column(String(100), nullable=True)
    kin_phone = Column(String(30), nullable=True)
    kin_location = Column(String(255), nullable=True)
    member_doc = Column(String(500), nullable=True)
    member_id_doc = Column(String(500), nullable=True)
    created_at = Column(DateTime(timezone=True), nullable=False, server_default=func.now())
    updated_at = Column(
        DateTime(timezone=True),
        nullable=False,
        server_default=func.now(),
        onupdate=func.now(),
    )

    member = relationship("Member", back_populates="profile")


class Facility(Base):
    __tablename__ = "facilities"
    __table_args__ = (
        UniqueConstraint("reg_no", name="uq_facilities_reg_no"),
        UniqueConstraint("license_no", name="uq_facilities_license_no"),
    )

    id = Column(Integer, primary_key=True, autoincrement=True)
    member_id = Column(Integer, ForeignKey("members.id", ondelete="CASCADE"), nullable=False, index=True)
    facility_name = Column(String(255), nullable=True)
    facility_type = Column(String(100), nullable=True)
    setup_type = Column(String(100), nullable=True)
    facility_estab_year = Column(Integer, nullable=True)
    reg_no = Column(String(100), nullable=True)
    license_no = Column(String(100), nullable=True)
    male_b = Column(Integer, nullable=False, default=0)
    female_b = Column(Integer, nullable=False, default=0)
    male_b_dis = Column(Integer, nullable=False, default=0)
    female_b_dis = Column(Integer, nullable=False, default=0)
    male_c = Column(Integer, nullable=False, default=0)
    female_c = Column(Integer, nullable=False, default=0)
    f_county = Column(String(100), nullable=True)
    f_subcounty = Column(String(100), nullable=True)
    f_area = Column(String(255), nullable=True)
    status = Column(String(20), nullable=False, default="Pending")
    created_at = Column(DateTime(timezone=True), nullable=False, server_default=func.now())
    updated_at = Column(
        DateTime(timezone=True),
        nullable=False,
        server_default=func.now(),
        onupdate=func.now(),
    )

    member = relationship("Member", back_populates="facilities")


class MemberBenefits(Base):
    __tablename__ = "member_benefits"
    __table_args__ = (UniqueConstraint("member_id", name="uq_member_benefits_member"),)

    id = Column(Integer, primary_key=True, autoincrement=True)
    member_id = Column(Integer, ForeignKey("members.id", ondelete="CASCADE"), nullable=False)
    benefits = Column(JSON, nullable=False, default=dict)
    created_at = Column(DateTime(timezone=True), nullable=False, server_default=func.now())
    updated_at = Column(
        DateTime(timezone=True),
        nullable=False,
        server_default=func.now(),
        onupdate=func.now(),
    )

    member = relationship("Member", back_populates="benefits")
