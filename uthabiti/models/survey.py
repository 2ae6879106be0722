from sqlalchemy import Column, DateTime, ForeignKey, Integer, String, Text, UniqueConstraint, func

from uthabiti.db.base import Base


class ChildcareSurvey(Base):
    """One census submission about a childcare facility and its worker."""

    __tablename__ = "childcare_surveys"
    __table_args__ = (UniqueConstraint("id_number", name="uq_childcare_surveys_id_number"),)

    id = Column(Integer, primary_key=True, autoincrement=True)
    county_name = Column(String(100), nullable=True)
    sub_county_name = Column(String(100), nullable=True)
    ward_name = Column(String(100), nullable=True)
    enumerator_name = Column(String(255), nullable=True)
    id_number = Column(String(50), nullable=False)
    worker_category = Column(String(100), nullable=True)
    gender = Column(String(20), nullable=True)
    age = Column(String(20), nullable=True)
    education_level = Column(String(100), nullable=True)
    received_training = Column(String(20), nullable=True)
    received_certificate = Column(String(20), nullable=True)
    facility_name = Column(String(255), nullable=True)
    facility_classification = Column(String(100), nullable=True)
    geo_location = Column(String(255), nullable=True)
    year_established = Column(Integer, nullable=True)
    total_children = Column(Integer, nullable=False, default=0)
    girls = Column(Integer, nullable=False, default=0)
    boys = Column(Integer, nullable=False, default=0)
    age_under6 = Column(Integer, nullable=False, default=0)
    age_6_12 = Column(Integer, nullable=False, default=0)
    age_12_24 = Column(Integer, nullable=False, default=0)
    age_24_36 = Column(Integer, nullable=False, default=0)
    age_36_plus = Column(Integer, nullable=False, default=0)
    children_with_disabilities = Column(Integer, nullable=False, default=0)
    boys_with_disabilities = Column(Integer, nullable=False, default=0)
    girls_with_disabilities = Column(Integer, nullable=False, default=0)
    total_workers = Column(Integer, nullable=False, default=0)
    female_workers = Column(Integer, nullable=False, default=0)
    male_workers = Column(Integer, nullable=False, default=0)
    workers_with_disabilities = Column(Integer, nullable=False, default=0)
    member_institutions = Column(Text, nullable=True)
    loan_institutions = Column(Text, nullable=True)
    interested_in_finance = Column(String(20), nullable=True)
    provider_name = Column(String(255), nullable=True)
    phone_number = Column(String(30), nullable=True)
    status = Column(String(20), nullable=False, default="Pending")
    created_by_user_id = Column(Integer, ForeignKey("users.id", ondelete="SET NULL"), nullable=True)
    created_at = Column(DateTime(timezone=True), nullable=False, server_default=func.now())
    updated_at = Column(
        DateTime(timezone=True),
        nullable=False,
        server_default=func.now(),
        onupdate=func.now(),
    )
