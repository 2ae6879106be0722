from sqlalchemy import Column, DateTime, Integer, String, UniqueConstraint, func

from uthabiti.db.base import Base


class User(Base):
    """A portal account: staff operators and self-service members alike."""

    __tablename__ = "users"
    __table_args__ = (
        UniqueConstraint("email", name="uq_users_email"),
        UniqueConstraint("id_number", name="uq_users_id_number"),
    )

    id = Column(Integer, primary_key=True, autoincrement=True)
    full_name = Column(String(255), nullable=False)
    email = Column(String(255), nullable=False)
    id_number = Column(String(50), nullable=True)
    role = Column(String(50), nullable=False, default="Member")
    status = Column(String(20), nullable=False, default="Pending")
    hashed_password = Column(String(255), nullable=False)
    password_changed_at = Column(DateTime(timezone=True), nullable=True)
    last_login_at = Column(DateTime(timezone=True), nullable=True)
    last_active_at = Column(DateTime(timezone=True), nullable=True)
    token_version = Column(Integer, nullable=False, default=0, server_default="0")
    created_at = Column(DateTime(timezone=True), nullable=False, server_default=func.now())
    updated_at = Column(
        DateTime(timezone=True),
        nullable=False,
        server_default=func.now(),
        onupdate=func.now(),
    )
