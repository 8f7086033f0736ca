"""
User Model - Registered identities (applicants and administrators)

Every user carries exactly one role, fixed at creation. Registration always
creates APPLICANT users; administrators are provisioned out of band.
"""

import enum

from sqlalchemy import Column, Integer, String, DateTime
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func
from jobboard.database import Base


class UserRole(str, enum.Enum):
    ADMIN = "ADMIN"
    APPLICANT = "APPLICANT"


class User(Base):
    """
    Authenticated principal.

    Attributes:
        user_id: Integer primary key
        user_email: Login email (unique)
        user_password: bcrypt hash, never the plaintext
        user_role: UserRole value
    """

    __tablename__ = "users"

    user_id = Column(Integer, primary_key=True, autoincrement=True)
    user_email = Column(String(320), nullable=False, unique=True, index=True)
    user_password = Column(String(255), nullable=False)
    user_role = Column(String(20), nullable=False, default=UserRole.APPLICANT.value)
    created_at = Column(DateTime, server_default=func.now())
    updated_at = Column(DateTime, server_default=func.now(), onupdate=func.now())

    applications = relationship("Application", back_populates="user")

    @property
    def role(self) -> UserRole:
        return UserRole(self.user_role)
