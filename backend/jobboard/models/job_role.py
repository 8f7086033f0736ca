"""
Job Role Model - Advertised positions and their lookup tables

A job role references a Capability (e.g. "Engineering"), a Band
(e.g. "Associate") and a Status (e.g. "Open", "Closed"). Only roles whose
status name is "open" (any case), with at least one open position and a
closing date not yet passed, accept applications.
"""

from sqlalchemy import Column, ForeignKey, Integer, String, Text, DateTime
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func
from jobboard.database import Base


class Capability(Base):
    __tablename__ = "capabilities"

    capability_id = Column(Integer, primary_key=True, autoincrement=True)
    capability_name = Column(String(100), nullable=True)


class Band(Base):
    __tablename__ = "bands"

    band_id = Column(Integer, primary_key=True, autoincrement=True)
    band_name = Column(String(100), nullable=True)


class Status(Base):
    __tablename__ = "statuses"

    status_id = Column(Integer, primary_key=True, autoincrement=True)
    status_name = Column(String(50), nullable=False)


class JobRole(Base):
    """
    Job role listing.

    Attributes:
        job_role_id: Integer primary key
        role_name: Title shown to applicants
        job_location: Office or "Remote"
        closing_date: Applications are refused strictly after this instant
        sharepoint_url: Link to the full job specification
        number_of_open_positions: Vacancies left; 0 closes the role
    """

    __tablename__ = "job_roles"

    job_role_id = Column(Integer, primary_key=True, autoincrement=True)
    role_name = Column(String(255), nullable=False)
    job_location = Column(String(255), nullable=False)
    capability_id = Column(Integer, ForeignKey("capabilities.capability_id"), nullable=False)
    band_id = Column(Integer, ForeignKey("bands.band_id"), nullable=False)
    status_id = Column(Integer, ForeignKey("statuses.status_id"), nullable=False)
    closing_date = Column(DateTime, nullable=False)
    description = Column(Text, nullable=False, default="")
    responsibilities = Column(Text, nullable=False, default="")
    sharepoint_url = Column(String(2000), nullable=False, default="")
    number_of_open_positions = Column(Integer, nullable=False, default=1)
    created_at = Column(DateTime, server_default=func.now())
    updated_at = Column(DateTime, server_default=func.now(), onupdate=func.now())

    capability = relationship("Capability", lazy="selectin")
    band = relationship("Band", lazy="selectin")
    status = relationship("Status", lazy="selectin")
    applications = relationship("Application", back_populates="job_role", cascade="all, delete-orphan")
