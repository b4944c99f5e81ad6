from sqlalchemy import Column, Integer, String, Boolean, DateTime, UniqueConstraint
from .db import Base


class Organization(Base):
    __tablename__ = "organizations"

    id = Column(String, primary_key=True)
    name = Column(String, nullable=False)


class Property(Base):
    __tablename__ = "properties"

    id = Column(String, primary_key=True)
    org_id = Column(String, nullable=False, index=True)
    name = Column(String, nullable=False)
    address = Column(String, nullable=True)


class Tenant(Base):
    __tablename__ = "tenants"

    id = Column(Integer, primary_key=True)
    user_id = Column(String, unique=True, nullable=False)
    property_id = Column(String, nullable=True)
    unit_id = Column(String, nullable=True)


class SmartCase(Base):
    __tablename__ = "smart_cases"

    id = Column(String, primary_key=True)
    org_id = Column(String, nullable=False, index=True)
    property_id = Column(String, nullable=True, index=True)
    unit_id = Column(String, nullable=True)
    tenant_id = Column(String, nullable=True, index=True)  # reporting tenant's user id

    title = Column(String, nullable=False)
    status = Column(String, nullable=False, default="New")  # New/In Review/Scheduled/In Progress/On Hold/Resolved/Closed
    priority = Column(String, nullable=False, default="Medium")  # Low/Medium/High/Urgent
    specialty_id = Column(String, nullable=True)

    assigned_contractor_id = Column(String, nullable=True, index=True)
    is_urgent = Column(Boolean, nullable=False, default=False)
    restrict_to_favorites = Column(Boolean, nullable=False, default=False)
    posted_at = Column(DateTime(timezone=True), nullable=True)


class FavoriteContractor(Base):
    __tablename__ = "favorite_contractors"
    __table_args__ = (UniqueConstraint("org_id", "contractor_user_id"),)

    id = Column(Integer, primary_key=True)
    org_id = Column(String, nullable=False, index=True)
    contractor_user_id = Column(String, nullable=False, index=True)


class ContractorOrgLink(Base):
    __tablename__ = "contractor_org_links"
    __table_args__ = (UniqueConstraint("contractor_user_id", "org_id"),)

    id = Column(Integer, primary_key=True)
    contractor_user_id = Column(String, nullable=False, index=True)
    org_id = Column(String, nullable=False, index=True)
    status = Column(String, nullable=False, default="active")  # active/inactive
    last_job_at = Column(DateTime(timezone=True), nullable=True)


class UserContractorSpecialty(Base):
    __tablename__ = "user_contractor_specialties"
    __table_args__ = (UniqueConstraint("user_id", "specialty_id"),)

    id = Column(Integer, primary_key=True)
    user_id = Column(String, nullable=False, index=True)
    specialty_id = Column(String, nullable=False)


class ContractorProfile(Base):
    __tablename__ = "contractor_profiles"

    user_id = Column(String, primary_key=True)
    is_available = Column(Boolean, nullable=False, default=True)
