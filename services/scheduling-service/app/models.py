from sqlalchemy import Column, String, DateTime
from .db import Base


class Appointment(Base):
    __tablename__ = "appointments"

    id = Column(String, primary_key=True)
    case_id = Column(String, nullable=False, index=True)
    contractor_id = Column(String, nullable=False, index=True)
    org_id = Column(String, nullable=True, index=True)

    # unscheduled appointments have no times yet
    scheduled_start_at = Column(DateTime(timezone=True), nullable=True)
    scheduled_end_at = Column(DateTime(timezone=True), nullable=True)

    status = Column(String, nullable=False, default="Scheduled")  # Scheduled/In Progress/Completed/Cancelled/No Show
