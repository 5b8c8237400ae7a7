"""Employee and job models (read-only collaborators of the response engine)."""
from __future__ import annotations

from sqlalchemy import Column, ForeignKey, Integer, String
from sqlalchemy.orm import relationship

from survey_backend.database import Base
from survey_backend.models.base import EmployeeRole, created_at_column


class Job(Base):
    """Job title used to target growth survey questions."""

    __tablename__ = "jobs"

    id = Column(Integer, primary_key=True, autoincrement=True)
    name = Column(String(100), nullable=False, unique=True)
    code = Column(String(20), nullable=True)

    def __repr__(self) -> str:
        return f"<Job(id={self.id}, name={self.name})>"


class Employee(Base):
    """Survey respondent."""

    __tablename__ = "employees"

    id = Column(Integer, primary_key=True, autoincrement=True)
    name = Column(String(100), nullable=False)
    email = Column(String(255), nullable=False, unique=True)
    role = Column(String(20), nullable=False, default=EmployeeRole.EMPLOYEE.value)
    job_id = Column(Integer, ForeignKey("jobs.id", ondelete="SET NULL"), nullable=True, index=True)
    created_at = created_at_column()

    job = relationship("Job", lazy="joined")

    @property
    def is_admin(self) -> bool:
        return self.role == EmployeeRole.ADMIN.value

    def __repr__(self) -> str:
        return f"<Employee(id={self.id}, role={self.role}, job_id={self.job_id})>"
