"""
SQLAlchemy Models for the local ClassPulse store

Mirrors the hosted Supabase tables the cache and performance sync read:
students, assessments, assessment items, student responses, goals and the
derived student_performance summary.
"""

from datetime import datetime, timezone
from uuid import uuid4

from sqlalchemy import (
    Boolean, Column, Date, DateTime, Float, ForeignKey, Integer, String, Text,
    UniqueConstraint,
)
from sqlalchemy.orm import declarative_base, relationship

Base = declarative_base()


def _uuid() -> str:
    return str(uuid4())


def _now() -> datetime:
    return datetime.now(timezone.utc)


class Student(Base):
    __tablename__ = "students"

    id = Column(String(36), primary_key=True, default=_uuid)
    teacher_id = Column(String(36), nullable=False, index=True)
    first_name = Column(String(100), nullable=False)
    last_name = Column(String(100), nullable=False)
    grade_level = Column(String(20))
    parent_email = Column(String(255))
    created_at = Column(DateTime(timezone=True), default=_now)

    responses = relationship("StudentResponse", back_populates="student", cascade="all, delete-orphan")


class Assessment(Base):
    __tablename__ = "assessments"

    id = Column(String(36), primary_key=True, default=_uuid)
    teacher_id = Column(String(36), nullable=False, index=True)
    title = Column(String(255), nullable=False)
    subject = Column(String(100))
    assessment_type = Column(String(50))
    assessment_date = Column(Date)
    max_score = Column(Float)
    created_at = Column(DateTime(timezone=True), default=_now)

    items = relationship("AssessmentItem", back_populates="assessment", cascade="all, delete-orphan")


class AssessmentItem(Base):
    __tablename__ = "assessment_items"

    id = Column(String(36), primary_key=True, default=_uuid)
    assessment_id = Column(String(36), ForeignKey("assessments.id"), nullable=False, index=True)
    item_number = Column(Integer, nullable=False, default=1)
    max_score = Column(Float, nullable=False)
    created_at = Column(DateTime(timezone=True), default=_now)

    assessment = relationship("Assessment", back_populates="items")


class StudentResponse(Base):
    __tablename__ = "student_responses"

    id = Column(String(36), primary_key=True, default=_uuid)
    student_id = Column(String(36), ForeignKey("students.id"), nullable=False, index=True)
    assessment_id = Column(String(36), ForeignKey("assessments.id"), nullable=False)
    assessment_item_id = Column(String(36), ForeignKey("assessment_items.id"), nullable=False)
    score = Column(Float, nullable=False)
    created_at = Column(DateTime(timezone=True), default=_now)

    student = relationship("Student", back_populates="responses")
    item = relationship("AssessmentItem")
    assessment = relationship("Assessment")


class Goal(Base):
    __tablename__ = "goals"

    id = Column(String(36), primary_key=True, default=_uuid)
    student_id = Column(String(36), ForeignKey("students.id"), nullable=False, index=True)
    title = Column(String(255), nullable=False)
    description = Column(Text)
    status = Column(String(30), default="active")
    progress_percentage = Column(Integer, default=0)
    target_date = Column(Date)
    created_at = Column(DateTime(timezone=True), default=_now)


class StudentPerformance(Base):
    __tablename__ = "student_performance"
    __table_args__ = (UniqueConstraint("student_id", name="uq_student_performance_student"),)

    id = Column(String(36), primary_key=True, default=_uuid)
    student_id = Column(String(36), ForeignKey("students.id"), nullable=False)
    assessment_count = Column(Integer, nullable=False, default=0)
    average_score = Column(Float)
    performance_level = Column(String(20))
    needs_attention = Column(Boolean, nullable=False, default=False)
    last_assessment_date = Column(Date)
    created_at = Column(DateTime(timezone=True), default=_now)
    updated_at = Column(DateTime(timezone=True), default=_now, onupdate=_now)
