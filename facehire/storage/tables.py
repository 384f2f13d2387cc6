from sqlalchemy import Column, DateTime, Float, Integer, JSON, String, func
from sqlalchemy.orm import DeclarativeBase


class Base(DeclarativeBase):
    pass


class InterviewRecord(Base):
    __tablename__ = "interviews"

    id = Column(String, primary_key=True)
    candidate_id = Column(String, nullable=False, index=True)
    interviewer = Column(String, nullable=False)
    scheduled_at = Column(DateTime, nullable=False)
    status = Column(String, nullable=False, default="upcoming")  # upcoming, completed
    session_id = Column(String, nullable=True)
    created_at = Column(DateTime, default=func.now())


class SessionReportRecord(Base):
    __tablename__ = "interview_sessions"

    id = Column(String, primary_key=True)
    interview_id = Column(String, nullable=False, index=True)
    candidate_id = Column(String, nullable=False, index=True)
    category = Column(String, nullable=False)
    question_count = Column(Integer, nullable=False)
    total_score_percent = Column(Float, nullable=False)
    document = Column(JSON, nullable=False)  # full report as written
    completed_at = Column(DateTime, nullable=False)


class ConfigRecord(Base):
    __tablename__ = "config"

    id = Column(String, primary_key=True)
    data = Column(JSON, nullable=False)
