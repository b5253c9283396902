import uuid
from datetime import datetime, timezone

from sqlalchemy import Boolean, Column, DateTime, Float, ForeignKey, Integer, String, create_engine
from sqlalchemy.orm import declarative_base, relationship, sessionmaker

from crewplan.config.settings import get_settings

settings = get_settings()


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


def _uuid() -> str:
    return str(uuid.uuid4())


def build_engine(url: str, **kwargs):
    if url.startswith("sqlite"):
        kwargs.setdefault("connect_args", {"check_same_thread": False})
    return create_engine(url, pool_pre_ping=True, echo=False, **kwargs)


engine = build_engine(settings.database_url)
SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)
Base = declarative_base()


class UserModel(Base):
    __tablename__ = "users"

    id = Column(String, primary_key=True, default=_uuid)
    role = Column(String, nullable=False, default="technician")  # admin | technician
    name = Column(String, nullable=False)
    email = Column(String, nullable=True)
    phone = Column(String, nullable=True)
    is_validated = Column(Boolean, nullable=False, default=False)
    created_at = Column(DateTime(timezone=True), default=_utcnow)
    updated_at = Column(DateTime(timezone=True), default=_utcnow, onupdate=_utcnow)


class MissionModel(Base):
    __tablename__ = "missions"

    id = Column(String, primary_key=True, default=_uuid)
    title = Column(String, nullable=False)
    type = Column(String, nullable=True)
    location = Column(String, nullable=True)
    date_start = Column(DateTime(timezone=True), nullable=False)
    date_end = Column(DateTime(timezone=True), nullable=False)
    forfeit = Column(Float, nullable=False, default=0.0)
    required_people = Column(Integer, nullable=False, default=1)
    created_at = Column(DateTime(timezone=True), default=_utcnow)
    updated_at = Column(DateTime(timezone=True), default=_utcnow, onupdate=_utcnow)

    assignments = relationship("AssignmentModel", back_populates="mission")


class AvailabilityModel(Base):
    __tablename__ = "availability"

    id = Column(String, primary_key=True, default=_uuid)
    technician_id = Column(String, ForeignKey("users.id"), nullable=False, index=True)
    start_time = Column(DateTime(timezone=True), nullable=False)
    end_time = Column(DateTime(timezone=True), nullable=False)
    created_at = Column(DateTime(timezone=True), default=_utcnow)


class UnavailabilityModel(Base):
    __tablename__ = "unavailability"

    id = Column(String, primary_key=True, default=_uuid)
    technician_id = Column(String, ForeignKey("users.id"), nullable=False, index=True)
    start_time = Column(DateTime(timezone=True), nullable=False)
    end_time = Column(DateTime(timezone=True), nullable=False)
    reason = Column(String, nullable=True)
    created_at = Column(DateTime(timezone=True), default=_utcnow)


class AssignmentModel(Base):
    __tablename__ = "mission_assignments"

    # No unique (mission_id, technician_id): re-proposing a rejected technician adds a row
    id = Column(String, primary_key=True, default=_uuid)
    mission_id = Column(String, ForeignKey("missions.id"), nullable=False, index=True)
    technician_id = Column(String, ForeignKey("users.id"), nullable=False, index=True)
    status = Column(String, nullable=False, default="proposed")
    assigned_at = Column(DateTime(timezone=True), default=_utcnow)
    responded_at = Column(DateTime(timezone=True), nullable=True)

    mission = relationship("MissionModel", back_populates="assignments")


class BillingModel(Base):
    __tablename__ = "billing"

    id = Column(String, primary_key=True, default=_uuid)
    mission_id = Column(String, ForeignKey("missions.id"), nullable=False)
    technician_id = Column(String, ForeignKey("users.id"), nullable=False)
    amount = Column(Float, nullable=False)
    status = Column(String, nullable=False, default="pending")
    payment_date = Column(DateTime(timezone=True), nullable=True)
    notes = Column(String, nullable=True)
    created_at = Column(DateTime(timezone=True), default=_utcnow)
    updated_at = Column(DateTime(timezone=True), default=_utcnow, onupdate=_utcnow)


def init_db(bind=None):
    Base.metadata.create_all(bind=bind or engine)


def get_db():
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()
