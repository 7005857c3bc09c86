"""
Vehicle database model.

Vehicles are registered against an Account and identified at the gate by
their RFID tag.
"""

from sqlalchemy import Column, Integer, String, Boolean, DateTime, ForeignKey, Enum, Index
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func
from tollway.app.db.session import Base
from tollway.app.models.enums import VehicleType, CapacityClass


class Vehicle(Base):
    """
    Vehicle model.

    At most one ACTIVE vehicle may carry a given RFID tag; the partial unique
    index below enforces it at the database level. Tags are stored upper-cased.
    """
    __tablename__ = "vehicles"

    id = Column(Integer, primary_key=True, index=True, autoincrement=True)

    # Ownership
    account_id = Column(Integer, ForeignKey("accounts.id"), nullable=False, index=True)

    # Identification
    registration_number = Column(String(50), unique=True, nullable=False, index=True)
    make = Column(String(100), nullable=True)
    model = Column(String(100), nullable=True)
    vehicle_type = Column(Enum(VehicleType), nullable=False, default=VehicleType.CAR)
    capacity_class = Column(Enum(CapacityClass), nullable=False, default=CapacityClass.LIGHT)

    # Nullable until a tag is issued
    rfid_tag = Column(String(255), nullable=True, index=True)

    is_active = Column(Boolean, default=True, nullable=False, index=True)

    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now(), nullable=False)

    account = relationship("Account", lazy="raise")

    __table_args__ = (
        Index(
            "ix_vehicles_active_rfid_tag", "rfid_tag", unique=True,
            postgresql_where=(is_active.is_(True)),
            sqlite_where=(is_active.is_(True)),
        ),
    )

    def __repr__(self):
        return f"<Vehicle(id={self.id}, registration='{self.registration_number}', rfid='{self.rfid_tag}')>"
