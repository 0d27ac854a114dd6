from sqlalchemy import Column, Integer, String, DateTime, Text, JSON
from sqlalchemy.sql import func
from dcim.database import Base


class Server(Base):
    __tablename__ = "servers"

    id = Column(Integer, primary_key=True, index=True)
    hostname = Column(String(255), unique=True, nullable=False, index=True)
    serial_number = Column(String(100), nullable=True)
    status = Column(String(50), nullable=False, default="Active", index=True)
    device_type = Column(String(50), nullable=False)
    dc_site = Column(String(100), nullable=False, index=True)
    brand = Column(String(100), nullable=True)
    model = Column(String(100), nullable=True)
    ip_address = Column(String(50), nullable=True)
    notes = Column(Text, nullable=True)

    # Rack placement: occupies position, position-1, ... position-(unit_height-1)
    rack = Column(String(100), nullable=True, index=True)
    position = Column(Integer, nullable=True)
    unit_height = Column(Integer, nullable=False, default=1)

    # Values of active PropertyDefinitions, keyed by definition key
    properties = Column(JSON, nullable=False, default=dict)

    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now())
