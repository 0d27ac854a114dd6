from sqlalchemy import Column, Integer, String, DateTime, Text
from sqlalchemy.sql import func
from dcim.database import Base


class Rack(Base):
    __tablename__ = "racks"

    id = Column(Integer, primary_key=True, index=True)
    name = Column(String(100), unique=True, nullable=False, index=True)
    datacenter = Column(String(100), nullable=True, index=True)
    floor = Column(Integer, nullable=True)
    room = Column(String(100), nullable=True)
    description = Column(Text, nullable=True)
    total_units = Column(Integer, nullable=False, default=42)
    created_at = Column(DateTime(timezone=True), server_default=func.now())
