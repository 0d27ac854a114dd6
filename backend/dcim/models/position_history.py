from sqlalchemy import Column, Integer, String, DateTime, ForeignKey, Text
from sqlalchemy.sql import func
from dcim.database import Base


class ServerPositionHistory(Base):
    """One move of a server between sites, racks or rack units."""
    __tablename__ = "server_position_history"

    id = Column(Integer, primary_key=True, index=True)
    server_id = Column(Integer, ForeignKey("servers.id", ondelete="CASCADE"), nullable=False, index=True)

    previous_site = Column(String(100), nullable=True)
    previous_rack = Column(String(100), nullable=True)
    previous_position = Column(Integer, nullable=True)
    previous_unit_height = Column(Integer, nullable=True)

    new_site = Column(String(100), nullable=True)
    new_rack = Column(String(100), nullable=True)
    new_position = Column(Integer, nullable=True)
    new_unit_height = Column(Integer, nullable=True)

    changed_by = Column(String(100), nullable=True)
    notes = Column(Text, nullable=True)
    changed_at = Column(DateTime(timezone=True), server_default=func.now(), index=True)
