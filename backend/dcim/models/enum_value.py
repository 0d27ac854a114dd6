from sqlalchemy import Column, Integer, String, DateTime, UniqueConstraint
from sqlalchemy.sql import func
from dcim.database import Base


class EnumValue(Base):
    """One allowed value of an enumerated server attribute (core or custom)."""
    __tablename__ = "enum_values"
    __table_args__ = (
        UniqueConstraint("enum_key", "value", name="uq_enum_value_key_value"),
    )

    id = Column(Integer, primary_key=True, index=True)
    enum_key = Column(String(100), nullable=False, index=True)
    value = Column(String(255), nullable=False)
    sort_order = Column(Integer, default=0, nullable=False)
    color = Column(String(20), nullable=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now())
