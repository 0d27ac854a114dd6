from sqlalchemy import Column, Integer, String, Boolean, DateTime, Text, JSON
from sqlalchemy.sql import func
from dcim.database import Base


class PropertyDefinition(Base):
    """Administrator-defined custom server attribute.

    Definitions are not versioned: changing property_type or options
    reinterprets values already stored on servers.
    """
    __tablename__ = "property_definitions"

    id = Column(Integer, primary_key=True, index=True)
    key = Column(String(100), unique=True, nullable=False, index=True)
    name = Column(String(100), nullable=False)
    display_name = Column(String(255), nullable=False)
    property_type = Column(String(20), nullable=False, default="text")  # text|number|boolean|date|select|multiselect|enum
    description = Column(Text, nullable=True)
    category = Column(String(100), nullable=True)
    required = Column(Boolean, default=False, nullable=False)
    default_value = Column(Text, nullable=True)     # Stored as text, cast per property_type
    options = Column(JSON, nullable=True)            # List or {"options": [...], ...constraints}
    active = Column(Boolean, default=True, nullable=False, index=True)
    sort_order = Column(Integer, default=0, nullable=False)
    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now())
