"""
Outbox lease model (which process currently drains an outbox)
"""
from sqlalchemy import Column, DateTime, String
from geoattend.db.base import Base


class OutboxLease(Base):
    __tablename__ = "outbox_leases"

    name = Column(String, primary_key=True)  # outbox table the lease guards
    owner = Column(String, nullable=True)  # host:pid:token of the holder
    expires_at = Column(DateTime(timezone=True), nullable=True)  # NULL => free
