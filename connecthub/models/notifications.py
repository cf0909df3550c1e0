from sqlalchemy import Column, Integer, String, Text, Boolean, DateTime, ForeignKey, func
from . import Base

class Notification(Base):
    __tablename__ = 'notifications'
    id = Column(Integer, primary_key=True)
    user_id = Column(Integer, ForeignKey('users.id', ondelete='CASCADE'), index=True)
    kind = Column(String(50), nullable=False)
    payload = Column(Text, nullable=False)
    read = Column(Boolean, default=False)
    created_at = Column(DateTime(timezone=True), server_default=func.now())
