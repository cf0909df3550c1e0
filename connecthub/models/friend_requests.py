from sqlalchemy import Column, Integer, String, DateTime, ForeignKey, Index, UniqueConstraint, func
from . import Base

PENDING = 'pending'
ACCEPTED = 'accepted'
REJECTED = 'rejected'

class FriendRequest(Base):
    __tablename__ = 'friend_requests'
    id = Column(Integer, primary_key=True)
    from_user = Column(Integer, ForeignKey('users.id', ondelete='CASCADE'), index=True, nullable=False)
    to_user = Column(Integer, ForeignKey('users.id', ondelete='CASCADE'), index=True, nullable=False)
    status = Column(String(16), default=PENDING, nullable=False)  # pending, accepted, rejected
    created_at = Column(DateTime(timezone=True), server_default=func.now())
    __table_args__ = (
        UniqueConstraint('from_user', 'to_user', name='uix_friend_request_pair'),
        # friends lists are read as accepted requests on either endpoint
        Index('ix_friend_requests_status_from_user', 'status', 'from_user'),
        Index('ix_friend_requests_status_to_user', 'status', 'to_user'),
    )
