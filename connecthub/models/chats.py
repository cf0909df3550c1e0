from sqlalchemy import Table, Column, Integer, Text, DateTime, ForeignKey, func
from . import Base

chat_participants = Table(
    'chat_participants', Base.metadata,
    Column('chat_id', Integer, ForeignKey('chats.id', ondelete='CASCADE'), primary_key=True),
    Column('user_id', Integer, ForeignKey('users.id', ondelete='CASCADE'), primary_key=True, index=True)
)

class Chat(Base):
    __tablename__ = 'chats'
    id = Column(Integer, primary_key=True)
    last_message = Column(Text, nullable=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now(), index=True)
