from sqlalchemy import Table, Column, Integer, String, ForeignKey
from . import Base

# one row per (user, tag); mirrors users.interests so overlap can be queried
user_interests = Table(
    'user_interests', Base.metadata,
    Column('user_id', Integer, ForeignKey('users.id', ondelete='CASCADE'), primary_key=True),
    Column('interest', String(50), primary_key=True, index=True)
)
