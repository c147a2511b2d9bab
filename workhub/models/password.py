from sqlalchemy import Column, Integer, String, Text, DateTime, ForeignKey, Table
from sqlalchemy.orm import relationship
from datetime import datetime
from workhub.db.base import Base

password_access = Table(
    'password_access',
    Base.metadata,
    Column('password_id', Integer, ForeignKey('passwords.id', ondelete='CASCADE'), primary_key=True),
    Column('user_id', Integer, ForeignKey('users.id'), primary_key=True)
)


class PasswordEntry(Base):
    __tablename__ = "passwords"

    id = Column(Integer, primary_key=True, index=True)
    name = Column(String(60), nullable=False)
    # Kept readable on purpose: entries are shared secrets users need to see
    value = Column(Text, nullable=False)
    created_at = Column(DateTime, default=datetime.utcnow, index=True)

    access_list = relationship("User", secondary=password_access)

    @property
    def access_list_ids(self):
        return [user.id for user in self.access_list]
