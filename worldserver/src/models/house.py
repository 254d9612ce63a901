"""
SQLAlchemy model for houses (only the auction columns the login layer reads).
"""

from sqlalchemy import Column, Integer, String, BigInteger
from .base import Base


class House(Base):
    __tablename__ = "houses"

    id = Column(Integer, primary_key=True)
    name = Column(String(255), nullable=False)
    owner = Column(Integer, default=0, nullable=False)
    highest_bidder = Column(Integer, default=0, nullable=False, index=True)
    bid = Column(BigInteger, default=0, nullable=False)

    def __repr__(self):
        return f"<House(id={self.id}, name='{self.name}')>"

    __table_args__ = {"extend_existing": True}
