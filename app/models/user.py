import uuid

from sqlalchemy import Column, Text
from sqlalchemy.dialects.postgresql import TIMESTAMP, UUID
from sqlalchemy.orm import relationship

from app.database import Base


class User(Base):
    __tablename__ = "users"

    id = Column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4)
    first_name = Column(Text)
    last_name = Column(Text)
    email = Column(Text)
    created_at = Column(TIMESTAMP(timezone=True), nullable=False)

    credentials = relationship("Credential", back_populates="user")
    transactions = relationship("Transaction", back_populates="user")
