import uuid
from enum import Enum

from sqlalchemy import Column, ForeignKey, Text
from sqlalchemy.dialects.postgresql import TIMESTAMP, UUID
from sqlalchemy.orm import relationship

from app.database import Base


class CredentialType(str, Enum):
    SLACK_TOKEN = "slack_token"
    TRELLO_API_KEY = "trello_api_key"
    TRELLO_SECRET = "trello_secret"


class Credential(Base):
    __tablename__ = "credentials"

    id = Column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4)
    user_id = Column(UUID(as_uuid=True), ForeignKey("users.id"), nullable=False)
    credential_type = Column(Text, nullable=False)  # slack_token, trello_api_key, trello_secret
    value = Column(Text, nullable=False)
    created_at = Column(TIMESTAMP(timezone=True), nullable=False)

    user = relationship("User", back_populates="credentials")
