from dataclasses import dataclass, field
from typing import Iterable, Optional

from sqlalchemy.orm import Session

from app.models import Credential, CredentialType, User
from app.services.user_service import find_credentials, get_user_by_id, parse_user_id

MSG_INVALID_USER_ID = "Unknown user id format."
MSG_USER_NOT_FOUND = "User not found."
MSG_NO_CREDENTIALS = "please set your API keys."


@dataclass
class CredentialCheck:
    ok: bool
    reason: str = ""
    user: Optional[User] = None
    credentials: list[Credential] = field(default_factory=list)


def check_credentials(db: Session, user_id: str) -> CredentialCheck:
    """Decide whether the user may send messages to the hub."""
    parsed_id = parse_user_id(user_id)
    if parsed_id is None:
        return CredentialCheck(ok=False, reason=MSG_INVALID_USER_ID)

    user = get_user_by_id(db, parsed_id)
    if user is None:
        return CredentialCheck(ok=False, reason=MSG_USER_NOT_FOUND)

    credentials = find_credentials(db, user.id)
    if not credentials:
        return CredentialCheck(ok=False, reason=MSG_NO_CREDENTIALS, user=user)

    return CredentialCheck(ok=True, user=user, credentials=list(credentials))


def get_credential_value(credentials: Iterable[Credential], credential_type: CredentialType) -> Optional[str]:
    """Value of the first non-empty credential of the given type."""
    for credential in credentials:
        if credential.credential_type == credential_type.value and credential.value:
            return credential.value
    return None
