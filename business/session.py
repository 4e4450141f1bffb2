from dataclasses import dataclass
from typing import Optional

from database.documents.store import DocumentStore
from database.documents.users import User
from integrations.storage import ImageStorage


@dataclass
class Session:
    """The acting user together with the collaborators every core operation needs."""

    user: User
    store: DocumentStore
    storage: Optional[ImageStorage] = None

    @property
    def user_id(self) -> str:
        return self.user.id
