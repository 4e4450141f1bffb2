from dataclasses import dataclass
from typing import Optional


@dataclass
class AuthUser:
    id: str
    email: str
    name: Optional[str] = None
    picture: Optional[str] = None
    email_verified: Optional[bool] = None
    exp: Optional[int] = None
