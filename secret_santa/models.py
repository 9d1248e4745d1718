"""
models.py
Data Transfer Objects (DTOs) for the Secret Santa service.
Uses Pydantic V2.
"""
from datetime import datetime
from enum import Enum
from typing import Annotated, List, Optional

from pydantic import AfterValidator, BaseModel, ConfigDict, Field

from .clock import as_utc

# Timestamps always leave the API UTC-aware, whatever the driver handed back
UTCDateTime = Annotated[datetime, AfterValidator(as_utc)]

# --- Enums for strict type safety ---

class Role(str, Enum):
    ADMIN = "admin"
    USER = "user"


class MessageType(str, Enum):
    TEXT = "text"
    IMAGE = "image"
    AUDIO = "audio"


class Direction(str, Enum):
    TO = "to"
    FROM = "from"


class GuessResult(str, Enum):
    CORRECT = "correct"
    INCORRECT = "incorrect"
    LIMIT_REACHED = "limit_reached"
    ERROR = "error"


# Display glyphs a user may pick as their avatar
AVATARS = (
    "🎅", "🤶", "🦌", "⛄", "🧝", "🍪",
    "🦊", "🐻", "🐼", "🦁", "🐯", "🦄",
    "🦸‍♂️", "🦸‍♀️", "🦹‍♂️", "🧚", "🧞", "🧜‍♀️",
)
DEFAULT_AVATARS = {Role.ADMIN: "🎅", Role.USER: "👤"}


def default_avatar(role: str) -> str:
    return DEFAULT_AVATARS.get(Role(role), DEFAULT_AVATARS[Role.USER])


# --- Snapshots ---

class WallConfig(BaseModel):
    """Point-in-time read of the app_config table."""
    public_wall_enabled: bool = True

    model_config = ConfigDict(frozen=True)


class LeaderboardEntry(BaseModel):
    username: str
    score: int
    avatar: str


# --- Responses ---

class UserOut(BaseModel):
    username: str
    role: Role
    avatar: Optional[str] = None

    model_config = ConfigDict(from_attributes=True)


class AuthResponse(BaseModel):
    token: str
    user: UserOut


class MessageOut(BaseModel):
    """A gift as its recipient or the wall sees it: no sender."""
    id: str
    to_username: str
    body: str
    type: MessageType
    created_at: UTCDateTime

    model_config = ConfigDict(from_attributes=True)


class SentMessageOut(MessageOut):
    from_username: str
    can_delete: bool = False


class GuessOut(BaseModel):
    id: str
    message_id: str
    guessed_username: str
    is_correct: bool
    created_at: UTCDateTime

    model_config = ConfigDict(from_attributes=True)


class GuessOutcome(BaseModel):
    result: GuessResult
    attempts_used: int = 0
    attempts_left: int = 0
    solved: bool = False


class GameCard(BaseModel):
    message: MessageOut
    guesses: List[GuessOut]
    attempts_left: int
    solved: bool


class CommentOut(BaseModel):
    id: str
    message_id: str
    username: str
    avatar: Optional[str] = None
    body: str
    created_at: UTCDateTime

    model_config = ConfigDict(from_attributes=True)


class UploadResponse(BaseModel):
    url: str


class AdminOpResult(BaseModel):
    success: bool
    error: Optional[str] = None
    temporary_password: Optional[str] = None


# --- API Payloads ---

class RegisterRequest(BaseModel):
    username: str = Field(..., min_length=1, max_length=32)
    password: str = Field(..., min_length=3)
    avatar: Optional[str] = None


class LoginRequest(BaseModel):
    username: str
    password: str


class PasswordUpdateRequest(BaseModel):
    password: str = Field(..., min_length=3)


class AvatarUpdateRequest(BaseModel):
    avatar: str


class SendMessageRequest(BaseModel):
    to: List[str] = Field(..., min_length=1)
    body: str
    type: MessageType = MessageType.TEXT


class GuessRequest(BaseModel):
    message_id: str
    guessed_username: str


class CommentRequest(BaseModel):
    body: str


class CreateUserRequest(BaseModel):
    username: str = Field(..., min_length=1, max_length=32)
    password: Optional[str] = None
    role: Role = Role.USER
