"""
Document Schemas for the Bio.Link page builder

Each Pydantic model corresponds to a collection in the document store.
The collection name is the lowercase of the class name.
Field names are the wire contract with the store and must not change.

Collections:
- User: identity record (email + password hash)
- Session: signed-in session keyed by an opaque access token
- Profile: one public page per user, keyed by the user id
- Link: outbound links shown on the page, ordered by order_index
"""
from pydantic import BaseModel, Field, EmailStr
from typing import Optional, Dict

USERNAME_PATTERN = r"^[a-zA-Z0-9_-]+$"

SOCIAL_PLATFORMS = ("email", "instagram", "youtube", "telegram", "twitter")

class User(BaseModel):
    email: EmailStr
    password_hash: str = Field(..., description="salt$pbkdf2 hex digest")
    verified: bool = False
    otp_code: Optional[str] = Field(None, description="Pending one-time code, cleared once used")
    otp_expires_at: Optional[float] = Field(None, description="Epoch seconds after which the code is void")
    otp_attempts: int = Field(0, ge=0, description="Wrong guesses against the pending code")

class Session(BaseModel):
    user_id: str
    email: str
    access_token: str = Field(..., description="Opaque handle carried by the session cookie")
    expires_at: Optional[float] = Field(None, description="Epoch seconds; None never expires")

class Profile(BaseModel):
    id: str = Field(..., description="Owner user id (one profile per user)")
    username: str = Field(..., pattern=USERNAME_PATTERN, description="Unique handle, immutable after creation")
    display_name: Optional[str] = ""
    bio: Optional[str] = ""
    avatar_url: Optional[str] = None
    theme_id: Optional[str] = Field(default="default", description="Theme key, unknown keys fall back to default")
    button_color: Optional[str] = None
    button_text_color: Optional[str] = None
    social_email: Optional[str] = ""
    social_instagram: Optional[str] = ""
    social_youtube: Optional[str] = ""
    social_telegram: Optional[str] = ""
    social_twitter: Optional[str] = ""

    @property
    def social_links(self) -> Dict[str, str]:
        """Platform key -> url/handle for every non-empty social field."""
        out = {}
        for platform in SOCIAL_PLATFORMS:
            value = getattr(self, f"social_{platform}")
            if value:
                out[platform] = value
        return out

class Link(BaseModel):
    id: Optional[str] = Field(None, description="Assigned by the store on insert")
    user_id: str = Field(..., description="Owner user id")
    title: str = "New Link"
    url: str = ""
    is_enabled: bool = True
    order_index: int = Field(0, ge=0)
    image_url: Optional[str] = None
    icon: Optional[str] = None
