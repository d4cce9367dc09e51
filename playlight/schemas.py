from datetime import date, datetime
from typing import List, Optional

from pydantic import BaseModel, ConfigDict, EmailStr, Field


class CamelIn(BaseModel):
    model_config = ConfigDict(populate_by_name=True)


class RegisterIn(CamelIn):
    user_name: str = Field(alias="userName")
    email: str
    password: str


class LoginIn(BaseModel):
    email: str
    password: str


class LoginOut(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    message: str
    bearer_token: str = Field(serialization_alias="bearerToken")
    id: int
    user_name: str = Field(serialization_alias="userName")


class AccountDeleteIn(BaseModel):
    id: int
    password: str


class ResetRequestIn(BaseModel):
    email: str


class ResetPasswordIn(CamelIn):
    token: str
    new_password: str = Field(alias="newPassword")


class UserOut(BaseModel):
    id: int
    user_name: str
    email: str
    is_admin: bool
    created_at: Optional[datetime] = None

    class Config:
        from_attributes = True


class CallerIn(BaseModel):
    id: int


class WhitelistIn(CallerIn):
    email: str


class WhitelistEntryOut(BaseModel):
    id: int
    email: str
    created_at: Optional[datetime] = None

    class Config:
        from_attributes = True


class GameCreateIn(CamelIn):
    id: int
    name: str
    category: str
    description: str
    domain: str
    logo_url: Optional[str] = Field(default=None, alias="logoUrl")
    cover_image_url: Optional[str] = Field(default=None, alias="coverImageUrl")
    cover_video_url: Optional[str] = Field(default=None, alias="coverVideoUrl")


class GameUpdateIn(CamelIn):
    id: int
    name: Optional[str] = None
    category: Optional[str] = None
    description: Optional[str] = None
    domain: Optional[str] = None
    logo_url: Optional[str] = Field(default=None, alias="logoUrl")
    cover_image_url: Optional[str] = Field(default=None, alias="coverImageUrl")
    cover_video_url: Optional[str] = Field(default=None, alias="coverVideoUrl")
    boost_factor: Optional[float] = Field(default=None, alias="boostFactor", ge=0)
    featured_game: Optional[int] = Field(default=None, alias="featuredGame")
    feature_days: Optional[int] = Field(default=None, alias="featureDays", ge=0, le=365)


class GameDeleteIn(CallerIn):
    password: str


class StatisticsRequestIn(CallerIn):
    days: int = Field(default=7, ge=1, le=366)


class GameOut(BaseModel):
    id: int
    name: str
    category: str
    description: str
    domain: str
    owner_id: int
    logo_url: Optional[str] = None
    cover_image_url: Optional[str] = None
    cover_video_url: Optional[str] = None
    boost_factor: float = 1.0
    likes: int = 0
    featured_game: Optional[int] = None
    feature_expires_at: Optional[datetime] = None
    created_at: Optional[datetime] = None

    class Config:
        from_attributes = True


class GameListOut(BaseModel):
    games: List[GameOut]


class StatisticsDayOut(BaseModel):
    date: date
    clicks: int
    playlight_opens: int
    referrals: int

    class Config:
        from_attributes = True


class OpenEventIn(BaseModel):
    domain: str


class ClickEventIn(CamelIn):
    game_id: int = Field(alias="gameId")
    source_domain: str = Field(alias="sourceDomain")


class ContactIn(BaseModel):
    email: EmailStr
    website: str
    message: str


class UploadDeleteIn(CallerIn):
    keys: List[str] = Field(min_length=1, max_length=20)


class UploadOut(BaseModel):
    url: str
    key: str
    name: Optional[str] = None
