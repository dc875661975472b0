from pydantic import BaseModel, Field
from typing import Literal


class UserSettingsUpsert(BaseModel):
    notifications_email: bool = True
    notifications_push: bool = True
    language: str = Field("en", min_length=2, max_length=10)
    timezone: str = Field("UTC", min_length=1)
    profile_visibility: Literal["public", "private"] = "public"
    marketing_opt_in: bool = False
