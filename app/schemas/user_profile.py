from pydantic import BaseModel
from typing import Any, Dict, List, Optional, Union


class UserProfileUpsert(BaseModel):
    display_name: Optional[str] = None
    avatar_url: Optional[str] = None
    bio: Optional[str] = None
    website: Optional[str] = None
    company_name: Optional[str] = None
    location: Optional[str] = None
    social_links: Optional[Union[Dict[str, Any], List[Any]]] = None
    metadata: Optional[Dict[str, Any]] = None
