from pydantic import BaseModel, Field
from typing import Optional, List


class ProfileCondition(BaseModel):
    """Declared allergy or sensitivity"""

    name: str = Field(..., min_length=1, description="Substance the user reacts to")
    synonyms: List[str] = Field(default_factory=list)
    severity: Optional[str] = Field(None, description="e.g. 'mild', 'medium', 'severe'")
    note: Optional[str] = None

    model_config = {"from_attributes": True}


class UserProfile(BaseModel):
    """Personalization inputs of the score engine"""

    allergies: List[ProfileCondition] = Field(default_factory=list)
    sensitivities: List[ProfileCondition] = Field(default_factory=list)
    dietary_preferences: List[str] = Field(default_factory=list)
    language: str = "en"
    notifications: bool = True

    model_config = {"from_attributes": True}
