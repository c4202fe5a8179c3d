from pydantic import BaseModel, Field


class SessionIdentity(BaseModel):
    user_id: str = Field(min_length=1, max_length=128)
    name: str = Field(default="", max_length=256)
    provider: str = Field(default="", max_length=32)
    # False when the session cookie is genuine but has expired.
    authenticated: bool = True


class ProviderProfile(BaseModel):
    """Profile fields kept from an OAuth provider's user endpoint."""

    id: str = Field(min_length=1, max_length=128)
    name: str = Field(default="", max_length=256)
    provider: str
