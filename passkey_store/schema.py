from pydantic import BaseModel, ConfigDict, Field

# WebAuthn signature counters are unsigned 32-bit values
MAX_COUNTER = 2**32 - 1


class PasskeyCredential(BaseModel):
    id: str = Field(min_length=1)
    rp_id: str = Field(min_length=1)
    rp_name: str = Field(min_length=1)
    user_id: str = Field(min_length=1)
    username: str = Field(min_length=1)
    counter: int = Field(ge=0, le=MAX_COUNTER, default=0)
    key: str = Field(min_length=1, repr=False)  # key material, kept out of repr

    model_config = ConfigDict(from_attributes=True, frozen=True)
