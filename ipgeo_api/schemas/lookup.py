from pydantic import BaseModel, Field

class CodeName(BaseModel):
    code: str = ""
    name: str = ""

class Location(BaseModel):
    latitude: float = 0.0
    longitude: float = 0.0

class LookupResult(BaseModel):
    """Response body for a single address lookup.

    Only ``ip`` is guaranteed; every other field keeps its zero value when
    the datasets have nothing for the address.
    """
    ip: str
    city: str = ""
    region: str = ""
    country: CodeName = Field(default_factory=CodeName)
    continent: CodeName = Field(default_factory=CodeName)
    location: Location = Field(default_factory=Location)
    postal: str = ""
    asn: int = Field(0, ge=0)
    organization: str = ""
