from pydantic import BaseModel


class LocationRead(BaseModel):
    id: int
    address: str
    corridor: int
    row: str
    col: int


class LocationResolved(BaseModel):
    input: str
    location_id: int
