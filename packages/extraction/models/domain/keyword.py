from pydantic import BaseModel, Field


class Keyword(BaseModel):
    """Entity returned by the extraction service."""

    name: str
    type: str
    salience: float = Field(ge=0, le=1)
