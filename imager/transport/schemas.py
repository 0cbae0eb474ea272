# imager/transport/schemas.py
from pydantic import BaseModel, Field


class ImageInfoOut(BaseModel):
    width: int = Field(ge=2)
    height: int = Field(ge=2)
    input_format: str
    output_format: str
    orientation: int = Field(ge=1, le=8)


class ErrorOut(BaseModel):
    error: str
