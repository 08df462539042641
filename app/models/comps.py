import datetime

from pydantic import BaseModel, Field


class CompSale(BaseModel):
    """A comparable sale entered in the financial analysis view."""

    name: str = ""
    price: float = Field(ge=0)
    date: datetime.date
