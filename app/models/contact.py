from datetime import datetime

from pydantic import BaseModel, ConfigDict, Field


class Contact(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    id: str | None = None
    seller_name: str = Field(alias="sellerName", min_length=1)
    seller_phone: str | None = Field(default=None, alias="sellerPhone")
    seller_email: str | None = Field(default=None, alias="sellerEmail")
    timestamp: datetime | None = None
    user_id: str | None = Field(default=None, alias="userId")

    def to_document(self) -> dict:
        return self.model_dump(mode="json", by_alias=True, exclude_none=True, exclude={"id", "timestamp"})
