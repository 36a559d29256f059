"""Request models for the storefront API."""
from typing import Optional

from pydantic import BaseModel, Field


class VariantModel(BaseModel):
    fabricType: Optional[str] = None
    color: Optional[str] = None
    size: Optional[str] = None

    def as_mapping(self) -> dict:
        return self.model_dump(exclude_none=True)


class AddToCartRequest(BaseModel):
    product_id: str
    quantity: int = Field(default=1, ge=1)
    variant: VariantModel = Field(default_factory=VariantModel)
    color_variant_id: Optional[str] = None


class UpdateCartItemRequest(BaseModel):
    product_id: str
    variant: VariantModel = Field(default_factory=VariantModel)
    quantity: int = Field(ge=0)  # 0 removes the line


class RemoveCartItemRequest(BaseModel):
    product_id: str
    variant: VariantModel = Field(default_factory=VariantModel)


class SignInRequest(BaseModel):
    user_id: str = Field(min_length=1)
