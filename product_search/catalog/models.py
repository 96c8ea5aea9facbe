"""Product catalog data models."""

from typing import Any

from pydantic import BaseModel, Field, field_validator


class ProductRecord(BaseModel):
    """A product row from the system of record.

    Attributes:
        id: Opaque unique identifier, used as the index upsert key.
        name: Product name.
        description: Free-text description.
        image_url: Primary image URL.
        price: Non-negative price.
        category: Category key.
        brand: Brand key.
        source: Originating store or feed.
        metadata: Open-ended attributes, opaque to ranking.
    """

    id: str = Field(min_length=1, description="Product identifier")
    name: str = Field(default="", description="Product name")
    description: str | None = Field(default=None, description="Description")
    image_url: str | None = Field(default=None, description="Image URL")
    price: float | None = Field(default=None, ge=0, description="Price")
    category: str | None = Field(default=None, description="Category")
    brand: str | None = Field(default=None, description="Brand")
    source: str | None = Field(default=None, description="Source store")
    metadata: dict[str, Any] | None = Field(
        default=None,
        description="Additional attributes",
    )

    @field_validator("id", mode="before")
    @classmethod
    def coerce_id(cls, value: Any) -> Any:
        """Numeric ids are stored as strings."""
        if isinstance(value, int | float) and not isinstance(value, bool):
            return str(value)
        return value

    @field_validator("name", mode="before")
    @classmethod
    def coerce_name(cls, value: Any) -> Any:
        """A missing name is an empty string."""
        return "" if value is None else value

    @field_validator("metadata", mode="before")
    @classmethod
    def drop_non_dict_metadata(cls, value: Any) -> Any:
        """Only mappings are kept as metadata."""
        return value if isinstance(value, dict) else None

    def embedding_text(self) -> str:
        """Canonical text used to embed this product.

        Brand, name, category and description joined by single spaces,
        skipping absent or blank fields. Falls back to the id so every
        product has something to embed.
        """
        parts = (self.brand, self.name, self.category, self.description)
        text = " ".join(part.strip() for part in parts if part and part.strip())
        return text or self.id
