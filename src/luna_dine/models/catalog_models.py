"""Catalog data models.

These models represent branches, languages, tables and the resolved,
translated menu returned to the storefront. JSON columns (branch settings,
item tags) are parsed into these types once, at the repository boundary.
"""

import json
import logging
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, ValidationError

logger = logging.getLogger(__name__)

DEFAULT_VAT_PERCENTAGE = 15.0
DEFAULT_CURRENCY_SYMBOL = "৳"


class BranchSettings(BaseModel):
    """Typed view of the ``branches.settings`` JSON blob.

    Unknown keys are kept so the settings endpoint can return the blob as stored.
    """

    model_config = ConfigDict(extra="allow")

    vat_percentage: float = Field(
        default=DEFAULT_VAT_PERCENTAGE, description="VAT applied to the subtotal", ge=0
    )
    currency_symbol: str = Field(
        default=DEFAULT_CURRENCY_SYMBOL, description="Symbol shown next to prices"
    )

    @classmethod
    def from_json(cls, raw: str | None) -> "BranchSettings":
        """Parse a settings blob, falling back to defaults for anything unusable.

        Args:
            raw: JSON text from the database (may be None or malformed)

        Returns:
            BranchSettings: Parsed settings with defaults applied
        """
        if not raw:
            return cls()

        try:
            data = json.loads(raw)
        except (TypeError, ValueError):
            logger.warning("Ignoring malformed branch settings JSON")
            return cls()

        if not isinstance(data, dict):
            return cls()

        try:
            return cls(**data)
        except ValidationError:
            logger.warning("Branch settings failed validation, using defaults")
            extras = {k: v for k, v in data.items() if k not in ("vat_percentage", "currency_symbol")}
            return cls(**extras)


def parse_tags(raw: str | None) -> list[str]:
    """Parse the ``master_menu_items.tags`` column into a list of strings.

    Returns an empty list when the column is null, malformed or not a list.
    """
    if not raw:
        return []
    try:
        data = json.loads(raw)
    except (TypeError, ValueError):
        return []
    if not isinstance(data, list):
        return []
    return [str(tag) for tag in data if tag is not None]


class Language(BaseModel):
    """Active language offered by the storefront."""

    id: int
    code: str
    name: str


class BranchSummary(BaseModel):
    """Branch as listed by the branches endpoint."""

    id: int
    name: str
    address: str | None = None
    status: str
    phone: str | None = None
    default_language: str = Field(..., description="Code of the branch default language")
    language_name: str = Field(..., description="Name of the branch default language")


class BranchSettingsView(BaseModel):
    """Branch settings with the branch identity and default language attached."""

    branch_id: int
    default_language: str
    language_name: str
    settings: BranchSettings

    def to_response(self) -> dict[str, Any]:
        """Flatten into the settings-endpoint shape (settings keys at top level)."""
        data = self.settings.model_dump()
        data["branch_id"] = self.branch_id
        data["default_language"] = self.default_language
        data["language_name"] = self.language_name
        return data


class RestaurantTable(BaseModel):
    id: int
    table_identifier: str
    capacity: int


class CustomizationOption(BaseModel):
    id: int
    name: str | None = None
    price: float = Field(..., description="Additional price of this option")


class CustomizationGroup(BaseModel):
    id: int
    name: str | None = None
    type: str = Field(..., description="Selection type: 'single' or 'multiple'")
    options: list[CustomizationOption] = Field(default_factory=list)


class MenuItem(BaseModel):
    """Sellable branch menu item with translated display text."""

    branch_menu_item_id: int
    price: float
    is_available: bool
    master_item_id: int
    image_url: str | None = None
    tags: list[str] = Field(default_factory=list)
    category_id: int
    name: str = Field(..., description="Translated name, empty when no translation exists")
    description: str | None = None
    customizations: list[CustomizationGroup] = Field(default_factory=list)


class MenuCategory(BaseModel):
    id: int
    name: str
    items: list[MenuItem] = Field(default_factory=list)


class MenuResponse(BaseModel):
    """Resolved menu for one branch in one language."""

    categories: list[MenuCategory] = Field(default_factory=list)
    language: str = Field(..., description="Language code the menu was resolved for")
