"""Catalog service for resolving translated branch menus."""

import logging
import time

from luna_dine.models.catalog_models import (
    BranchSettingsView,
    BranchSummary,
    Language,
    MenuCategory,
    MenuResponse,
    RestaurantTable,
)
from luna_dine.observability import annotate_span, traced
from luna_dine.observability.metrics import record_menu_resolve_duration
from luna_dine.repositories.catalog_repository import CatalogRepository
from luna_dine.services.errors import NotFoundError
from luna_dine.services.translation import LanguageResolver

logger = logging.getLogger(__name__)


class CatalogService:
    """Service for reading branches, languages, tables and menus.

    Menus are resolved per request in the requested language, falling back to
    the default language for any missing translation. Nothing is cached.
    """

    def __init__(self, catalog_repository: CatalogRepository) -> None:
        """Initialize the CatalogService.

        Args:
            catalog_repository: Repository for catalog reads
        """
        self.catalog_repository = catalog_repository
        self.language_resolver = LanguageResolver(catalog_repository)

    async def list_branches(self) -> list[BranchSummary]:
        return self.catalog_repository.list_branches()

    async def get_branch_settings(self, branch_id: int) -> BranchSettingsView:
        """Get a branch's settings with its default language.

        Raises:
            NotFoundError: If the branch does not exist
        """
        settings = self.catalog_repository.get_branch_settings(branch_id)
        if settings is None:
            raise NotFoundError("Branch not found")
        return settings

    async def list_languages(self) -> list[Language]:
        return self.catalog_repository.list_active_languages()

    async def list_tables(self, branch_id: int) -> list[RestaurantTable]:
        return self.catalog_repository.list_tables(branch_id)

    @traced("resolve_menu", record_args=("branch_id", "language_code"))
    async def resolve_menu(self, branch_id: int, language_code: str | None = None) -> MenuResponse:
        """Resolve the full menu of a branch in one language.

        Items are ordered by (category display order, translated name) over the
        whole fetch and then partitioned into their categories, so within a
        category items appear alphabetically. Categories without items are
        kept with an empty item list. An unknown branch yields no categories.

        Args:
            branch_id: Branch to resolve the menu for
            language_code: Requested language code (branch default if omitted)

        Returns:
            MenuResponse with categories, items and customizations
        """
        started = time.perf_counter()
        language = self.language_resolver.resolve(branch_id, language_code)

        categories = self.catalog_repository.list_categories(branch_id, language.id)
        item_rows = self.catalog_repository.list_branch_items(branch_id, language.id)
        item_rows.sort(
            key=lambda row: (row.category_display_order, row.item.name, row.item.branch_menu_item_id)
        )

        master_ids = sorted({row.item.master_item_id for row in item_rows})
        customizations = self.catalog_repository.list_customizations(master_ids, language.id)

        items_by_category: dict[int, list] = {}
        for row in item_rows:
            item = row.item.model_copy(
                update={"customizations": customizations.get(row.item.master_item_id, [])}
            )
            items_by_category.setdefault(item.category_id, []).append(item)

        menu = [
            MenuCategory(id=category.id, name=category.name, items=items_by_category.get(category.id, []))
            for category in categories
        ]

        annotate_span(language=language.code, category_count=len(menu), item_count=len(item_rows))
        record_menu_resolve_duration(branch_id, time.perf_counter() - started)
        logger.debug(
            f"Resolved menu for branch {branch_id} in '{language.code}': "
            f"{len(menu)} categories, {len(item_rows)} items"
        )
        return MenuResponse(categories=menu, language=language.code)
