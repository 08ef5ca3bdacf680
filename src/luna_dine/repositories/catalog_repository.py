"""SQLite repository for branches, languages, tables and the translated menu.

Translated columns are fetched as a (requested language, default language)
pair through two outer joins on the translation table, and resolved by
``resolve_translation`` so the fallback rule lives in one place.
"""

import logging
from dataclasses import dataclass
from decimal import Decimal

from sqlalchemy import and_, select
from sqlalchemy.orm import Session, aliased, sessionmaker

from luna_dine.models.catalog_models import (
    BranchSettings,
    BranchSettingsView,
    BranchSummary,
    CustomizationGroup,
    CustomizationOption,
    Language,
    MenuItem,
    RestaurantTable,
    parse_tags,
)
from luna_dine.models.db_models import (
    Branch,
    BranchMenuItem,
    CategoryTranslation,
    CustomizationGroup as CustomizationGroupRow,
    CustomizationOption as CustomizationOptionRow,
    GroupTranslation,
    ItemTranslation,
    Language as LanguageRow,
    MasterMenuItem,
    MenuCategory,
    OptionTranslation,
    RestaurantTable as RestaurantTableRow,
)
from luna_dine.services.translation import DEFAULT_LANGUAGE_ID, resolve_translation

logger = logging.getLogger(__name__)


@dataclass
class CategoryRow:
    """Menu category with its translated name resolved."""

    id: int
    display_order: int
    name: str


@dataclass
class ItemRow:
    """Branch menu item with its category display order for sorting."""

    item: MenuItem
    category_display_order: int


class CatalogRepository:
    """Read-only repository for catalog data."""

    def __init__(self, session_factory: sessionmaker[Session]) -> None:
        """Initialize repository.

        Args:
            session_factory: Factory for short-lived database sessions
        """
        self.session_factory = session_factory

    def list_branches(self) -> list[BranchSummary]:
        """List all branches with their default language, ordered by id."""
        stmt = (
            select(Branch, LanguageRow.code, LanguageRow.name)
            .join(LanguageRow, Branch.default_language_id == LanguageRow.id)
            .order_by(Branch.id)
        )
        with self.session_factory() as session:
            rows = session.execute(stmt).all()

        return [
            BranchSummary(
                id=branch.id,
                name=branch.name,
                address=branch.address,
                status=branch.status,
                phone=branch.phone,
                default_language=code,
                language_name=name,
            )
            for branch, code, name in rows
        ]

    def get_branch_settings(self, branch_id: int) -> BranchSettingsView | None:
        """Retrieve parsed settings and default language for a branch.

        Args:
            branch_id: Branch identifier

        Returns:
            BranchSettingsView if the branch exists, None otherwise
        """
        stmt = (
            select(Branch.settings, LanguageRow.code, LanguageRow.name)
            .join(LanguageRow, Branch.default_language_id == LanguageRow.id)
            .where(Branch.id == branch_id)
        )
        with self.session_factory() as session:
            row = session.execute(stmt).first()

        if row is None:
            return None

        raw_settings, code, name = row
        return BranchSettingsView(
            branch_id=branch_id,
            default_language=code,
            language_name=name,
            settings=BranchSettings.from_json(raw_settings),
        )

    def get_branch_default_language_code(self, branch_id: int) -> str | None:
        """Return the default language code of a branch, or None if the branch is unknown."""
        stmt = (
            select(LanguageRow.code)
            .join(Branch, Branch.default_language_id == LanguageRow.id)
            .where(Branch.id == branch_id)
        )
        with self.session_factory() as session:
            return session.execute(stmt).scalar_one_or_none()

    def get_language_id(self, code: str) -> int | None:
        """Return the id of a language code, or None if the code is unknown."""
        with self.session_factory() as session:
            return session.execute(
                select(LanguageRow.id).where(LanguageRow.code == code)
            ).scalar_one_or_none()

    def list_active_languages(self) -> list[Language]:
        """List active languages ordered by name."""
        stmt = (
            select(LanguageRow)
            .where(LanguageRow.is_active.is_(True))
            .order_by(LanguageRow.name)
        )
        with self.session_factory() as session:
            rows = session.execute(stmt).scalars().all()
        return [Language(id=row.id, code=row.code, name=row.name) for row in rows]

    def list_tables(self, branch_id: int) -> list[RestaurantTable]:
        """List tables of a branch ordered by their identifier."""
        stmt = (
            select(RestaurantTableRow)
            .where(RestaurantTableRow.branch_id == branch_id)
            .order_by(RestaurantTableRow.table_identifier)
        )
        with self.session_factory() as session:
            rows = session.execute(stmt).scalars().all()
        return [
            RestaurantTable(id=row.id, table_identifier=row.table_identifier, capacity=row.capacity)
            for row in rows
        ]

    def table_belongs_to_branch(self, table_id: int, branch_id: int) -> bool:
        """Check that a table exists and belongs to the given branch."""
        stmt = select(RestaurantTableRow.id).where(
            RestaurantTableRow.id == table_id, RestaurantTableRow.branch_id == branch_id
        )
        with self.session_factory() as session:
            return session.execute(stmt).first() is not None

    def list_categories(self, branch_id: int, language_id: int) -> list[CategoryRow]:
        """List a branch's categories in display order with translated names.

        Args:
            branch_id: Branch identifier
            language_id: Requested language id

        Returns:
            list: Categories ordered by display_order (empty list if none)
        """
        requested = aliased(CategoryTranslation)
        default = aliased(CategoryTranslation)
        stmt = (
            select(MenuCategory.id, MenuCategory.display_order, requested.name, default.name)
            .outerjoin(
                requested,
                and_(requested.category_id == MenuCategory.id, requested.language_id == language_id),
            )
            .outerjoin(
                default,
                and_(
                    default.category_id == MenuCategory.id,
                    default.language_id == DEFAULT_LANGUAGE_ID,
                ),
            )
            .where(MenuCategory.branch_id == branch_id)
            .order_by(MenuCategory.display_order, MenuCategory.id)
        )
        with self.session_factory() as session:
            rows = session.execute(stmt).all()

        return [
            CategoryRow(
                id=category_id,
                display_order=display_order,
                name=resolve_translation(name, default_name, ""),
            )
            for category_id, display_order, name, default_name in rows
        ]

    def list_branch_items(self, branch_id: int, language_id: int) -> list[ItemRow]:
        """List a branch's sellable items with translated names and descriptions.

        Items come back unsorted; ordering is applied by the catalog service.

        Args:
            branch_id: Branch identifier
            language_id: Requested language id

        Returns:
            list: ItemRow objects (empty list if none)
        """
        requested = aliased(ItemTranslation)
        default = aliased(ItemTranslation)
        stmt = (
            select(
                BranchMenuItem,
                MasterMenuItem.image_url,
                MasterMenuItem.tags,
                MenuCategory.display_order,
                requested.name,
                requested.description,
                default.name,
                default.description,
            )
            .join(MasterMenuItem, BranchMenuItem.master_item_id == MasterMenuItem.id)
            .join(MenuCategory, BranchMenuItem.category_id == MenuCategory.id)
            .outerjoin(
                requested,
                and_(requested.item_id == MasterMenuItem.id, requested.language_id == language_id),
            )
            .outerjoin(
                default,
                and_(default.item_id == MasterMenuItem.id, default.language_id == DEFAULT_LANGUAGE_ID),
            )
            .where(BranchMenuItem.branch_id == branch_id)
        )
        with self.session_factory() as session:
            rows = session.execute(stmt).all()

        items: list[ItemRow] = []
        for (
            branch_item,
            image_url,
            tags,
            display_order,
            name,
            description,
            default_name,
            default_description,
        ) in rows:
            item = MenuItem(
                branch_menu_item_id=branch_item.id,
                price=float(branch_item.price),
                is_available=bool(branch_item.is_available),
                master_item_id=branch_item.master_item_id,
                image_url=image_url,
                tags=parse_tags(tags),
                category_id=branch_item.category_id,
                name=resolve_translation(name, default_name, ""),
                description=resolve_translation(description, default_description),
            )
            items.append(ItemRow(item=item, category_display_order=display_order))
        return items

    def list_customizations(
        self, master_item_ids: list[int], language_id: int
    ) -> dict[int, list[CustomizationGroup]]:
        """Fetch customization groups and options for a set of master items.

        Groups keep first-seen order (group id, then option id); a group without
        options still appears with an empty option list.

        Args:
            master_item_ids: Master items to fetch customizations for
            language_id: Requested language id

        Returns:
            dict: Master item id -> list of customization groups
        """
        if not master_item_ids:
            return {}

        group_requested = aliased(GroupTranslation)
        group_default = aliased(GroupTranslation)
        option_requested = aliased(OptionTranslation)
        option_default = aliased(OptionTranslation)
        stmt = (
            select(
                CustomizationGroupRow.master_item_id,
                CustomizationGroupRow.id,
                CustomizationGroupRow.selection_type,
                group_requested.name,
                group_default.name,
                CustomizationOptionRow.id,
                CustomizationOptionRow.additional_price,
                option_requested.name,
                option_default.name,
            )
            .outerjoin(
                group_requested,
                and_(
                    group_requested.group_id == CustomizationGroupRow.id,
                    group_requested.language_id == language_id,
                ),
            )
            .outerjoin(
                group_default,
                and_(
                    group_default.group_id == CustomizationGroupRow.id,
                    group_default.language_id == DEFAULT_LANGUAGE_ID,
                ),
            )
            .outerjoin(
                CustomizationOptionRow,
                CustomizationOptionRow.group_id == CustomizationGroupRow.id,
            )
            .outerjoin(
                option_requested,
                and_(
                    option_requested.option_id == CustomizationOptionRow.id,
                    option_requested.language_id == language_id,
                ),
            )
            .outerjoin(
                option_default,
                and_(
                    option_default.option_id == CustomizationOptionRow.id,
                    option_default.language_id == DEFAULT_LANGUAGE_ID,
                ),
            )
            .where(CustomizationGroupRow.master_item_id.in_(master_item_ids))
            .order_by(CustomizationGroupRow.id, CustomizationOptionRow.id)
        )
        with self.session_factory() as session:
            rows = session.execute(stmt).all()

        groups_by_item: dict[int, list[CustomizationGroup]] = {}
        groups_by_id: dict[int, CustomizationGroup] = {}
        for (
            master_item_id,
            group_id,
            selection_type,
            group_name,
            group_default_name,
            option_id,
            additional_price,
            option_name,
            option_default_name,
        ) in rows:
            group = groups_by_id.get(group_id)
            if group is None:
                group = CustomizationGroup(
                    id=group_id,
                    name=resolve_translation(group_name, group_default_name),
                    type=selection_type,
                )
                groups_by_id[group_id] = group
                groups_by_item.setdefault(master_item_id, []).append(group)

            if option_id is not None:
                group.options.append(
                    CustomizationOption(
                        id=option_id,
                        name=resolve_translation(option_name, option_default_name),
                        price=float(additional_price or 0),
                    )
                )

        return groups_by_item

    def get_item_prices(self, branch_menu_item_ids: list[int]) -> dict[int, Decimal]:
        """Return the current price of each known branch menu item.

        Unknown ids are simply absent from the result.
        """
        if not branch_menu_item_ids:
            return {}
        stmt = select(BranchMenuItem.id, BranchMenuItem.price).where(
            BranchMenuItem.id.in_(set(branch_menu_item_ids))
        )
        with self.session_factory() as session:
            rows = session.execute(stmt).all()
        return {item_id: Decimal(str(price)) for item_id, price in rows}
