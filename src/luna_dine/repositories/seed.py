"""Demo data for local development.

Creates two branches with translated menus, tables, promo codes and service
request labels. Idempotent: nothing is inserted if languages already exist.
English must be language id 1, since every translation falls back to it.
"""

import json
import logging
from datetime import date
from decimal import Decimal

from sqlalchemy import select
from sqlalchemy.orm import Session, sessionmaker

from luna_dine.models.db_models import (
    Branch,
    BranchMenuItem,
    CategoryTranslation,
    CustomizationGroup,
    CustomizationOption,
    GroupTranslation,
    ItemTranslation,
    Language,
    MasterMenuItem,
    MenuCategory,
    OptionTranslation,
    PromoCode,
    RestaurantTable,
    ServiceRequestTranslation,
)

logger = logging.getLogger(__name__)

EN, BN, AR = 1, 2, 3

LANGUAGES = [
    {"id": EN, "code": "en", "name": "English"},
    {"id": BN, "code": "bn", "name": "বাংলা"},
    {"id": AR, "code": "ar", "name": "العربية"},
]

BRANCHES = [
    {
        "id": 1,
        "name": "LunaDine Gulshan",
        "address": "Road 11, Gulshan 2, Dhaka",
        "phone": "+880 1700-000001",
        "default_language_id": EN,
        "settings": {"vat_percentage": 15, "currency_symbol": "৳", "delivery_fee": 60},
    },
    {
        "id": 2,
        "name": "LunaDine Chattogram",
        "address": "CDA Avenue, Chattogram",
        "phone": "+880 1700-000002",
        "default_language_id": BN,
        "settings": {"vat_percentage": 10, "currency_symbol": "৳"},
    },
]

# category id -> (branch id, display order, {language id: name})
CATEGORIES = {
    1: (1, 1, {EN: "Starters", BN: "স্টার্টার"}),
    2: (1, 2, {EN: "Burgers", BN: "বার্গার"}),
    3: (1, 3, {EN: "Drinks", BN: "পানীয়"}),
    4: (2, 1, {EN: "Rice Dishes", BN: "ভাতের পদ"}),
    5: (2, 2, {EN: "Drinks", BN: "পানীয়"}),
}

# master item id -> (image, tags, {language id: (name, description)})
MASTER_ITEMS = {
    1: ("chicken-wings.jpg", ["spicy"], {EN: ("Chicken Wings", "Six wings tossed in chili glaze"), BN: ("চিকেন উইংস", None)}),
    2: ("luna-burger.jpg", ["bestseller"], {EN: ("Luna Burger", "Beef patty, cheddar, house sauce"), BN: ("লুনা বার্গার", None)}),
    3: ("veggie-burger.jpg", ["vegetarian"], {EN: ("Veggie Burger", "Grilled vegetable patty"), AR: ("برجر نباتي", None)}),
    4: ("lemonade.jpg", [], {EN: ("Mint Lemonade", "Fresh lime and mint")}),
    5: ("kacchi.jpg", ["bestseller", "spicy"], {EN: ("Kacchi Biryani", "Mutton and aromatic rice"), BN: ("কাচ্চি বিরিয়ানি", "খাসির মাংস ও সুগন্ধি চাল")}),
}

# branch menu item id -> (branch id, master id, category id, price)
BRANCH_ITEMS = {
    1: (1, 1, 1, "220.00"),
    2: (1, 2, 2, "350.00"),
    3: (1, 3, 2, "300.00"),
    4: (1, 4, 3, "120.00"),
    5: (2, 5, 4, "380.00"),
    6: (2, 4, 5, "100.00"),
}

# group id -> (master id, selection type, {language id: name}, [(option id, price, {language id: name})])
CUSTOMIZATIONS = {
    1: (2, "single", {EN: "Patty", BN: "প্যাটি"}, [
        (1, "0", {EN: "Single", BN: "সিঙ্গেল"}),
        (2, "90", {EN: "Double", BN: "ডাবল"}),
    ]),
    2: (2, "multiple", {EN: "Extras"}, [
        (3, "30", {EN: "Bacon"}),
        (4, "20", {EN: "Fried Egg"}),
    ]),
    3: (4, "single", {EN: "Size"}, [
        (5, "0", {EN: "Regular"}),
        (6, "40", {EN: "Large"}),
    ]),
}

TABLES = [
    (1, 1, "T1", 2),
    (2, 1, "T2", 4),
    (3, 1, "T3", 6),
    (4, 2, "A1", 4),
    (5, 2, "A2", 8),
]

PROMO_CODES = [
    ("WELCOME10", "percentage", "10", "300", None),
    ("SUMMER20", "percentage", "20", "800", date(2027, 8, 31)),
    ("FLAT5", "fixed", "5", "0", None),
    ("LOYALTY", "fixed", "50", "500", date(2027, 12, 31)),
]

SERVICE_REQUEST_LABELS = {
    "assistance": {EN: "Assistance requested", BN: "সহায়তার অনুরোধ"},
    "water": {EN: "Water requested", BN: "পানির অনুরোধ"},
    "bill": {EN: "Bill requested", BN: "বিলের অনুরোধ"},
}


def seed_demo_data(session_factory: sessionmaker[Session]) -> bool:
    """Insert the demo dataset unless the database already holds data.

    Returns:
        bool: True if data was inserted
    """
    with session_factory.begin() as session:
        if session.scalar(select(Language.id).limit(1)) is not None:
            logger.info("Database already seeded, skipping demo data")
            return False

        logger.info("Seeding demo data")
        session.add_all(Language(**language) for language in LANGUAGES)
        session.flush()

        for branch in BRANCHES:
            session.add(Branch(**{**branch, "settings": json.dumps(branch["settings"])}))
        session.flush()

        session.add_all(
            MenuCategory(id=category_id, branch_id=branch_id, display_order=order)
            for category_id, (branch_id, order, _names) in CATEGORIES.items()
        )
        session.add_all(
            MasterMenuItem(id=item_id, image_url=image, tags=json.dumps(tags))
            for item_id, (image, tags, _texts) in MASTER_ITEMS.items()
        )
        session.flush()

        for category_id, (_branch_id, _order, names) in CATEGORIES.items():
            session.add_all(
                CategoryTranslation(category_id=category_id, language_id=lang, name=name)
                for lang, name in names.items()
            )
        for item_id, (_image, _tags, texts) in MASTER_ITEMS.items():
            session.add_all(
                ItemTranslation(item_id=item_id, language_id=lang, name=name, description=description)
                for lang, (name, description) in texts.items()
            )
        session.flush()

        for bmi_id, (branch_id, master_id, category_id, price) in BRANCH_ITEMS.items():
            session.add(
                BranchMenuItem(
                    id=bmi_id,
                    branch_id=branch_id,
                    master_item_id=master_id,
                    category_id=category_id,
                    price=Decimal(price),
                )
            )

        for group_id, (master_id, selection, _names, _options) in CUSTOMIZATIONS.items():
            session.add(CustomizationGroup(id=group_id, master_item_id=master_id, selection_type=selection))
        session.flush()

        for group_id, (_master_id, _selection, names, options) in CUSTOMIZATIONS.items():
            session.add_all(
                GroupTranslation(group_id=group_id, language_id=lang, name=name) for lang, name in names.items()
            )
            session.add_all(
                CustomizationOption(id=option_id, group_id=group_id, additional_price=Decimal(price))
                for option_id, price, _option_names in options
            )
        session.flush()

        for _group_id, (_master_id, _selection, _names, options) in CUSTOMIZATIONS.items():
            for option_id, _price, option_names in options:
                session.add_all(
                    OptionTranslation(option_id=option_id, language_id=lang, name=name)
                    for lang, name in option_names.items()
                )

        session.add_all(
            RestaurantTable(id=table_id, branch_id=branch_id, table_identifier=label, capacity=capacity)
            for table_id, branch_id, label, capacity in TABLES
        )
        session.add_all(
            PromoCode(
                code=code,
                type=kind,
                value=Decimal(value),
                min_order_amount=Decimal(minimum),
                expires_at=expires_at,
            )
            for code, kind, value, minimum, expires_at in PROMO_CODES
        )
        session.add_all(
            ServiceRequestTranslation(request_type=request_type, language_id=lang, display_text=text)
            for request_type, labels in SERVICE_REQUEST_LABELS.items()
            for lang, text in labels.items()
        )

    logger.info("Demo data seeded")
    return True
