"""Load a demo product catalogue into an empty ``product`` collection."""

import logging

from config import Settings
from database import Database
from logging_config import setup_logging
from schemas import Product as ProductSchema

logger = logging.getLogger(__name__)

DEMO_PRODUCTS = [
    {
        "name": "Pixel 7A",
        "description": "Powerful camera and smooth Android experience.",
        "price": 349.99,
        "image": "https://images.unsplash.com/photo-1511707171634-5f897ff02aa9",
    },
    {
        "name": "ThinkPad X1",
        "description": "Business-class laptop with legendary keyboard.",
        "price": 1199.99,
        "image": "https://images.unsplash.com/photo-1517336714731-489689fd1ca8",
    },
    {
        "name": "Noise Cancelling Headphones",
        "description": "Immerse in music with ANC.",
        "price": 199.99,
        "image": "https://images.unsplash.com/photo-1518443248587-30bdc8f94f04",
    },
    {
        "name": "Mechanical Keyboard",
        "description": "Hot-swappable RGB keyboard.",
        "price": 79.99,
        "image": "https://images.unsplash.com/photo-1516382799247-87df95d790b5",
    },
    {
        "name": "Casual Sneakers",
        "description": "Comfortable everyday wear.",
        "price": 49.99,
        "image": "https://images.unsplash.com/photo-1525966222134-fcfa99b8ae77",
    },
    {
        "name": "Smartwatch",
        "description": "Track fitness and notifications.",
        "price": 69.99,
        "image": "https://images.unsplash.com/photo-1512086734732-172b66a17c72",
    },
]


def seed_products(db: Database) -> int:
    """Insert ``DEMO_PRODUCTS`` unless products already exist.  Returns the number inserted."""
    if db.find_document("product", {}) is not None:
        logger.info("Products already exist; skipping seed")
        return 0
    for p in DEMO_PRODUCTS:
        db.create_document("product", ProductSchema(**p))
    logger.info("Seeded %d products", len(DEMO_PRODUCTS))
    return len(DEMO_PRODUCTS)


def main() -> None:
    settings = Settings.from_env()
    setup_logging(settings.log_level)
    seed_products(Database.connect(settings.mongo_uri, settings.db_name))


if __name__ == "__main__":
    main()
