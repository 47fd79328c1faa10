"""
Seed the directory with its default categories and an admin user.

Idempotent: existing categories are left untouched and an existing admin
gets its password reset to ADMIN_PASSWORD.

    cd api && python seed.py
"""

from __future__ import annotations

import asyncio
import logging

from auth import service as auth_service
from categories import repository as category_repository
from core import config, db

logger = logging.getLogger("seed")

DEFAULT_CATEGORIES = [
    {
        "name": "DeFi",
        "description": "Decentralized Finance applications including DEXs, lending protocols, and yield farming platforms.",
        "icon": "/category/defi.svg",
        "featured": True,
    },
    {
        "name": "NFT & Gaming",
        "description": "NFT marketplaces, gaming platforms, and digital collectibles built on Sui blockchain.",
        "icon": "/category/nft-gaming.svg",
        "featured": True,
    },
    {
        "name": "Infrastructure",
        "description": "Core infrastructure projects including nodes, validators, and network services.",
        "icon": "/category/infrastructure.svg",
        "featured": False,
    },
    {
        "name": "DAO & Governance",
        "description": "Decentralized Autonomous Organizations and governance platforms for community decision-making.",
        "icon": "/category/dao-governance.svg",
        "featured": False,
    },
    {
        "name": "Launchpad",
        "description": "Platforms for launching new projects, token sales, and fundraising on Sui.",
        "icon": "/category/launchpad.svg",
        "featured": True,
    },
    {
        "name": "Tooling",
        "description": "Developer tools, SDKs, APIs, and utilities for building on Sui blockchain.",
        "icon": "/category/tooling.svg",
        "featured": False,
    },
    {
        "name": "Naming Service",
        "description": "Domain name services and identity solutions for the Sui ecosystem.",
        "icon": "/category/naming-service.svg",
        "featured": False,
    },
    {
        "name": "Open Source",
        "description": "Open source projects, libraries, and contributions to the Sui ecosystem.",
        "icon": "/category/opensource.svg",
        "featured": False,
    },
]


async def seed_categories() -> int:
    created = 0
    for item in DEFAULT_CATEGORIES:
        if await category_repository.get_category_by_name(item["name"]) is not None:
            continue
        await category_repository.insert_category(**item)
        created += 1
    return created


async def main() -> None:
    await db.init_pool()
    try:
        created = await seed_categories()
        logger.info("seed_categories created=%d total=%d", created, len(DEFAULT_CATEGORIES))

        username = config.admin_username()
        await auth_service.ensure_admin(username, config.admin_password())
        logger.info("seed_admin username=%s", username)
    finally:
        await db.close_pool()


if __name__ == "__main__":
    logging.basicConfig(level=config.log_level())
    asyncio.run(main())
