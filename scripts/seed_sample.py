#!/usr/bin/env python3
"""
Sample Data Seeder
==================
Creates an admin, two member companies with openings and two students,
then prints an access token for each account.

Usage:
    python scripts/seed_sample.py
"""

import asyncio
import os
import sys

from dotenv import load_dotenv
from sqlalchemy import select

# Add parent directory to path
sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from internhub.core.logging import setup_logging
from internhub.core.security import create_access_token
from internhub.db.seed import seed
from internhub.db.session import AsyncSessionLocal, engine, init_db
from internhub.models.user import User

load_dotenv()


async def main():
    setup_logging()
    await init_db()
    async with AsyncSessionLocal() as session:
        seeded = await seed(session)
        print("=" * 70)
        print("SAMPLE ACCOUNTS")
        print("=" * 70)
        for role, emails in seeded.items():
            for email in emails:
                user = (await session.execute(select(User).where(User.email == email))).scalar_one()
                token = create_access_token({"sub": str(user.id)})
                print(f"{role:<8} {email}")
                print(f"         {token}")
        print("=" * 70)
    await engine.dispose()


if __name__ == "__main__":
    try:
        asyncio.run(main())
    except KeyboardInterrupt:
        print("\nInterrupted by user")
        sys.exit(1)
