"""
Create every table declared in `services.db` (idempotent).

    python -m scripts.init_db
"""
from __future__ import annotations

import asyncio

from config import settings
from services.db import init_models


def main() -> None:
    asyncio.run(init_models())
    print(f"✓ schema ready on {settings.database_url.split('@')[-1]}")


if __name__ == "__main__":
    main()
