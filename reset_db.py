"""
Ricrea lo schema del database di Energy Billing.

Uso:
    python reset_db.py          # elimina e ricrea tutte le tabelle
    python reset_db.py --keep   # crea solo le tabelle mancanti
"""

import argparse
import asyncio
import logging
import os
import sys

# Aggiungi backend/ alla PYTHONPATH per importare app.*
sys.path.insert(0, os.path.join(os.path.dirname(__file__), "backend"))

from app.core.database import close_db, engine
from app.models import Base

logger = logging.getLogger("reset_db")


async def reset(keep: bool = False) -> None:
    logger.info("Connessione al database %s", engine.url.render_as_string(hide_password=True))
    async with engine.begin() as conn:
        if not keep:
            await conn.run_sync(Base.metadata.drop_all)
            logger.info("Tabelle eliminate")
        await conn.run_sync(Base.metadata.create_all)
    logger.info("Tabelle create: %s", ", ".join(sorted(Base.metadata.tables)))
    await close_db()


if __name__ == "__main__":
    parser = argparse.ArgumentParser(description=__doc__.splitlines()[1])
    parser.add_argument("--keep", action="store_true", help="non eliminare le tabelle esistenti")
    args = parser.parse_args()

    logging.basicConfig(level=logging.INFO, format="%(asctime)s - %(name)s - %(levelname)s - %(message)s")
    asyncio.run(reset(keep=args.keep))
