"""Operator CLI for the memory engine.

Usage:
    studybuddy-memory probe
    studybuddy-memory embed "photosynthesis" "cell respiration" --provider mistral
    studybuddy-memory purge-expired --batch-size 500
"""

from __future__ import annotations

import argparse
import asyncio
import json
import logging
import sys

from studybuddy.config import settings
from studybuddy.db.database import create_db_and_tables, engine
from studybuddy.errors import MemoryEngineError
from studybuddy.services import create_services

logger = logging.getLogger(__name__)


async def run_probe() -> dict:
    services = create_services(settings, engine)
    if not services.embeddings.adapters:
        logger.warning("No embedding providers configured")
    return await services.embeddings.check_provider_health()


async def run_embed(texts: list[str], provider: str | None, model: str | None) -> dict:
    services = create_services(settings, engine)
    result = await services.embeddings.generate_embeddings(texts, provider=provider, model=model)
    data = result.to_dict()
    # Vectors are long; show their shape and a short prefix
    data["embeddings"] = [vector[:8] for vector in data["embeddings"]]
    return data


async def run_purge(batch_size: int) -> dict:
    create_db_and_tables()
    services = create_services(settings, engine)
    purged = await services.store.purge_expired(batch_size=batch_size)
    return {"purged": purged}


def main(argv: list[str] | None = None) -> int:
    logging.basicConfig(level=logging.INFO, format="%(levelname)s %(name)s: %(message)s")

    parser = argparse.ArgumentParser(description="StudyBuddy memory engine tools")
    sub = parser.add_subparsers(dest="command", required=True)

    sub.add_parser("probe", help="Probe every configured embedding provider")

    embed = sub.add_parser("embed", help="Embed texts using the fallback chain")
    embed.add_argument("texts", nargs="+", help="Texts to embed")
    embed.add_argument("--provider", "-p", help="Explicit provider (disables fallback)")
    embed.add_argument("--model", "-m", help="Model override")

    purge = sub.add_parser("purge-expired", help="Delete memories past their retention window")
    purge.add_argument("--batch-size", type=int, default=settings.memory_cleanup_batch_size)

    args = parser.parse_args(argv)

    try:
        if args.command == "probe":
            result = asyncio.run(run_probe())
        elif args.command == "embed":
            result = asyncio.run(run_embed(args.texts, args.provider, args.model))
        else:
            result = asyncio.run(run_purge(args.batch_size))
    except MemoryEngineError as e:
        logger.error("%s", e)
        return 1

    print(json.dumps(result, indent=2, default=str))
    return 0


if __name__ == "__main__":
    sys.exit(main())
