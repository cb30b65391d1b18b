#!/usr/bin/env python3
"""Run one synchronization pass against a JSON-file backed store.

Configuration comes from ``COVID_*`` environment variables; the store
file is created on first use and updated in place afterwards.

Usage
-----
::

    export COVID_COUNTRIES="Germany,France"
    export COVID_GET_CONTINENTS=1
    python scripts/run_once.py --store covid-state.json

Options::

    --store FILE         State tree file (default: covid-state.json)
    --no-delay           Skip the randomized startup delay
    --dump               Print the resulting state values as JSON
    --verbose, -v        Enable debug logging
"""

from __future__ import annotations

import argparse
import asyncio
import json
import logging
import sys
from pathlib import Path

# Allow running from the repo root without installing the package.
_repo = Path(__file__).resolve().parent.parent
_src = _repo / "src"
if _src.is_dir():
    sys.path.insert(0, str(_src))

from pycovidstats import CovidStatsConfig, CovidStatsRunner, JsonFileObjectStore  # noqa: E402
from pycovidstats.exceptions import CovidStatsError  # noqa: E402


async def main() -> int:
    parser = argparse.ArgumentParser(
        description="Synchronize pandemic statistics into a local state tree.",
    )
    parser.add_argument("--store", default="covid-state.json", help="State tree file")
    parser.add_argument("--no-delay", action="store_true", help="Skip the randomized startup delay")
    parser.add_argument("--dump", action="store_true", help="Print the resulting state values as JSON")
    parser.add_argument("--verbose", "-v", action="store_true", help="Enable debug logging")
    args = parser.parse_args()

    if args.verbose:
        logging.basicConfig(level=logging.DEBUG, format="%(levelname)s %(name)s: %(message)s")
    else:
        logging.basicConfig(level=logging.INFO, format="%(levelname)s %(name)s: %(message)s")

    try:
        overrides = {"startup_delay_max": 0.0} if args.no_delay else {}
        config = CovidStatsConfig.from_env(**overrides)
        store = JsonFileObjectStore(Path(args.store))
    except CovidStatsError as exc:
        print(f"error: {exc}", file=sys.stderr)
        return 2

    async with CovidStatsRunner(config, store) as runner:
        context = await runner.run()
    store.save()

    print(
        f"{len(context.countries)} countries, {len(context.federal_states)} federal states, "
        f"{len(context.counties)} counties, {len(context.cities)} cities",
        file=sys.stderr,
    )
    if args.dump:
        values = {path: state.val for path, state in sorted(store.states.items())}
        print(json.dumps(values, indent=2, ensure_ascii=False, default=str))
    return 0


if __name__ == "__main__":
    sys.exit(asyncio.run(main()))
