"""Command-line client for poking at a qortex MCP server.

Usage:
    qortex-vector indexes
    qortex-vector describe docs
    qortex-vector text-query "how do we authenticate" --domain security --top-k 5
    qortex-vector explore sec:oauth --depth 2
    qortex-vector rules --domain security
    qortex-vector feedback q-1 item-1=accepted item-2=rejected

Server settings come from QORTEX_* environment variables unless given as
options. Results are printed as JSON.
"""

from __future__ import annotations

import argparse
import asyncio
import json
import logging
import shlex
import sys
from typing import Any

from qortex_vector.config import QortexClientConfig, configure_logging
from qortex_vector.errors import QortexError
from qortex_vector.models import FeedbackOutcome, QueryMode
from qortex_vector.vector import QortexVector

LOG = logging.getLogger("qortex_vector.cli")


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="qortex-vector", description=__doc__.splitlines()[0])
    parser.add_argument("--server-command", help="command that starts the qortex MCP server")
    parser.add_argument("--server-args", help="arguments for the server command (shell-quoted string)")
    parser.add_argument("--call-timeout", type=float, help="seconds to wait for each response")
    parser.add_argument("--log-level", help="logging level (default: $QORTEX_LOG_LEVEL or INFO)")

    sub = parser.add_subparsers(dest="command", required=True)

    sub.add_parser("indexes", help="list index names")

    p = sub.add_parser("describe", help="dimension, count and metric of an index")
    p.add_argument("index_name")

    p = sub.add_parser("text-query", help="graph-enhanced text query")
    p.add_argument("text")
    p.add_argument("--domain", action="append", dest="domains")
    p.add_argument("--top-k", type=int)
    p.add_argument("--min-confidence", type=float)
    p.add_argument("--mode", choices=[m.value for m in QueryMode])

    p = sub.add_parser("explore", help="neighborhood of a graph node")
    p.add_argument("node_id")
    p.add_argument("--depth", type=int)

    p = sub.add_parser("rules", help="rules projected from the graph")
    p.add_argument("--domain", action="append", dest="domains")
    p.add_argument("--concept", action="append", dest="concept_ids")
    p.add_argument("--category", action="append", dest="categories")
    p.add_argument("--no-derived", action="store_true")
    p.add_argument("--min-confidence", type=float)

    p = sub.add_parser("feedback", help="report outcomes for a text query")
    p.add_argument("query_id")
    p.add_argument("outcomes", nargs="+", metavar="ITEM=OUTCOME")
    p.add_argument("--source")

    return parser


def _parse_outcomes(pairs: list[str]) -> dict[str, str]:
    allowed = {o.value for o in FeedbackOutcome}
    outcomes: dict[str, str] = {}
    for pair in pairs:
        item_id, sep, outcome = pair.rpartition("=")
        if not sep or not item_id or outcome not in allowed:
            raise argparse.ArgumentTypeError(
                f"expected ITEM=OUTCOME with OUTCOME in {sorted(allowed)}, got {pair!r}"
            )
        outcomes[item_id] = outcome
    return outcomes


def _to_jsonable(result: Any) -> Any:
    if hasattr(result, "model_dump"):
        return result.model_dump(mode="json")
    if isinstance(result, list):
        return [_to_jsonable(r) for r in result]
    return result


async def run(args: argparse.Namespace, config: QortexClientConfig) -> Any:
    async with QortexVector(id="cli", config=config) as qortex:
        if args.command == "indexes":
            return await qortex.list_indexes()
        if args.command == "describe":
            return await qortex.describe_index(index_name=args.index_name)
        if args.command == "text-query":
            return await qortex.text_query(
                args.text,
                domains=args.domains,
                top_k=args.top_k,
                min_confidence=args.min_confidence,
                mode=args.mode,
            )
        if args.command == "explore":
            return await qortex.explore(args.node_id, args.depth)
        if args.command == "rules":
            return await qortex.get_rules(
                domains=args.domains,
                concept_ids=args.concept_ids,
                categories=args.categories,
                include_derived=False if args.no_derived else None,
                min_confidence=args.min_confidence,
            )
        if args.command == "feedback":
            return await qortex.feedback(args.query_id, _parse_outcomes(args.outcomes), args.source)
    raise ValueError(f"unknown command: {args.command}")


def main(argv: list[str] | None = None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)
    configure_logging(args.log_level)

    if args.command == "feedback":
        try:
            _parse_outcomes(args.outcomes)
        except argparse.ArgumentTypeError as exc:
            parser.error(str(exc))

    try:
        config = QortexClientConfig.from_env(
            server_command=args.server_command,
            server_args=shlex.split(args.server_args) if args.server_args is not None else None,
            call_timeout=args.call_timeout,
        )
        result = asyncio.run(run(args, config))
    except (QortexError, ValueError) as exc:
        LOG.debug("command failed", exc_info=True)
        print(f"error: {exc}", file=sys.stderr)
        return 1

    print(json.dumps(_to_jsonable(result), indent=2))
    return 0


if __name__ == "__main__":
    sys.exit(main())
