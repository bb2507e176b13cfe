#!/usr/bin/env python3
import argparse
import json
import logging
import sys
from decimal import Decimal, InvalidOperation

import requests

from qibribes import fetch_votes, report
from qibribes.config import load_config, parse_addresses
from qibribes.errors import BribeError
from qibribes.pipeline import BribePipeline

logging.basicConfig(level=logging.INFO, format='%(asctime)s - %(levelname)s - %(message)s')
logger = logging.getLogger(__name__)


def decimal_arg(value):
    try:
        return Decimal(value)
    except InvalidOperation:
        raise argparse.ArgumentTypeError(f"invalid decimal value: {value!r}")


def build_parser():
    parser = argparse.ArgumentParser(description="QiDao Snapshot Bribe Calculator")
    parser.add_argument("--verbose", action="store_true", help="Enable debug logging")
    parser.add_argument("--proposal", type=str, help="Snapshot proposal id (default: QIDAO_PROPOSAL_ID)")
    subparsers = parser.add_subparsers(dest="command", help="Command to execute")

    # Fetch subcommand
    fetch_parser = subparsers.add_parser("fetch", help="Fetch proposal votes and save a snapshot")
    fetch_parser.add_argument("--output", type=str, help="Snapshot path (default: data/qidao/<proposal>_votes.json)")
    fetch_parser.add_argument("--page-size", type=int, help="Votes per GraphQL page")

    # Bribes subcommand
    bribes_parser = subparsers.add_parser("bribes", help="Compute vote totals and bribes")
    bribes_parser.add_argument("--snapshot", type=str, help="Use a saved snapshot instead of fetching")
    bribes_parser.add_argument("--page-size", type=int, help="Votes per GraphQL page")
    bribes_parser.add_argument("--choice", type=str, help="Bribed choice label, e.g. 'WBTC (Arbitrum)'")
    bribes_parser.add_argument("--rate", type=decimal_arg, help="QI per 1%% of the vote")
    bribes_parser.add_argument("--min-percent", type=decimal_arg, help="Minimum chain percentage")
    bribes_parser.add_argument("--whale-threshold", type=decimal_arg, help="Voting power above which a voter is a whale")
    bribes_parser.add_argument("--redistribution", type=decimal_arg, help="Percent of clawed back bribes to redistribute")
    bribes_parser.add_argument("--exempt", type=str, help="Comma-separated whale exempt addresses")
    bribes_parser.add_argument("--json", action="store_true", help="Print results as JSON")

    return parser


def run_bribes(args, config):
    if args.snapshot:
        choices, votes = fetch_votes.load_snapshot(args.snapshot)
    else:
        choices = fetch_votes.fetch_proposal_choices(config)
        votes = fetch_votes.fetch_all_votes(config)

    pipeline = BribePipeline(votes, choices, config)
    try:
        result = pipeline.run()
    except BribeError as e:
        if args.json:
            print(json.dumps(report.partial_to_dict(pipeline, e), indent=2))
        else:
            report.display_partial(pipeline)
        raise

    if args.json:
        print(json.dumps(report.result_to_dict(result), indent=2))
    else:
        report.display_result(result)
    return 2 if result.aborted else 0


def main(argv=None):
    parser = build_parser()
    args = parser.parse_args(argv)

    if args.verbose:
        logging.getLogger().setLevel(logging.DEBUG)

    try:
        config = load_config().override(proposal_id=args.proposal)
        if args.command == "fetch":
            config = config.override(page_size=args.page_size)
            fetch_votes.run_fetch(config, args.output)
            return 0
        elif args.command == "bribes":
            config = config.override(
                page_size=args.page_size,
                tracked_choice=args.choice,
                rate_per_percent=args.rate,
                min_chain_percent=args.min_percent,
                whale_threshold=args.whale_threshold,
                redistribution_rate=args.redistribution,
                exempt_addresses=parse_addresses(args.exempt) if args.exempt else None,
            )
            logger.info(f"Computing bribes for '{config.tracked_choice}' on proposal {config.proposal_id}")
            return run_bribes(args, config)
        else:
            parser.print_help()
            return 1
    except (BribeError, FileNotFoundError, requests.RequestException) as e:
        logger.error(f"❌ {e}")
        return 1


if __name__ == "__main__":
    sys.exit(main())
