"""
Command-line interface for memsim.

``memsim replay`` runs a JSON-lines trace against an allocator and
``memsim compare`` runs one seeded random workload under every strategy.
Both print a JSON report.
"""

import argparse
import json
import logging
import sys
from typing import Any, Dict, List, Optional

from .config import load_config
from .exceptions import MemSimError
from .factory import create_from_config
from .trace import compare_strategies, generate_workload, load_trace, replay
from .types.enums import FitStrategy

STRATEGY_CHOICES = [strategy.label for strategy in FitStrategy]


def _emit(payload: Dict[str, Any], output: Optional[str]) -> None:
    if output:
        with open(output, 'w', encoding='utf-8') as f:
            json.dump(payload, f, indent=2)
    else:
        print(json.dumps(payload, indent=2))


def replay_command(args: argparse.Namespace) -> int:
    """Replay a trace file and report final allocator state."""
    config = load_config(args.config, total_size=args.total_size, strategy=args.strategy)
    allocator = create_from_config(config)
    events = load_trace(args.trace)

    report = replay(allocator, events, strict=args.strict)
    payload = {'config': config.to_dict(), **report.to_dict()}
    _emit(payload, args.output)
    return 0


def compare_command(args: argparse.Namespace) -> int:
    """Run a random workload under every strategy and compare the outcome."""
    events = generate_workload(args.operations, args.max_request, seed=args.seed)
    payload = {
        'config': {
            'total_size': args.total_size,
            'operations': args.operations,
            'max_request': args.max_request,
            'seed': args.seed,
        },
        'results': compare_strategies(events, args.total_size),
    }
    _emit(payload, args.output)
    return 0


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog='memsim', description='Simulated block-list memory allocator')
    parser.add_argument('--log-level', default='WARNING',
                        choices=['DEBUG', 'INFO', 'WARNING', 'ERROR'], help='Logging verbosity')
    subparsers = parser.add_subparsers(dest='command', required=True)

    replay_parser = subparsers.add_parser('replay', help='Replay a JSON-lines operation trace')
    replay_parser.add_argument('trace', help='Path to the trace file')
    replay_parser.add_argument('--strategy', choices=STRATEGY_CHOICES, help='Placement strategy')
    replay_parser.add_argument('--total-size', type=int, help='Size of the simulated address space')
    replay_parser.add_argument('--config', type=str, help='JSON configuration file')
    replay_parser.add_argument('--strict', action='store_true',
                               help='Stop at the first failed allocation or unknown free')
    replay_parser.add_argument('--output', type=str, help='Output file for the report')
    replay_parser.set_defaults(handler=replay_command)

    compare_parser = subparsers.add_parser('compare', help='Compare strategies on a random workload')
    compare_parser.add_argument('--total-size', type=int, default=1024,
                                help='Size of the simulated address space')
    compare_parser.add_argument('--operations', type=int, default=500,
                                help='Number of alloc/free operations')
    compare_parser.add_argument('--max-request', type=int, default=128,
                                help='Largest single allocation request')
    compare_parser.add_argument('--seed', type=int, default=0, help='Workload random seed')
    compare_parser.add_argument('--output', type=str, help='Output file for the report')
    compare_parser.set_defaults(handler=compare_command)

    return parser


def main(argv: Optional[List[str]] = None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)
    logging.basicConfig(level=getattr(logging, args.log_level),
                        format='%(asctime)s %(levelname)s %(name)s: %(message)s')

    try:
        return args.handler(args)
    except (MemSimError, ValueError, OSError) as e:
        print(f"memsim: error: {e}", file=sys.stderr)
        return 1


if __name__ == '__main__':
    sys.exit(main())
