"""
Check All Protocol Adapters Against Live RPC Endpoints.

Runs every adapter on every network it is deployed on and prints a pass/fail
table. Needs working RPC endpoints (see <NETWORK>_RPC_URL / ALCHEMY_API_KEY).
"""

import argparse
import os
import sys
from datetime import datetime

# Add repo root to path so the package imports from a checkout
script_dir = os.path.dirname(os.path.abspath(__file__))
root_dir = os.path.dirname(script_dir)
sys.path.insert(0, root_dir)

from yield_monitor.config import settings
from yield_monitor.core import ConnectionManager, MetricsAggregator


def parse_args():
    parser = argparse.ArgumentParser(
        description="Live smoke test of every protocol adapter",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  python scripts/check_fetchers.py
  python scripts/check_fetchers.py --protocol aave_v3 --network ethereum --network base
        """
    )
    parser.add_argument("--protocol", action="append", dest="protocols",
                        help="Protocol id to check (repeatable, default: all)")
    parser.add_argument("--network", action="append", dest="networks",
                        help="Network id to check (repeatable, default: every deployed network)")
    parser.add_argument("--log-level", type=str, default="WARNING",
                        help="Log level for the monitor's own logging")
    return parser.parse_args()


def check_cell(adapter, network_id):
    """Fetch one protocol on one network and summarize the outcome."""
    try:
        metrics = adapter.fetch_metrics(None, network_id)
    except Exception as e:
        return {"status": "💥", "message": str(e)[:60]}

    expected = len(adapter.supported_assets(network_id))
    if not metrics:
        return {"status": "❌", "message": f"0/{expected} pools"}

    best = max(metrics, key=lambda metric: metric.apy)
    return {
        "status": "✅" if len(metrics) == expected else "⚠️",
        "message": f"{len(metrics)}/{expected} pools (best {best.asset} {best.apy:.2f}%)",
    }


def run_checks(protocols=None, networks=None):
    print("\n" + "=" * 80)
    print("PROTOCOL ADAPTER CHECK")
    print(f"Started: {datetime.now().isoformat()}")
    print("=" * 80)

    connections = ConnectionManager(track_blocks=False)
    aggregator = MetricsAggregator(connections)
    results = {}

    for protocol_id in protocols or aggregator.registry.supported_protocols():
        adapter = aggregator.registry.get(protocol_id)
        results[protocol_id] = {}

        print(f"\n{'─' * 80}")
        print(f"Checking: {adapter.name}")
        print(f"{'─' * 80}")

        for network_id in adapter.supported_networks():
            if networks and network_id not in networks:
                continue

            print(f"  {network_id}...", end=" ", flush=True)
            try:
                connections.ensure_connection(network_id)
            except Exception as e:
                result = {"status": "💥", "message": str(e)[:60]}
            else:
                result = check_cell(adapter, network_id)

            results[protocol_id][network_id] = result
            print(f"{result['status']} {result['message']}")

    print("\n" + "=" * 80)
    print("SUMMARY")
    print("=" * 80)

    total = sum(len(cells) for cells in results.values())
    passed = sum(1 for cells in results.values() for r in cells.values() if r["status"] == "✅")
    print(f"Total checks: {total}")
    print(f"Passed (✅): {passed}")
    print(f"Other: {total - passed}")
    if total:
        print(f"Success rate: {passed / total * 100:.1f}%")

    return results


if __name__ == "__main__":
    args = parse_args()
    settings.configure_logging(args.log_level)
    results = run_checks(args.protocols, args.networks)
    failed = any(r["status"] != "✅" for cells in results.values() for r in cells.values())
    sys.exit(1 if failed else 0)
