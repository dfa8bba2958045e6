"""
Withdrawal monitor CLI commands.

Provides command-line interface for running manual polls, checking a
single wallet and running the scheduler without the HTTP API.
"""

import asyncio
import sys
from typing import Optional
import structlog

from withdrawal_monitor.core.config import get_settings
from withdrawal_monitor.core.logging import configure_logging
from withdrawal_monitor.core.services import Services, build_services

logger = structlog.get_logger()


def print_status(status: dict):
    """Pretty print scheduler status."""
    print("\n=== Withdrawal Monitor Status ===\n")
    print(f"Running: {status['running']}")
    print(f"Polling: {status['polling']}")
    print(f"Next Poll: {status['next_poll_at'] or 'Not scheduled'}")
    print(f"Last Poll: {status['last_poll_time'] or 'Never'}")

    if status["last_run"]:
        print(f"\n--- Last Run ---")
        run = status["last_run"]
        print(f"Run ID: {run['run_id']}")
        print(f"Status: {run['status']}")
        print(f"Duration: {run['duration_seconds']:.2f}s")
        print(f"Wallets: {run['wallets_checked']}")
        print(f"Claimable: {run['claimable_requests']}")
        print(f"Notified: {run['notifications_sent']}")
        if run["error_count"] > 0:
            print(f"Errors: {run['error_count']}")

    print(f"\n--- 24 Hour Metrics ---")
    metrics = status["metrics_24h"]
    print(f"Total Runs: {metrics['total_runs']}")
    print(f"Successful: {metrics['successful_runs']}")
    print(f"Skipped: {metrics['skipped_runs']}")
    print(f"Success Rate: {status['success_rate_24h']:.1%}")

    print(f"\n--- Configuration ---")
    config = status["config"]
    print(f"Poll Interval: {config['poll_interval_seconds']:.0f} seconds")
    print(f"Alignment: {config['alignment_minutes']} minutes")
    print(f"Source: {config['source']}")
    print()


async def poll_command(services: Services):
    """Run a single poll cycle manually."""
    print("Starting manual poll...")
    result = await services.scheduler.poll_once()
    print(f"\nPoll completed!")
    print(f"Run ID: {result['run_id']}")
    print(f"Status: {result['status']}")
    print(f"Wallets: {result.get('wallets_checked', 0)}")
    print(f"Requests: {result.get('requests_seen', 0)}")
    print(f"Claimable: {result.get('claimable_requests', 0)}")
    print(f"Notified: {result.get('notifications_sent', 0)}")
    if result.get("delivery_failures", 0) > 0:
        print(f"Delivery failures: {result['delivery_failures']}")
    print(f"Duration: {result.get('duration_seconds', 0):.2f}s")
    return 0 if result["status"] in ("success", "skipped") else 1


async def status_command(services: Services):
    print_status(services.scheduler.get_status())
    print(f"Subscriptions: {services.store.get_stats()}")
    return 0


async def wallet_command(services: Services, address: str):
    """Show the requests of one wallet without notifying anyone."""
    summary = await services.ledger.wallet_summary(address)
    print(f"\n=== Wallet {summary['wallet_address']} ===\n")
    print(f"Requests: {', '.join(summary['request_ids']) or 'none'}")
    print(f"Active: {', '.join(summary['active_request_ids']) or 'none'}")
    print(f"Claimable: {', '.join(summary['claimable_request_ids']) or 'none'}")
    print()
    return 0


async def run_command(services: Services):
    """Run the scheduler continuously."""
    print("Starting withdrawal monitor...")
    print(f"Poll interval: {services.scheduler.config.poll_interval_seconds:.0f} seconds")
    print(f"Press Ctrl+C to stop\n")

    await services.scheduler.start()
    # Keep running until interrupted
    while True:
        await asyncio.sleep(1)


async def _dispatch(command: str, argument: Optional[str]) -> int:
    services = build_services()
    try:
        if command == "poll":
            return await poll_command(services)
        if command == "status":
            return await status_command(services)
        if command == "wallet":
            if not argument:
                print("Usage: withdrawal-monitor wallet <address>")
                return 1
            return await wallet_command(services, argument)
        if command == "run":
            return await run_command(services)
        print(f"Unknown command: {command}")
        return 1
    finally:
        await services.aclose()


def main():
    """Main CLI entry point."""
    if len(sys.argv) < 2:
        print("Usage: withdrawal-monitor <command> [options]")
        print("\nCommands:")
        print("  poll              Run a single poll cycle")
        print("  status            Show scheduler status and subscription stats")
        print("  wallet <address>  Show active and claimable requests of a wallet")
        print("  run               Run the scheduler continuously")
        print("\nExamples:")
        print("  withdrawal-monitor poll")
        print("  withdrawal-monitor wallet 0x0000000000000000000000000000000000000001")
        print("  withdrawal-monitor run")
        return 1

    settings = get_settings()
    configure_logging(settings.ENV, settings.DEBUG)

    command = sys.argv[1]
    argument = sys.argv[2] if len(sys.argv) > 2 else None

    try:
        return asyncio.run(_dispatch(command, argument))
    except KeyboardInterrupt:
        print("\nInterrupted.")
        return 130
    except Exception as e:
        print(f"Error: {str(e)}")
        logger.exception("cli_error", command=command)
        return 1


if __name__ == "__main__":
    sys.exit(main())
