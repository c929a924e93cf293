"""
Entry point for the trade watcher.

Usage:
    python -m whalewatch
    whalewatch  # if installed via pip
"""

import asyncio
import sys

from pydantic import ValidationError


# Try to use uvloop for better performance
try:
    import uvloop

    uvloop.install()
    UVLOOP_ENABLED = True
except ImportError:
    UVLOOP_ENABLED = False


def main() -> int:
    """
    Main entry point.

    Returns:
        Exit code (0 for success).
    """
    from whalewatch import __version__
    from whalewatch.config.settings import get_settings
    from whalewatch.core.engine import WhaleWatchEngine

    print(
        f"""
╔═══════════════════════════════════════════════════════════════╗
║     LARGE TRADE WATCHER v{__version__:<37}║
║                                                               ║
║     Solana DEX trade feed + balance circuit breaker           ║
╚═══════════════════════════════════════════════════════════════╝
    """
    )

    try:
        settings = get_settings()
    except ValidationError as e:
        print(f"Configuration error: {e}")
        print("\nMake sure you have a .env file with:")
        print("  WALLET_SECRET_KEY=your_base58_secret_key")
        print("  COUNTERPARTY_ADDRESS=recipient_public_key")
        return 1

    print("Configuration:")
    print(f"  Mode:             {'DRY RUN' if settings.dry_run else 'LIVE'}")
    print(f"  RPC:              {settings.rpc_url}")
    print(f"  Feed:             {settings.feed_url}")
    print(f"  Large trade:      >= {settings.large_transaction_threshold_usd:,.0f} USD")
    print(f"  Slippage:         >= {settings.slippage_tolerance * 100:.2f}%")
    print(f"  Balance floor:    {settings.balance_floor_threshold} SOL")
    print(f"  Submissions:      {settings.max_concurrent_submissions} concurrent, "
          f"{settings.min_submission_spacing_ms}ms apart")
    print(f"  uvloop:           {'Enabled' if UVLOOP_ENABLED else 'Disabled'}")
    print()

    async def run_engine() -> int:
        engine = WhaleWatchEngine(settings)

        try:
            await engine.setup()
            await engine.run()
            return 0

        except KeyboardInterrupt:
            print("\nInterrupted by user")
            return 0

        except Exception as e:
            print(f"\nFatal error: {e}")
            import traceback

            traceback.print_exc()
            return 1

        finally:
            await engine.shutdown()

    return asyncio.run(run_engine())


if __name__ == "__main__":
    sys.exit(main())
