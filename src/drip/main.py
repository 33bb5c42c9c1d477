#!/usr/bin/env python3
"""Drip - testnet token faucet.

Entry point for the Drip service.
"""

import asyncio
import logging
import os
import signal
import sys
import tempfile
from pathlib import Path

from aiohttp import web
from aptos_sdk.account import Account

from drip.api.routes import create_app
from drip.cli import apply_run_overrides, create_parser, run_cli
from drip.config import FaucetConfig
from drip.core.account import FaucetAccount
from drip.core.errors import FaucetError
from drip.core.keys import EnvironmentKey
from drip.faucet import DelegationCoordinator, MintService, Submitter, TransactionBuilder
from drip.faucet.resolver import parse_address
from drip.ledger.client import LedgerClient
from drip.ledger.networks import NetworkInfo
from drip.observability.health import LedgerHealthCheck, ReadinessProbe
from drip.observability.logging import configure_logging


def generate_key(output_path: str) -> None:
    """Generate a new Ed25519 key and save it to a file.

    Parameters
    ----------
    output_path : str
        Path to save the private key file.
    """
    account = Account.generate()

    # Temp file in the same directory so the rename stays on one filesystem.
    key_path = Path(output_path)
    key_path.parent.mkdir(parents=True, exist_ok=True)

    fd, temp_path = tempfile.mkstemp(dir=key_path.parent, prefix=".drip-key-")
    fd_closed = False
    try:
        os.fchmod(fd, 0o600)
        os.write(fd, account.private_key.hex().encode())
        os.close(fd)
        fd_closed = True
        os.rename(temp_path, key_path)
    except Exception:
        if not fd_closed:
            os.close(fd)
        Path(temp_path).unlink(missing_ok=True)
        raise

    print(f"""
Mint key generated successfully!

  Address:     {account.address()}
  Private Key: {key_path.absolute()}

Next steps:

  1. Make this address the minter on your network, or point
     FAUCET_MINT_ACCOUNT_ADDRESS at the account this key controls

  2. Launch Drip with this key:

     export FAUCET_MINT_KEY_FILE={key_path.absolute()}
     drip run

IMPORTANT: Keep this private key secure. Anyone with access can mint coins.
""")


def parse_args():
    """Parse command line arguments."""
    return create_parser().parse_args()


async def run_service(config: FaucetConfig) -> None:
    """Run the Drip service (long-running mode).

    Wires up and starts all service components:
    - Mint key and root faucet account (must exist on the ledger)
    - LedgerClient, TransactionBuilder and Submitter
    - DelegationCoordinator, unless delegation is disabled
    - The HTTP API bound to the delegate (or root) MintService
    """
    configure_logging(level=config.log_level, log_format=config.log_format.value)

    logger = logging.getLogger(__name__)
    network = NetworkInfo(
        server_url=config.server_url,
        chain_id=config.chain_id,
        block_explorer_url=config.block_explorer_url,
    )
    logger.info("Drip starting")
    logger.info("Server URL: %s", config.server_url)
    logger.info("Chain: %s (%d)", network.name, config.chain_id)
    logger.info("Maximum amount: %s", config.maximum_amount)

    try:
        key = EnvironmentKey(private_key=config.mint_key, private_key_file=config.mint_key_file)
    except (ValueError, FileNotFoundError) as e:
        logger.error("Failed to load mint key: %s", e)
        sys.exit(1)

    root_address = (
        parse_address(config.mint_account_address) if config.mint_account_address else key.address
    )
    logger.info("Root account: %s", root_address)

    ledger = LedgerClient(config.server_url)
    try:
        root_info = await ledger.get_account(root_address)
    except FaucetError as e:
        logger.error("Failed to query root account: %s", e.message)
        await ledger.close()
        sys.exit(1)
    if root_info is None:
        logger.error("faucet account %s not found", root_address)
        await ledger.close()
        sys.exit(1)

    root_account = FaucetAccount(
        key.get_account(), root_address, sequence_number=root_info.sequence_number
    )

    builder = TransactionBuilder(
        chain_id=config.chain_id,
        max_gas_amount=config.max_gas_amount,
        gas_unit_price=config.gas_unit_price,
        expiration_secs=config.txn_expiration_secs,
        maximum_amount=config.maximum_amount if config.do_not_delegate else None,
    )
    submitter = Submitter(
        ledger,
        wait_attempts=config.wait_attempts,
        wait_interval_secs=config.wait_interval_secs,
        max_wait_interval_secs=config.max_wait_interval_secs,
    )
    service = MintService(
        account=root_account,
        ledger=ledger,
        builder=builder,
        submitter=submitter,
        lock_timeout=config.mint_lock_timeout,
    )

    if not config.do_not_delegate:
        coordinator = DelegationCoordinator(
            service,
            maximum_amount=config.maximum_amount,
            delegate_balance=config.delegate_balance,
        )
        try:
            service = await coordinator.delegate()
        except FaucetError as e:
            logger.error("Mint account delegation failed: %s", e.message)
            await ledger.close()
            sys.exit(1)

    readiness = ReadinessProbe()
    readiness.add_check(LedgerHealthCheck(ledger, config.chain_id))
    app = create_app(service, readiness, health_lock_timeout=config.health_lock_timeout)

    shutdown_event = asyncio.Event()

    # Use asyncio signal handlers for event-loop-safe signal handling
    loop = asyncio.get_running_loop()

    def on_shutdown_signal(sig_name: str) -> None:
        logger.info("Received signal %s, initiating shutdown", sig_name)
        shutdown_event.set()

    loop.add_signal_handler(signal.SIGTERM, lambda: on_shutdown_signal("SIGTERM"))
    loop.add_signal_handler(signal.SIGINT, lambda: on_shutdown_signal("SIGINT"))

    runner = web.AppRunner(app)
    await runner.setup()
    site = web.TCPSite(runner, config.address, config.port)
    await site.start()
    logger.info(
        "Drip running on %s:%d, minting from %s",
        config.address,
        config.port,
        service.account.address,
    )

    await shutdown_event.wait()

    logger.info("Drip shutting down...")
    await runner.cleanup()
    await ledger.close()
    logger.info("Drip shutdown complete")


async def main() -> None:
    """Main entry point for Drip."""
    args = parse_args()

    # Legacy flag
    if args.generate_key:
        generate_key(args.generate_key)
        return

    if args.command and args.command != "run":
        sys.exit(await run_cli(args))

    # No subcommand or "run" - start service
    config = apply_run_overrides(FaucetConfig(), args)
    await run_service(config)


def run() -> None:
    """Console script entry point."""
    asyncio.run(main())


if __name__ == "__main__":
    run()
