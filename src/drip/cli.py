"""CLI subcommands for Drip testing and operations.

Provides command-line interface for:
- Service startup with overrides (run)
- Key operations (address, balance)
- Direct minting from the root account (mint)
- Decoding of return_txns responses (inspect)
"""

import argparse
import json
import sys

from drip.config import FaucetConfig, parse_chain_id
from drip.core.account import FaucetAccount
from drip.core.errors import FaucetError
from drip.core.keys import EnvironmentKey
from drip.faucet import MintRequest, MintService, Submitter, TransactionBuilder
from drip.faucet.resolver import parse_address
from drip.faucet.transactions import decode_payload, decode_transactions
from drip.ledger.client import LedgerClient
from drip.ledger.networks import NetworkInfo


def create_parser() -> argparse.ArgumentParser:
    """Create the argument parser with all subcommands."""
    parser = argparse.ArgumentParser(
        prog="drip",
        description="Drip - testnet token faucet",
        formatter_class=argparse.RawDescriptionHelpFormatter,
    )

    # Global flags
    parser.add_argument(
        "--json",
        action="store_true",
        help="Output in JSON format",
    )

    # Legacy flags (for backwards compatibility)
    parser.add_argument(
        "--generate-key",
        metavar="FILE",
        help="Generate a new mint key and save it to FILE, then exit",
    )

    subparsers = parser.add_subparsers(dest="command", help="Available commands")

    # Run subcommand (start service)
    run_parser = subparsers.add_parser("run", help="Start the faucet service")
    run_parser.add_argument("--address", help="Listen address (FAUCET_ADDRESS)")
    run_parser.add_argument("--port", type=int, help="Listen port (FAUCET_PORT)")
    run_parser.add_argument("--server-url", help="Node REST endpoint (FAUCET_SERVER_URL)")
    run_parser.add_argument("--mint-key-file", help="Mint key file (FAUCET_MINT_KEY_FILE)")
    run_parser.add_argument(
        "--chain-id",
        type=parse_chain_id,
        help="Chain id or MAINNET/TESTNET/DEVNET/TESTING (FAUCET_CHAIN_ID)",
    )
    run_parser.add_argument(
        "--maximum-amount", type=int, help="Mint cap per request (FAUCET_MAXIMUM_AMOUNT)"
    )
    run_parser.add_argument(
        "--do-not-delegate",
        action="store_true",
        default=None,
        help="Serve from the root account instead of a delegate",
    )

    subparsers.add_parser("address", help="Show the mint account address")

    balance_parser = subparsers.add_parser("balance", help="Show an account's balance")
    balance_parser.add_argument(
        "account", nargs="?", help="Account address (default: mint account)"
    )

    mint_parser = subparsers.add_parser(
        "mint",
        help="Mint coins from the mint account (stop any non-delegating service first)",
        description=(
            "Mint coins by signing with the mint account key. Do not run this while a "
            "service started with FAUCET_DO_NOT_DELEGATE is up: both would send from "
            "the same account and consume the same sequence numbers."
        ),
    )
    mint_parser.add_argument("account", help="Receiver address")
    mint_parser.add_argument("amount", type=str, help="Amount in octas")
    mint_parser.add_argument(
        "--no-wait",
        action="store_true",
        help="Return after submission without waiting for execution",
    )

    inspect_parser = subparsers.add_parser(
        "inspect", help="Decode a hex-encoded transaction list (return_txns response)"
    )
    inspect_parser.add_argument("encoded", metavar="HEX", help="Hex-encoded BCS transactions")

    return parser


RUN_OVERRIDES = (
    "address",
    "port",
    "server_url",
    "mint_key_file",
    "chain_id",
    "maximum_amount",
    "do_not_delegate",
)


def apply_run_overrides(config: FaucetConfig, args: argparse.Namespace) -> FaucetConfig:
    """Return ``config`` with the flags given to ``run`` taking precedence."""
    overrides = {
        name: getattr(args, name)
        for name in RUN_OVERRIDES
        if getattr(args, name, None) is not None
    }
    if not overrides:
        return config
    return config.model_copy(update=overrides)


class CLIContext:
    """Shared context for CLI commands."""

    def __init__(self, config: FaucetConfig, json_output: bool = False):
        self.config = config
        self.json_output = json_output
        self._key: EnvironmentKey | None = None
        self._ledger: LedgerClient | None = None

    @property
    def key(self) -> EnvironmentKey:
        """Get mint key (lazy loaded)."""
        if self._key is None:
            self._key = EnvironmentKey(
                private_key=self.config.mint_key,
                private_key_file=self.config.mint_key_file,
            )
        return self._key

    @property
    def mint_address(self):
        """Configured mint account address, or the key's derived address."""
        if self.config.mint_account_address:
            return parse_address(self.config.mint_account_address)
        return self.key.address

    @property
    def ledger(self) -> LedgerClient:
        """Get ledger client (lazy loaded)."""
        if self._ledger is None:
            self._ledger = LedgerClient(self.config.server_url)
        return self._ledger

    @property
    def network(self) -> NetworkInfo:
        return NetworkInfo(
            server_url=self.config.server_url,
            chain_id=self.config.chain_id,
            block_explorer_url=self.config.block_explorer_url,
        )

    def mint_service(self) -> MintService:
        """Build a service bound to the mint account."""
        builder = TransactionBuilder(
            chain_id=self.config.chain_id,
            max_gas_amount=self.config.max_gas_amount,
            gas_unit_price=self.config.gas_unit_price,
            expiration_secs=self.config.txn_expiration_secs,
            maximum_amount=self.config.maximum_amount if self.config.do_not_delegate else None,
        )
        return MintService(
            account=FaucetAccount(self.key.get_account(), self.mint_address),
            ledger=self.ledger,
            builder=builder,
            submitter=Submitter(
                self.ledger,
                wait_attempts=self.config.wait_attempts,
                wait_interval_secs=self.config.wait_interval_secs,
                max_wait_interval_secs=self.config.max_wait_interval_secs,
            ),
        )

    async def close(self) -> None:
        if self._ledger is not None:
            await self._ledger.close()
            self._ledger = None

    def output(self, data: dict) -> None:
        """Output data in the appropriate format."""
        if self.json_output:
            print(json.dumps(data, indent=2))
        else:
            self._print_formatted(data)

    def _print_formatted(self, data: dict, indent: int = 0) -> None:
        """Print data in human-readable format."""
        prefix = "  " * indent
        for key, value in data.items():
            if isinstance(value, dict):
                print(f"{prefix}{key}:")
                self._print_formatted(value, indent + 1)
            elif isinstance(value, list) and value and isinstance(value[0], dict):
                print(f"{prefix}{key}:")
                for index, item in enumerate(value):
                    print(f"{prefix}  [{index}]")
                    self._print_formatted(item, indent + 2)
            else:
                print(f"{prefix}{key}: {value}")


def _error_message(error: Exception) -> str:
    if isinstance(error, FaucetError):
        return error.message
    return str(error)


# Key commands


def cmd_address(ctx: CLIContext) -> int:
    """Show mint account address."""
    try:
        ctx.output({"address": str(ctx.mint_address)})
        return 0
    except Exception as e:
        ctx.output({"error": _error_message(e)})
        return 1


async def cmd_balance(ctx: CLIContext, account: str | None) -> int:
    """Show an account's balance, the mint account's by default."""
    try:
        address = parse_address(account) if account else ctx.mint_address
        balance = await ctx.ledger.account_balance(address)
        data = {
            "address": str(address),
            "balance": balance,
            "server_url": ctx.config.server_url,
            "chain_id": ctx.config.chain_id,
        }
        explorer = ctx.network.get_account_url(str(address))
        if explorer:
            data["explorer"] = explorer
        ctx.output(data)
        return 0
    except Exception as e:
        ctx.output({"error": _error_message(e)})
        return 1


# Faucet commands


async def cmd_mint(ctx: CLIContext, account: str, amount_str: str, no_wait: bool = False) -> int:
    """Create (if needed) and fund an account from the mint account.

    Signs with the mint key, so it must not run next to a service that mints
    from the same key without delegating.
    """
    try:
        if not amount_str.isdigit():
            ctx.output({"error": f"Invalid amount: {amount_str}"})
            return 1

        service = ctx.mint_service()
        result = await service.mint(
            MintRequest(amount=int(amount_str), address=account, return_txns=no_wait)
        )
        data = {
            "success": True,
            "to": account,
            "amount": service.builder.clamp(int(amount_str)),
            "confirmed": result.confirmed,
            "txn_hashes": result.hashes,
        }
        links = [ctx.network.get_txn_url(txn_hash) for txn_hash in result.hashes]
        if any(links):
            data["explorer"] = links
        ctx.output(data)
        return 0
    except Exception as e:
        ctx.output({"error": _error_message(e)})
        return 1


def cmd_inspect(ctx: CLIContext, encoded: str) -> int:
    """Decode a hex-encoded list of signed faucet transactions."""
    try:
        transactions = []
        for signed in decode_transactions(encoded):
            raw = signed.transaction
            payload = decode_payload(raw.payload)
            fields = {
                name: str(value) for name, value in vars(payload).items()
            }
            transactions.append(
                {
                    "sender": str(raw.sender),
                    "sequence_number": raw.sequence_number,
                    "kind": payload.kind.value,
                    "payload": fields,
                    "max_gas_amount": raw.max_gas_amount,
                    "gas_unit_price": raw.gas_unit_price,
                    "expiration_timestamps_secs": raw.expiration_timestamps_secs,
                    "chain_id": raw.chain_id,
                    "verified": signed.verify(),
                }
            )
        ctx.output({"transactions": transactions})
        return 0
    except Exception as e:
        ctx.output({"error": _error_message(e)})
        return 1


async def run_cli(args: argparse.Namespace) -> int:
    """Execute CLI command based on parsed arguments.

    Returns
    -------
    int
        Exit code: 0 for success, positive for error.
    """
    try:
        config = FaucetConfig()
    except Exception as e:
        if args.json:
            print(json.dumps({"error": f"Configuration error: {e}"}))
        else:
            print(f"Configuration error: {e}", file=sys.stderr)
        return 1

    ctx = CLIContext(config, json_output=args.json)
    try:
        if args.command == "address":
            return cmd_address(ctx)
        elif args.command == "balance":
            return await cmd_balance(ctx, args.account)
        elif args.command == "mint":
            return await cmd_mint(ctx, args.account, args.amount, args.no_wait)
        elif args.command == "inspect":
            return cmd_inspect(ctx, args.encoded)
        else:
            print("Usage: drip [run|address|balance|mint|inspect]", file=sys.stderr)
            return 1
    finally:
        await ctx.close()
