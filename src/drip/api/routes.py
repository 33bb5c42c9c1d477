"""HTTP routes of the faucet.

Endpoints:
- POST /mint: Create and fund an account
- GET /health: Sequence number of the serving faucet account
- GET /: Liveness ("tap:ok")
- GET /ready, GET /metrics: see ReadinessProbe
"""

import logging

from aiohttp import web

from drip.core.errors import InvalidRequestError
from drip.faucet.service import MintRequest, MintService
from drip.faucet.transactions import encode_transactions
from drip.observability.health import ReadinessProbe

from .middleware import MIDDLEWARES

logger = logging.getLogger(__name__)

U64_MAX = 2**64 - 1

DEFAULT_HEALTH_LOCK_TIMEOUT = 5.0


def parse_amount(value: str | None) -> int:
    """Parse the ``amount`` query parameter as a u64.

    Raises
    ------
    InvalidRequestError
        If the value is missing, not a decimal integer or out of range.
    """
    if value is None:
        raise InvalidRequestError("missing query parameter 'amount'")
    if not (value.isascii() and value.isdigit()):
        raise InvalidRequestError(f"invalid amount: {value!r}")
    amount = int(value)
    if amount > U64_MAX:
        raise InvalidRequestError(f"amount out of range: {value}")
    return amount


def parse_bool(name: str, value: str | None) -> bool:
    """Parse a ``true``/``false`` query parameter; absent means false."""
    if value is None:
        return False
    if value == "true":
        return True
    if value == "false":
        return False
    raise InvalidRequestError(f"invalid value for '{name}': {value!r}")


class FaucetRoutes:
    """Mint and health handlers bound to one MintService.

    Parameters
    ----------
    service : MintService
        The service that serves public traffic.
    health_lock_timeout : float
        Seconds /health waits for the faucet account lock.
    """

    def __init__(
        self,
        service: MintService,
        health_lock_timeout: float = DEFAULT_HEALTH_LOCK_TIMEOUT,
    ):
        self._service = service
        self._health_lock_timeout = health_lock_timeout

    def register(self, app: web.Application) -> None:
        """Mount the faucet routes on ``app``."""
        app.router.add_post("/mint", self._handle_mint)
        app.router.add_get("/health", self._handle_health)
        app.router.add_get("/", self._handle_root)

    async def _handle_mint(self, request: web.Request) -> web.Response:
        """Handle POST /mint."""
        query = request.query
        mint_request = MintRequest(
            amount=parse_amount(query.get("amount")),
            address=query.get("address"),
            pub_key=query.get("pub_key"),
            auth_key=query.get("auth_key"),
            return_txns=parse_bool("return_txns", query.get("return_txns")),
        )

        result = await self._service.mint(mint_request)
        if result.transactions is not None:
            return web.Response(text=encode_transactions(result.transactions))
        return web.json_response(result.hashes)

    async def _handle_health(self, _request: web.Request) -> web.Response:
        """Handle /health endpoint (faucet sequence number)."""
        sequence_number = await self._service.sequence_number(self._health_lock_timeout)
        return web.Response(text=str(sequence_number))

    async def _handle_root(self, _request: web.Request) -> web.Response:
        """Handle / endpoint (liveness)."""
        return web.Response(text="tap:ok")


def create_app(
    service: MintService,
    readiness: ReadinessProbe | None = None,
    health_lock_timeout: float = DEFAULT_HEALTH_LOCK_TIMEOUT,
) -> web.Application:
    """Build the faucet application.

    Parameters
    ----------
    service : MintService
        The service bound to the listener. With delegation enabled this is
        the delegate's service, never the root's.
    readiness : ReadinessProbe | None
        Readiness checks. An empty probe is used when omitted.
    health_lock_timeout : float
        Seconds /health waits for the faucet account lock.

    Returns
    -------
    web.Application
        Application with middlewares and all routes mounted.
    """
    app = web.Application(middlewares=MIDDLEWARES)
    FaucetRoutes(service, health_lock_timeout).register(app)
    (readiness or ReadinessProbe()).register(app)
    logger.debug("Faucet routes registered", extra={"account": str(service.account.address)})
    return app
