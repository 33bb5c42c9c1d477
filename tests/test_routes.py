"""Tests for the faucet HTTP API."""

from unittest.mock import AsyncMock, MagicMock

import pytest
from aiohttp.test_utils import TestClient, TestServer
from prometheus_client import REGISTRY

from conftest import PUB_KEY, PUB_KEY_ADDRESS
from drip.api.routes import U64_MAX, create_app, parse_amount, parse_bool
from drip.core.errors import InvalidRequestError, LockTimeoutError
from drip.faucet.resolver import parse_address
from drip.faucet.transactions import decode_transactions
from drip.observability.health import CheckResult, HealthCheck, HealthStatus, ReadinessProbe


class StaticCheck(HealthCheck):
    """Health check with a fixed result."""

    def __init__(self, status: HealthStatus):
        self._status = status

    @property
    def name(self) -> str:
        return "ledger"

    async def check(self) -> CheckResult:
        return CheckResult(name=self.name, status=self._status, message="unreachable")


@pytest.fixture
async def client(service):
    """Create a test client for the faucet app."""
    app = create_app(service, health_lock_timeout=0.05)
    client = TestClient(TestServer(app))
    await client.start_server()
    yield client
    await client.close()


class TestQueryParsing:
    """Tests for query parameter parsing."""

    def test_amount(self):
        assert parse_amount("13345") == 13345
        assert parse_amount(str(U64_MAX)) == U64_MAX

    @pytest.mark.parametrize("value", [None, "", "-1", "1.5", "abc", str(U64_MAX + 1)])
    def test_invalid_amount(self, value):
        with pytest.raises(InvalidRequestError):
            parse_amount(value)

    def test_bool(self):
        assert parse_bool("return_txns", None) is False
        assert parse_bool("return_txns", "true") is True
        assert parse_bool("return_txns", "false") is False
        with pytest.raises(InvalidRequestError):
            parse_bool("return_txns", "yes")


class TestMintEndpoint:
    """Tests for POST /mint."""

    @pytest.mark.asyncio
    async def test_mint_with_auth_key(self, client, ledger):
        """auth_key mints to the same address."""
        resp = await client.post(f"/mint?auth_key={PUB_KEY}&amount=13345")

        assert resp.status == 200
        hashes = await resp.json()
        assert len(hashes) == 2
        assert ledger.balance(parse_address(PUB_KEY)) == 13345

    @pytest.mark.asyncio
    async def test_mint_with_pub_key(self, client, ledger):
        """pub_key mints to the derived address."""
        resp = await client.post(f"/mint?pub_key={PUB_KEY}&amount=13345")

        assert resp.status == 200
        assert len(await resp.json()) == 2
        assert ledger.balance(parse_address(PUB_KEY_ADDRESS)) == 13345

    @pytest.mark.asyncio
    async def test_mint_with_address(self, client, ledger):
        """address mints to itself, with or without the 0x prefix."""
        resp = await client.post(f"/mint?address=0x{PUB_KEY}&amount=13345")
        assert resp.status == 200

        resp = await client.post(f"/mint?address={PUB_KEY}&amount=1")
        assert resp.status == 200
        assert len(await resp.json()) == 1
        assert ledger.balance(parse_address(PUB_KEY)) == 13346

    @pytest.mark.asyncio
    async def test_mint_with_txns_response(self, client, ledger):
        """return_txns answers with hex of the BCS-encoded transactions."""
        resp = await client.post(f"/mint?auth_key={PUB_KEY}&amount=13345&return_txns=true")

        assert resp.status == 200
        transactions = decode_transactions(await resp.text())
        assert len(transactions) == 2
        assert ledger.balance(parse_address(PUB_KEY)) == 13345

    @pytest.mark.asyncio
    async def test_mint_invalid_auth_key(self, client):
        """Unparseable identities answer with the guidance text."""
        resp = await client.post("/mint?auth_key=invalid-auth-key&amount=1000000")

        assert resp.status == 400
        assert (
            await resp.text()
            == "You must provide 'address' (preferred), 'pub_key', or 'auth_key'"
        )

    @pytest.mark.asyncio
    async def test_mint_missing_identity(self, client):
        """A request without an identity is rejected."""
        resp = await client.post("/mint?amount=1")
        assert resp.status == 400

    @pytest.mark.asyncio
    async def test_mint_invalid_amount(self, client, ledger):
        """Bad amounts are rejected before anything is signed."""
        resp = await client.post(f"/mint?address={PUB_KEY}&amount=lots")

        assert resp.status == 400
        assert "invalid amount" in await resp.text()
        assert ledger.submitted == []

    @pytest.mark.asyncio
    async def test_mint_fullnode_error(self, client, ledger, faucet_account):
        """A missing faucet account answers 500 with its address."""
        del ledger.accounts[str(faucet_account.address)]

        resp = await client.post(f"/mint?auth_key={PUB_KEY}&amount=1000000")

        assert resp.status == 500
        assert await resp.text() == f"faucet account {faucet_account.address} not found"

    @pytest.mark.asyncio
    async def test_mint_rejected_by_node(self, client, ledger):
        """Node rejections answer 500 with the node's message."""
        ledger.reject_with = "SEQUENCE_NUMBER_TOO_OLD"

        resp = await client.post(f"/mint?address={PUB_KEY}&amount=1")

        assert resp.status == 500
        assert await resp.text() == "SEQUENCE_NUMBER_TOO_OLD"

    @pytest.mark.asyncio
    async def test_mint_lock_timeout(self, faucet_account):
        """Lock timeouts answer 503."""
        app_service = MagicMock()
        app_service.account = faucet_account
        app_service.mint = AsyncMock(side_effect=LockTimeoutError("busy"))
        app = create_app(app_service)
        client = TestClient(TestServer(app))
        await client.start_server()
        try:
            resp = await client.post(f"/mint?address={PUB_KEY}&amount=1")
            assert resp.status == 503
            assert await resp.text() == "busy"
        finally:
            await client.close()

    @pytest.mark.asyncio
    async def test_unexpected_error_is_json(self, faucet_account):
        """Unexpected exceptions answer 500 with a JSON body."""
        app_service = MagicMock()
        app_service.account = faucet_account
        app_service.mint = AsyncMock(side_effect=RuntimeError("kaboom"))
        client = TestClient(TestServer(create_app(app_service)))
        await client.start_server()
        try:
            resp = await client.post(f"/mint?address={PUB_KEY}&amount=1")
            assert resp.status == 500
            assert await resp.json() == {"code": 500, "message": "internal server error"}
        finally:
            await client.close()


class TestHealthEndpoints:
    """Tests for /health, / and /ready."""

    @pytest.mark.asyncio
    async def test_health(self, client):
        """A fresh faucet reports sequence number 0."""
        resp = await client.get("/health")
        assert resp.status == 200
        assert await resp.text() == "0"

    @pytest.mark.asyncio
    async def test_health_after_mint(self, client):
        """/health follows the local sequence number."""
        await client.post(f"/mint?auth_key={PUB_KEY}&amount=1")
        resp = await client.get("/health")
        assert await resp.text() == "2"

    @pytest.mark.asyncio
    async def test_health_lock_timeout(self, client, faucet_account):
        """/health answers 503 while the lock is held too long."""
        async with faucet_account.locked():
            resp = await client.get("/health")
        assert resp.status == 503

    @pytest.mark.asyncio
    async def test_root(self, client):
        """/ is a liveness probe."""
        resp = await client.get("/")
        assert resp.status == 200
        assert await resp.text() == "tap:ok"

    @pytest.mark.asyncio
    async def test_ready_not_ready(self, service):
        """/ready answers 503 when a check fails."""
        readiness = ReadinessProbe()
        readiness.add_check(StaticCheck(HealthStatus.ERROR))
        client = TestClient(TestServer(create_app(service, readiness)))
        await client.start_server()
        try:
            resp = await client.get("/ready")
            assert resp.status == 503
            assert await resp.json() == {
                "status": "not_ready",
                "checks": {"ledger": "unreachable"},
            }
        finally:
            await client.close()

    @pytest.mark.asyncio
    async def test_metrics(self, client):
        """/metrics exposes the faucet counters."""
        await client.get("/")
        resp = await client.get("/metrics")
        assert resp.status == 200
        assert "faucet_requests_total" in await resp.text()


class TestMiddleware:
    """Tests for CORS, request ids, error shapes and request metrics."""

    @pytest.mark.asyncio
    async def test_cors_on_success(self, client):
        resp = await client.get("/")
        assert resp.headers["Access-Control-Allow-Origin"] == "*"

    @pytest.mark.asyncio
    async def test_cors_on_faucet_error(self, client):
        resp = await client.post("/mint?amount=1")
        assert resp.status == 400
        assert resp.headers["Access-Control-Allow-Origin"] == "*"

    @pytest.mark.asyncio
    async def test_preflight(self, client):
        """OPTIONS preflight is answered for POST with Content-Type."""
        resp = await client.options(
            "/mint",
            headers={
                "Origin": "http://example.com",
                "Access-Control-Request-Method": "POST",
                "Access-Control-Request-Headers": "Content-Type",
            },
        )
        assert resp.status == 200
        assert resp.headers["Access-Control-Allow-Origin"] == "*"
        assert "POST" in resp.headers["Access-Control-Allow-Methods"]
        assert "Content-Type" in resp.headers["Access-Control-Allow-Headers"]

    @pytest.mark.asyncio
    async def test_not_found_is_json(self, client):
        """Framework rejections answer JSON with CORS headers."""
        resp = await client.get("/nope")
        assert resp.status == 404
        assert resp.headers["Access-Control-Allow-Origin"] == "*"
        assert await resp.json() == {"code": 404, "message": "Not Found"}

    @pytest.mark.asyncio
    async def test_method_not_allowed_is_json(self, client):
        resp = await client.get("/mint")
        assert resp.status == 405
        assert (await resp.json())["code"] == 405

    @pytest.mark.asyncio
    async def test_request_id_echoed(self, client):
        resp = await client.get("/", headers={"X-Request-ID": "abc123"})
        assert resp.headers["X-Request-ID"] == "abc123"

    @pytest.mark.asyncio
    async def test_request_id_generated(self, client):
        resp = await client.get("/")
        assert len(resp.headers["X-Request-ID"]) == 32

    @pytest.mark.asyncio
    async def test_request_metrics(self, client):
        labels = {"endpoint": "/", "status": "200"}
        before = REGISTRY.get_sample_value("faucet_requests_total", labels) or 0
        await client.get("/")
        assert REGISTRY.get_sample_value("faucet_requests_total", labels) == before + 1
