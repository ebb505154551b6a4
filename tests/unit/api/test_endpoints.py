"""Tests for the pool HTTP API."""

import asyncio
import json

import pytest
from fastapi.testclient import TestClient

from cpamm.api import endpoints
from cpamm.api.endpoints import get_pool
from cpamm.api.main import create_app, pool_error_handler
from cpamm.errors import ERRORS_BY_CODE, ErrorCode
from cpamm.pool import Pool
from tests.conftest import make_pool
from tests.helpers import ALICE, BOB, GENESIS


@pytest.fixture
def pool() -> Pool:
    return make_pool(fee_rate=0)


@pytest.fixture
def client(pool: Pool) -> TestClient:
    """Client for an app serving the fee-free test pool."""
    return TestClient(create_app(pool))


def as_principal(principal: str) -> dict[str, str]:
    return {"X-Principal": principal}


def genesis(client: TestClient) -> None:
    response = client.post(
        "/provide", json={"amount1": "1000", "amount2": "1000"}, headers=as_principal(ALICE)
    )
    assert response.status_code == 200


class TestHealthAndDetails:
    def test_health(self, client: TestClient):
        response = client.get("/health")
        assert response.status_code == 200
        assert response.json() == {"status": "ok"}

    def test_empty_pool_details(self, client: TestClient):
        response = client.get("/pool")
        assert response.status_code == 200
        assert response.json() == {
            "totalAsset1": "0",
            "totalAsset2": "0",
            "totalShares": "0",
            "feeRate": 0,
        }

    def test_holdings(self, client: TestClient):
        response = client.get("/holdings", headers=as_principal(BOB))
        assert response.status_code == 200
        assert response.json() == {"asset1": "10000", "asset2": "10000", "shares": "0"}

    def test_missing_principal_header(self, client: TestClient):
        response = client.get("/holdings")
        assert response.status_code == 422


class TestLiquidity:
    def test_genesis_provide(self, client: TestClient):
        response = client.post(
            "/provide", json={"amount1": "1000", "amount2": "1000"}, headers=as_principal(ALICE)
        )
        assert response.status_code == 200
        assert response.json() == {"shares": str(GENESIS)}

        details = client.get("/pool").json()
        assert details["totalAsset1"] == "1000"
        assert details["totalShares"] == str(GENESIS)

    def test_integer_amounts_accepted(self, client: TestClient):
        response = client.post(
            "/provide", json={"amount1": 1000, "amount2": 1000}, headers=as_principal(ALICE)
        )
        assert response.status_code == 200

    def test_non_equivalent_deposit(self, client: TestClient):
        genesis(client)
        response = client.post(
            "/provide", json={"amount1": "100", "amount2": "200"}, headers=as_principal(BOB)
        )
        assert response.status_code == 400
        assert response.json()["error"] == "non_equivalent_value"

    def test_insufficient_balance(self, client: TestClient):
        response = client.post(
            "/provide", json={"amount1": "20000", "amount2": "1"}, headers=as_principal(ALICE)
        )
        assert response.status_code == 400
        assert response.json()["error"] == "insufficient_amount"

    @pytest.mark.parametrize("amount", ["-5", "1.5", "abc", str(2**128)])
    def test_invalid_amount_rejected(self, client: TestClient, amount: str):
        response = client.post(
            "/provide", json={"amount1": amount, "amount2": "1000"}, headers=as_principal(ALICE)
        )
        assert response.status_code == 422

    def test_withdraw_estimate_and_withdraw(self, client: TestClient):
        genesis(client)
        half = str(GENESIS // 2)

        estimate = client.get("/withdraw-estimate", params={"share": half})
        assert estimate.status_code == 200
        assert estimate.json() == {"amount1": "500", "amount2": "500"}

        response = client.post("/withdraw", json={"share": half}, headers=as_principal(ALICE))
        assert response.status_code == 200
        assert response.json() == {"amount1": "500", "amount2": "500"}
        assert client.get("/pool").json()["totalAsset1"] == "500"

    def test_withdraw_estimate_invalid_share(self, client: TestClient):
        genesis(client)
        response = client.get("/withdraw-estimate", params={"share": GENESIS + 1})
        assert response.status_code == 400
        assert response.json()["error"] == "invalid_share"

    def test_withdraw_estimate_empty_pool(self, client: TestClient):
        response = client.get("/withdraw-estimate", params={"share": 1})
        assert response.status_code == 409
        assert response.json()["error"] == "zero_liquidity"


class TestQuotes:
    def test_quote_on_empty_pool_conflicts(self, client: TestClient):
        response = client.get("/quote/given-input", params={"amountIn": 100})
        assert response.status_code == 409
        body = response.json()
        assert body["error"] == "zero_liquidity"
        assert body["detail"]

    def test_quote_given_input(self, client: TestClient):
        genesis(client)
        response = client.get("/quote/given-input", params={"amountIn": 100})
        assert response.status_code == 200
        assert response.json() == {"assetIn": "asset1", "amountIn": "100", "amountOut": "91"}

    def test_quote_given_output(self, client: TestClient):
        genesis(client)
        response = client.get(
            "/quote/given-output", params={"amountOut": 91, "assetIn": "asset2"}
        )
        assert response.status_code == 200
        assert response.json() == {"assetIn": "asset2", "amountIn": "100", "amountOut": "91"}

    def test_quote_given_output_drains_reserve(self, client: TestClient):
        genesis(client)
        response = client.get("/quote/given-output", params={"amountOut": 1000})
        assert response.status_code == 409
        assert response.json()["error"] == "insufficient_liquidity"

    def test_unknown_asset_rejected(self, client: TestClient):
        genesis(client)
        response = client.get("/quote/given-input", params={"amountIn": 100, "assetIn": "asset3"})
        assert response.status_code == 422


class TestSwaps:
    def test_swap_given_input(self, client: TestClient):
        genesis(client)
        response = client.post(
            "/swap/given-input", json={"amountIn": "100"}, headers=as_principal(BOB)
        )
        assert response.status_code == 200
        assert response.json() == {"assetIn": "asset1", "amountIn": "100", "amountOut": "91"}

        holdings = client.get("/holdings", headers=as_principal(BOB)).json()
        assert holdings == {"asset1": "9900", "asset2": "10091", "shares": "0"}

    def test_swap_given_input_slippage(self, client: TestClient):
        genesis(client)
        response = client.post(
            "/swap/given-input",
            json={"amountIn": "100", "minOut": "92"},
            headers=as_principal(BOB),
        )
        assert response.status_code == 400
        assert response.json()["error"] == "slippage_exceeded"
        assert client.get("/pool").json()["totalAsset1"] == "1000"

    def test_swap_given_input_zero_amount(self, client: TestClient):
        genesis(client)
        response = client.post(
            "/swap/given-input", json={"amountIn": "0"}, headers=as_principal(BOB)
        )
        assert response.status_code == 400
        assert response.json()["error"] == "zero_amount"

    def test_swap_given_output(self, client: TestClient):
        genesis(client)
        response = client.post(
            "/swap/given-output",
            json={"amountOut": "91", "maxIn": "100", "assetIn": "asset2"},
            headers=as_principal(BOB),
        )
        assert response.status_code == 200
        assert response.json() == {"assetIn": "asset2", "amountIn": "100", "amountOut": "91"}

        holdings = client.get("/holdings", headers=as_principal(BOB)).json()
        assert holdings == {"asset1": "10091", "asset2": "9900", "shares": "0"}

    def test_swap_given_output_slippage(self, client: TestClient):
        genesis(client)
        response = client.post(
            "/swap/given-output",
            json={"amountOut": "91", "maxIn": "99"},
            headers=as_principal(BOB),
        )
        assert response.status_code == 400
        assert response.json()["error"] == "slippage_exceeded"


class TestPoolDependency:
    def test_default_pool_created_once_from_env(self, monkeypatch: pytest.MonkeyPatch):
        monkeypatch.setattr(endpoints, "_default_pool", None)
        monkeypatch.setenv("CPAMM_FEE_RATE", "7")

        pool = get_pool()
        assert pool.fee_rate == 7
        assert get_pool() is pool

    def test_app_without_override_uses_default_pool(self, monkeypatch: pytest.MonkeyPatch):
        monkeypatch.setattr(endpoints, "_default_pool", None)
        monkeypatch.setenv("CPAMM_FEE_RATE", "2000")

        client = TestClient(create_app())
        assert client.get("/pool").json()["feeRate"] == 0


class TestPoolErrorHandler:
    @pytest.mark.parametrize("code", list(ErrorCode))
    def test_renders_every_pool_error(self, code: ErrorCode):
        """Each error code maps to 409 or 400 with a stable body."""
        error = ERRORS_BY_CODE[code]("rejected")
        response = asyncio.run(pool_error_handler(None, error))  # type: ignore[arg-type]

        expected = (
            409
            if code in (ErrorCode.ZERO_LIQUIDITY, ErrorCode.INSUFFICIENT_LIQUIDITY)
            else 400
        )
        assert response.status_code == expected
        assert json.loads(response.body) == {"error": code.value, "detail": "rejected"}
