"""API endpoints for the pool.

Handlers are plain functions, so FastAPI runs them on its threadpool; the
pool's own lock serializes them.
"""

from typing import Annotated

import structlog
from fastapi import APIRouter, Depends, Header, Query

from cpamm.api.models import (
    Holdings,
    PoolDetails,
    ProvideRequest,
    ProvideResponse,
    SwapGivenInputRequest,
    SwapGivenOutputRequest,
    SwapResponse,
    WithdrawRequest,
    WithdrawResponse,
)
from cpamm.config import PoolConfig
from cpamm.constants import BALANCE_MAX
from cpamm.ledger import Asset
from cpamm.pool import Pool

logger = structlog.get_logger()

router = APIRouter()

_default_pool: Pool | None = None


def get_pool() -> Pool:
    """Dependency provider for the pool instance.

    Override this in tests to inject a seeded pool:
        app.dependency_overrides[get_pool] = lambda: pool

    Returns:
        The process-wide pool, created from the environment on first use.
    """
    global _default_pool
    if _default_pool is None:
        config = PoolConfig.from_env()
        logger.info("pool_created", fee_rate=config.fee_rate)
        _default_pool = Pool.from_config(config)
    return _default_pool


PoolDep = Annotated[Pool, Depends(get_pool)]
PrincipalHeader = Annotated[str, Header(alias="X-Principal", min_length=1)]


@router.get("/pool")
def pool_details(pool: PoolDep) -> PoolDetails:
    total_asset1, total_asset2, total_shares, fee_rate = pool.details()
    return PoolDetails(
        total_asset1=total_asset1,
        total_asset2=total_asset2,
        total_shares=total_shares,
        fee_rate=fee_rate,
    )


@router.get("/holdings")
def holdings(pool: PoolDep, principal: PrincipalHeader) -> Holdings:
    """Off-pool balances and shares of the calling principal."""
    asset1, asset2, shares = pool.holdings(principal)
    return Holdings(asset1=asset1, asset2=asset2, shares=shares)


@router.post("/provide")
def provide(request: ProvideRequest, pool: PoolDep, principal: PrincipalHeader) -> ProvideResponse:
    shares = pool.provide(principal, request.amount1, request.amount2)
    return ProvideResponse(shares=shares)


@router.get("/withdraw-estimate")
def withdraw_estimate(
    pool: PoolDep,
    share: Annotated[int, Query(ge=0, le=BALANCE_MAX)],
) -> WithdrawResponse:
    amount1, amount2 = pool.get_withdraw_estimate(share)
    return WithdrawResponse(amount1=amount1, amount2=amount2)


@router.post("/withdraw")
def withdraw(
    request: WithdrawRequest, pool: PoolDep, principal: PrincipalHeader
) -> WithdrawResponse:
    amount1, amount2 = pool.withdraw(principal, request.share)
    return WithdrawResponse(amount1=amount1, amount2=amount2)


@router.get("/quote/given-input")
def quote_given_input(
    pool: PoolDep,
    amount_in: Annotated[int, Query(alias="amountIn", ge=0, le=BALANCE_MAX)],
    asset_in: Annotated[Asset, Query(alias="assetIn")] = Asset.ASSET1,
) -> SwapResponse:
    """Output amount for an exact input, without executing."""
    amount_out = pool.quote_out_given_in(amount_in, asset_in)
    return SwapResponse(asset_in=asset_in, amount_in=amount_in, amount_out=amount_out)


@router.get("/quote/given-output")
def quote_given_output(
    pool: PoolDep,
    amount_out: Annotated[int, Query(alias="amountOut", ge=0, le=BALANCE_MAX)],
    asset_in: Annotated[Asset, Query(alias="assetIn")] = Asset.ASSET1,
) -> SwapResponse:
    """Input amount needed for an exact output, without executing."""
    amount_in = pool.quote_in_given_out(amount_out, asset_in)
    return SwapResponse(asset_in=asset_in, amount_in=amount_in, amount_out=amount_out)


@router.post("/swap/given-input")
def swap_given_input(
    request: SwapGivenInputRequest, pool: PoolDep, principal: PrincipalHeader
) -> SwapResponse:
    amount_out = pool.swap_given_input(
        principal, request.amount_in, request.min_out, asset_in=request.asset_in
    )
    return SwapResponse(
        asset_in=request.asset_in, amount_in=request.amount_in, amount_out=amount_out
    )


@router.post("/swap/given-output")
def swap_given_output(
    request: SwapGivenOutputRequest, pool: PoolDep, principal: PrincipalHeader
) -> SwapResponse:
    amount_in = pool.swap_given_output(
        principal, request.amount_out, request.max_in, asset_in=request.asset_in
    )
    return SwapResponse(
        asset_in=request.asset_in, amount_in=amount_in, amount_out=request.amount_out
    )
