"""Pydantic models for the pool API.

Amounts travel as decimal strings so unsigned 128-bit values survive JSON
clients that parse numbers as doubles. Integers are accepted on input.
"""

from typing import Annotated, Any

from pydantic import BaseModel, BeforeValidator, Field, PlainSerializer

from cpamm.constants import BALANCE_MAX
from cpamm.ledger import Asset


def validate_balance(value: Any) -> int:
    """Validate that a value is an unsigned 128-bit integer.

    Args:
        value: Decimal string or int

    Returns:
        The value as int

    Raises:
        ValueError: If value is not a non-negative integer within range
    """
    if isinstance(value, bool):
        raise ValueError("Amount must be an integer, got bool")

    if isinstance(value, int):
        int_value = value
    elif isinstance(value, str):
        try:
            int_value = int(value)
        except ValueError as err:
            raise ValueError(f"Amount must be a decimal integer string: '{value}'") from err
    else:
        raise ValueError(f"Amount must be string or int, got {type(value).__name__}")

    if int_value < 0:
        raise ValueError(f"Amount cannot be negative: {value}")
    if int_value > BALANCE_MAX:
        raise ValueError(f"Amount overflow: {value} > 2^128-1")
    return int_value


# Unsigned 128-bit amount, serialized as decimal string
Amount = Annotated[
    int,
    BeforeValidator(validate_balance),
    PlainSerializer(str, return_type=str),
    Field(description="Unsigned 128-bit integer as decimal string"),
]


class ProvideRequest(BaseModel):
    amount1: Amount
    amount2: Amount


class ProvideResponse(BaseModel):
    shares: Amount


class WithdrawRequest(BaseModel):
    share: Amount


class WithdrawResponse(BaseModel):
    """Asset amounts returned (or that would be returned) for a share."""

    amount1: Amount
    amount2: Amount


class SwapGivenInputRequest(BaseModel):
    amount_in: Amount = Field(alias="amountIn")
    min_out: Amount = Field(default=0, alias="minOut")
    asset_in: Asset = Field(default=Asset.ASSET1, alias="assetIn")

    model_config = {"populate_by_name": True}


class SwapGivenOutputRequest(BaseModel):
    amount_out: Amount = Field(alias="amountOut")
    max_in: Amount = Field(default=BALANCE_MAX, alias="maxIn")
    asset_in: Asset = Field(default=Asset.ASSET1, alias="assetIn")

    model_config = {"populate_by_name": True}


class SwapResponse(BaseModel):
    """Amounts of a swap, quoted or executed."""

    asset_in: Asset = Field(alias="assetIn")
    amount_in: Amount = Field(alias="amountIn")
    amount_out: Amount = Field(alias="amountOut")

    model_config = {"populate_by_name": True}


class PoolDetails(BaseModel):
    total_asset1: Amount = Field(alias="totalAsset1")
    total_asset2: Amount = Field(alias="totalAsset2")
    total_shares: Amount = Field(alias="totalShares")
    fee_rate: int = Field(alias="feeRate", description="Trading fee in per-mille.")

    model_config = {"populate_by_name": True}


class Holdings(BaseModel):
    asset1: Amount
    asset2: Amount
    shares: Amount


class ErrorResponse(BaseModel):
    error: str = Field(description="Stable error code, e.g. 'zero_liquidity'.")
    detail: str
