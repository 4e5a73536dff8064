"""Chain identifiers and native token wrapping helpers."""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Dict

from ..errors import InvalidOperation

NATIVE_TOKEN = "0xeeeeeeeeeeeeeeeeeeeeeeeeeeeeeeeeeeeeeeee"
ZERO_ADDRESS = "0x0000000000000000000000000000000000000000"


class Chain(str, Enum):
    """Chains on which portfolios can live."""

    ETH = "eth"
    BSC = "bsc"
    AVAX = "avax"
    POLY = "poly"
    OPTI = "opti"
    ARBI = "arbi"
    FTM = "ftm"
    CELO = "celo"
    ROP = "rop"


@dataclass(frozen=True)
class ChainInfo:
    chain_id: int
    wrapped_token: str


CHAINS: Dict[Chain, ChainInfo] = {
    Chain.ETH: ChainInfo(1, "0xc02aaa39b223fe8d0a0e5c4f27ead9083c756cc2"),
    Chain.BSC: ChainInfo(56, "0xbb4cdb9cbd36b01bd1cbaebf2de08d9173bc095c"),
    Chain.AVAX: ChainInfo(43114, "0xb31f66aa3c1e785363f0875a1b74e27b85fd66c7"),
    Chain.POLY: ChainInfo(137, "0x0d500b1d8e8ef31e21c99d1db9a6444d3adf1270"),
    Chain.OPTI: ChainInfo(10, "0x4200000000000000000000000000000000000006"),
    Chain.ARBI: ChainInfo(42161, "0x82af49447d8a07e3bd95bd0d56f35241523fbab1"),
    Chain.FTM: ChainInfo(250, "0x21be370d5312f44cb42ce377bc9b8a0cef1a4c83"),
    Chain.CELO: ChainInfo(42220, "0x471ece3750da237f93b8e339c536989b8978a438"),
    Chain.ROP: ChainInfo(3, "0xc778417e063141139fce010982780140aa0cd5ab"),
}


def normalise_token(token: str) -> str:
    return str(token or "").strip().lower()


def chain_info(chain: Chain | str) -> ChainInfo:
    try:
        return CHAINS[Chain(chain)]
    except (KeyError, ValueError) as exc:
        raise InvalidOperation(f"Chain not supported: {chain}") from exc


def wrap(chain: Chain | str, token: str) -> str:
    """Return ``token`` with the native alias replaced by the wrapped token."""

    token = normalise_token(token)
    if token == NATIVE_TOKEN:
        return chain_info(chain).wrapped_token
    return token


def unwrap(chain: Chain | str, token: str) -> str:
    token = normalise_token(token)
    if token == chain_info(chain).wrapped_token:
        return NATIVE_TOKEN
    return token


__all__ = [
    "CHAINS",
    "Chain",
    "ChainInfo",
    "NATIVE_TOKEN",
    "ZERO_ADDRESS",
    "chain_info",
    "normalise_token",
    "unwrap",
    "wrap",
]
