"""Contract addresses and ABIs used by the chain gateway (Base mainnet)."""

from __future__ import annotations

from typing import Any, Dict, List, Sequence, Tuple

BASE_CHAIN_ID = 8453
USDC_ADDRESS = "0x833589fCD6eDb6E08f4c7C32D4f71b54bdA02913"
FACTORY_ADDRESS = "0x7910aEb89f4843457d90cb26161EebA34d39EB60"
EPOCH_MANAGER_ADDRESS = "0x377DdE21CF1d613DFB7Cec34a05232Eea77FAe7f"

DEFAULT_RPC_ENDPOINTS = (
    "https://mainnet.base.org",
    "https://base.blockpi.network/v1/rpc/public",
    "https://base.llamarpc.com",
)

USDC_DECIMALS = 6


def _params(items: Sequence[Tuple[str, str]]) -> List[Dict[str, str]]:
    return [{"name": name, "type": kind} for name, kind in items]


def _function(name: str, inputs=(), outputs=(), mutability: str = "view") -> Dict[str, Any]:
    return {
        "type": "function",
        "name": name,
        "inputs": _params(inputs),
        "outputs": _params(outputs),
        "stateMutability": mutability,
    }


USDC_ABI = [
    _function("balanceOf", [("owner", "address")], [("", "uint256")]),
    _function("allowance", [("owner", "address"), ("spender", "address")], [("", "uint256")]),
    _function("approve", [("spender", "address"), ("amount", "uint256")], [("", "bool")], "nonpayable"),
    _function("transfer", [("to", "address"), ("amount", "uint256")], [("", "bool")], "nonpayable"),
]

FACTORY_ABI = [
    _function("getMarketCreationFee", [], [("", "uint256")]),
    _function(
        "createMarket",
        [("_question", "string"), ("_optionA", "string"), ("_optionB", "string"), ("_endTime", "uint256")],
        [("marketId", "bytes32"), ("marketContract", "address")],
        "nonpayable",
    ),
    {
        "type": "event",
        "name": "MarketCreated",
        "anonymous": False,
        "inputs": [
            {"name": "marketId", "type": "bytes32", "indexed": True},
            {"name": "marketContract", "type": "address", "indexed": True},
            {"name": "creator", "type": "address", "indexed": True},
            {"name": "question", "type": "string", "indexed": False},
            {"name": "endTime", "type": "uint256", "indexed": False},
        ],
    },
]

EPOCH_MANAGER_ABI = [
    _function(
        "getCurrentWeekInfo",
        [],
        [
            ("week", "uint256"),
            ("startTime", "uint256"),
            ("endTime", "uint256"),
            ("tradersCount", "uint256"),
            ("creatorsCount", "uint256"),
            ("topKSetting", "uint256"),
            ("currentRewardPool", "uint256"),
        ],
    ),
    _function("weekStatus", [("", "uint256")], [("", "uint8")]),
    _function("getPendingWeeks", [], [("pendingWeeks", "uint256[]"), ("rewardPools", "uint256[]")]),
]

MARKET_ABI = [
    _function("placeBet", [("_betOnA", "bool"), ("_amount", "uint256")], [], "nonpayable"),
]
