"""
Token balance measurement for gate checks.

Strategies
----------
The gate's ``dynamic_check`` flag resolves to a :class:`BalanceStrategy` when
the gate is loaded:

``LIVE``
    ``eth_call`` of ``balanceOf(address)`` at ``latest``.
``SNAPSHOT``
    Balance as of the gate's pinned ``block_number``, measured either by the
    Snapshot score service (``erc20-balance-of`` strategy, mainnet) or by an
    ``eth_call`` pinned to that block on an archive node, per
    ``config.ethereum.snapshot_source``. An address absent from the score
    result held zero tokens.

Rounding policy
---------------
All comparisons happen on integers in the token's base units, never on
floats:

* ``required_raw = ceil(num_tokens * 10**decimals)``. A requirement finer than
  the token's precision rounds up to the next base unit.
* ``LIVE`` and archive reads are already raw integers.
* Score-service values arrive scaled down and are parsed as ``Decimal``;
  they are converted with ``floor(score * 10**decimals)``.

Access is granted iff ``measured_raw >= required_raw``. Given the same raw
holding, live and snapshot reads flip at exactly the same boundary, and the
conversion itself never grants a balance one base unit short. The score
service computes in double precision upstream, so it cannot resolve the last
base unit of an 18-decimal token; ``archive_rpc`` (the default snapshot
source) is exact.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from decimal import ROUND_CEILING, ROUND_FLOOR, Decimal, localcontext

from gate_repo.access.errors import BalanceUnavailable
from gate_repo.chain.erc20 import fetch_balance_raw
from gate_repo.chain.rpc import LATEST_BLOCK, EthereumRpcClient, RpcError
from gate_repo.chain.snapshot import SnapshotError, SnapshotScoreClient
from gate_repo.db.types import BalanceStrategy, Gate

logger = logging.getLogger(__name__)

# Enough digits for uint256 balances with any decimals() value.
_DECIMAL_PRECISION = 100


def to_base_units(amount: Decimal, decimals: int, *, round_up: bool) -> int:
    """Scale a whole-token ``amount`` to integer base units."""
    with localcontext() as ctx:
        ctx.prec = _DECIMAL_PRECISION
        scaled = Decimal(amount).scaleb(decimals)
        rounding = ROUND_CEILING if round_up else ROUND_FLOOR
        return int(scaled.to_integral_value(rounding=rounding))


def from_base_units(raw: int, decimals: int) -> Decimal:
    """Exact whole-token value of ``raw`` base units."""
    with localcontext() as ctx:
        ctx.prec = _DECIMAL_PRECISION
        return Decimal(raw).scaleb(-decimals)


@dataclass(slots=True, frozen=True)
class BalanceMeasurement:
    """
    One balance reading.

    Attributes:
        strategy: Strategy that produced the reading.
        raw_amount: Balance in base units (floored for score-service readings).
        decimals: Token precision used for scaling.
        block: ``"latest"`` or the pinned block number.
    """

    strategy: BalanceStrategy
    raw_amount: int
    decimals: int
    block: int | str

    @property
    def amount(self) -> Decimal:
        return from_base_units(self.raw_amount, self.decimals)

    def satisfies(self, num_tokens: Decimal) -> bool:
        """Inclusive threshold check in base units."""
        return self.raw_amount >= to_base_units(num_tokens, self.decimals, round_up=True)


class BalanceOracle:
    """
    Measures an address's balance of a gate's token.

    Args:
        rpc: JSON-RPC client used for live reads (and archive snapshot reads).
        score_client: Snapshot score client; required for ``score_api``.
        snapshot_source: ``"score_api"`` or ``"archive_rpc"``.
    """

    def __init__(
        self,
        rpc: EthereumRpcClient,
        *,
        score_client: SnapshotScoreClient | None = None,
        snapshot_source: str = "archive_rpc",
    ) -> None:
        if snapshot_source not in ("score_api", "archive_rpc"):
            raise ValueError(f"unknown snapshot source {snapshot_source!r}")
        if snapshot_source == "score_api" and score_client is None:
            raise ValueError("score_api snapshot source requires a score client")
        self.rpc = rpc
        self.score_client = score_client
        self.snapshot_source = snapshot_source

    def measure(self, gate: Gate, address: str) -> BalanceMeasurement:
        """Measure ``address``'s balance under the gate's strategy.

        Raises:
            BalanceUnavailable: The chain or score service could not answer.
        """
        try:
            if gate.strategy is BalanceStrategy.LIVE:
                return self._measure_live(gate, address)
            return self._measure_snapshot(gate, address)
        except (RpcError, SnapshotError) as exc:
            logger.warning(
                "Balance check failed for gate %s (%s): %s", gate.id, gate.strategy.value, exc
            )
            raise BalanceUnavailable() from exc

    def _measure_live(self, gate: Gate, address: str) -> BalanceMeasurement:
        raw = fetch_balance_raw(self.rpc, gate.contract, address, block=LATEST_BLOCK)
        return BalanceMeasurement(
            strategy=BalanceStrategy.LIVE,
            raw_amount=raw,
            decimals=gate.contract_decimals,
            block=LATEST_BLOCK,
        )

    def _measure_snapshot(self, gate: Gate, address: str) -> BalanceMeasurement:
        if gate.block_number <= 0:
            raise BalanceUnavailable("Gate has no pinned block.")

        if self.snapshot_source == "archive_rpc":
            raw = fetch_balance_raw(self.rpc, gate.contract, address, block=gate.block_number)
        else:
            if self.score_client is None:
                raise BalanceUnavailable("No score service configured.")
            score = self.score_client.get_score(
                address=address,
                contract=gate.contract,
                decimals=gate.contract_decimals,
                token_label=gate.contract_name,
                block_number=gate.block_number,
            )
            raw = to_base_units(score, gate.contract_decimals, round_up=False)

        return BalanceMeasurement(
            strategy=BalanceStrategy.SNAPSHOT,
            raw_amount=raw,
            decimals=gate.contract_decimals,
            block=gate.block_number,
        )


def build_balance_oracle(rpc: EthereumRpcClient | None = None) -> BalanceOracle:
    """Build an oracle from ``config.ethereum``."""
    from gate_repo.chain.rpc import build_rpc_client
    from gate_repo.chain.snapshot import build_score_client
    from gate_repo.config import config

    source = config.ethereum.snapshot_source
    return BalanceOracle(
        rpc or build_rpc_client(),
        score_client=build_score_client() if source == "score_api" else None,
        snapshot_source=source,
    )
