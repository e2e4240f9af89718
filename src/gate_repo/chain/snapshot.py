"""
Historical voting-power client for the Snapshot score service.

A gate created in snapshot mode pins the block number at creation time. The
balance of an address at that block is computed by the ``erc20-balance-of``
strategy, the same aggregation Snapshot uses for token-weighted voting:

    POST <score_api_url>
    {"params": {"network": "1", "snapshot": <block>, "space": "",
                "strategies": [{"name": "erc20-balance-of",
                                "params": {"address": <token>, "decimals": <n>,
                                           "symbol": <label>}}],
                "addresses": [<address>]}}

The response carries one ``{address: score}`` mapping per strategy. Scores are
already divided by ``10**decimals``. An address missing from the mapping held
nothing at that block.

The service computes scores in double precision, so a score can be off by a
few base units for 18-decimal tokens; it cannot resolve the last base unit at
a threshold. Deployments that need exact boundaries use the ``archive_rpc``
snapshot source (the default) instead.
"""

from __future__ import annotations

import json
import logging
from decimal import Decimal, InvalidOperation

import requests

logger = logging.getLogger(__name__)

MAINNET_NETWORK = "1"
ERC20_STRATEGY = "erc20-balance-of"


class SnapshotError(Exception):
    """Raised when the score service cannot produce a score."""


class SnapshotScoreClient:
    """
    Client for the Snapshot ``/api/scores`` endpoint.

    Args:
        url: Full score endpoint URL.
        timeout: Request timeout in seconds.
        session: Optional ``requests.Session`` (tests pass a mock).
    """

    def __init__(
        self,
        url: str,
        *,
        timeout: float = 10.0,
        session: requests.Session | None = None,
    ) -> None:
        self.url = url
        self.timeout = timeout
        self._session = session or requests.Session()

    def get_score(
        self,
        *,
        address: str,
        contract: str,
        decimals: int,
        token_label: str,
        block_number: int,
    ) -> Decimal:
        """Return ``address``'s scaled token balance at ``block_number``.

        ``token_label`` only fills the strategy's display ``symbol`` field; it
        does not affect the score.
        """
        payload = {
            "params": {
                "space": "",
                "network": MAINNET_NETWORK,
                "snapshot": block_number,
                "strategies": [
                    {
                        "name": ERC20_STRATEGY,
                        "params": {
                            "address": contract,
                            "decimals": decimals,
                            "symbol": token_label,
                        },
                    }
                ],
                "addresses": [address],
            }
        }
        try:
            response = self._session.post(self.url, json=payload, timeout=self.timeout)
        except requests.exceptions.RequestException as exc:
            logger.warning("Score API request failed: %s", exc)
            raise SnapshotError("score service unreachable") from exc

        if response.status_code != 200:
            raise SnapshotError(f"score service returned HTTP {response.status_code}")

        try:
            # Scores are JSON numbers; parse them as Decimal so no float rounding is added.
            body = json.loads(response.text, parse_float=Decimal)
        except ValueError as exc:
            raise SnapshotError("score service returned invalid JSON") from exc

        if not isinstance(body, dict):
            raise SnapshotError("score service returned a non-object payload")
        if body.get("error"):
            raise SnapshotError(f"score service error: {body['error']!r}")

        result = body.get("result")
        scores = result.get("scores") if isinstance(result, dict) else None
        if not isinstance(scores, list) or not scores or not isinstance(scores[0], dict):
            raise SnapshotError("score service returned no strategy results")

        wanted = address.lower()
        for key, value in scores[0].items():
            if key.lower() == wanted:
                return _to_decimal(value)
        return Decimal(0)


def _to_decimal(value: object) -> Decimal:
    # str() first: Decimal(float) would carry the binary expansion along.
    try:
        score = Decimal(str(value))
    except InvalidOperation as exc:
        raise SnapshotError(f"non-numeric score {value!r}") from exc
    if not score.is_finite() or score < 0:
        raise SnapshotError(f"invalid score {value!r}")
    return score


def build_score_client() -> SnapshotScoreClient:
    """Build a client from ``config.ethereum``."""
    from gate_repo.config import config

    return SnapshotScoreClient(
        config.ethereum.score_api_url, timeout=config.ethereum.timeout_seconds
    )
