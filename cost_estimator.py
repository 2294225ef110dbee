"""
Single cost model for scan operations, used both for the budget pre-check
and for the cost recorded once the scan is done.
"""
import logging
from typing import Iterable, Optional

from config import (
    MODEL_PRICING,
    SCAN_MODEL_NAME,
    PRECHECK_COST_PER_SIDE,
    FALLBACK_AI_COST,
    MIN_OPERATION_COST,
)

logger = logging.getLogger(__name__)

QR_MULTIPLIER = 1.2
MANY_FIELDS_MULTIPLIER = 1.1
MANY_FIELDS_THRESHOLD = 5
SLOW_SCAN_MS = 10000
SLOW_SCAN_MULTIPLIER = 1.3
MODERATE_SCAN_MS = 5000
MODERATE_SCAN_MULTIPLIER = 1.1


class CostEstimator:
    def __init__(self, pricing=None):
        self.pricing = pricing or MODEL_PRICING

    def token_cost(self, model: str, input_tokens: Optional[int], output_tokens: Optional[int]) -> float:
        """USD cost of one model call; a flat fallback when usage was not reported"""
        if input_tokens is None or output_tokens is None:
            logger.warning(f"No usage metadata for {model}, using fallback cost {FALLBACK_AI_COST}")
            return FALLBACK_AI_COST

        if model in self.pricing:
            input_price, output_price = self.pricing[model]
        else:
            logger.warning(f"No pricing for model {model}, using {SCAN_MODEL_NAME} prices")
            input_price, output_price = self.pricing.get(SCAN_MODEL_NAME, MODEL_PRICING["gemini-1.5-flash"])

        cost = (input_tokens / 1_000_000) * input_price + (output_tokens / 1_000_000) * output_price
        return round(cost, 8)

    def precheck_estimate(self, side_count: int) -> float:
        """Estimate used for the budget check before any provider is called"""
        return round(PRECHECK_COST_PER_SIDE * max(side_count, 1), 6)

    def operation_cost(
        self,
        side_costs: Iterable[float],
        duration_ms: float,
        has_qr: bool = False,
        fields_count: int = 0,
    ) -> float:
        """Total cost of a scan: summed side costs scaled by QR, field count and duration"""
        cost = sum(side_costs)

        if has_qr:
            cost *= QR_MULTIPLIER
        if fields_count > MANY_FIELDS_THRESHOLD:
            cost *= MANY_FIELDS_MULTIPLIER
        if duration_ms > SLOW_SCAN_MS:
            cost *= SLOW_SCAN_MULTIPLIER
        elif duration_ms > MODERATE_SCAN_MS:
            cost *= MODERATE_SCAN_MULTIPLIER

        return round(max(cost, MIN_OPERATION_COST), 8)
