from sqlalchemy.orm import Session
from sqlalchemy import func
from models import ProfileOwner, UsageRecord
from datetime import datetime
from typing import Dict, Any, Optional
import logging
import json

logger = logging.getLogger(__name__)

UNLIMITED_LEVELS = {"enterprise"}


def month_start(now: Optional[datetime] = None) -> datetime:
    now = now or datetime.utcnow()
    return now.replace(day=1, hour=0, minute=0, second=0, microsecond=0)


class CostTrackingService:
    """Monthly AI budget checks and the usage ledger for profile owners"""

    def __init__(self, db: Session):
        self.db = db

    def get_monthly_usage(self, owner_id: str) -> Dict[str, Any]:
        total_cost, total_runs = self.db.query(
            func.coalesce(func.sum(UsageRecord.cost), 0.0),
            func.count(UsageRecord.id),
        ).filter(
            UsageRecord.profile_owner_id == owner_id,
            UsageRecord.is_billable_run.is_(True),
            UsageRecord.created_at >= month_start(),
        ).one()
        return {"totalCost": float(total_cost or 0.0), "totalRuns": int(total_runs or 0)}

    def can_afford_operation(self, owner_id: str, estimated_cost: float, runs: int = 1) -> Dict[str, Any]:
        """Would this operation keep the owner inside the monthly budget and run caps"""
        owner = self.db.query(ProfileOwner).filter(ProfileOwner.id == owner_id).first()
        if not owner:
            return {"canAfford": False, "reason": "owner_not_found", "remainingBudget": 0, "remainingRuns": 0}

        if (owner.subscription_level or "").lower() in UNLIMITED_LEVELS:
            return {"canAfford": True, "reason": "enterprise_unlimited", "remainingBudget": -1, "remainingRuns": -1}

        usage = self.get_monthly_usage(owner_id)
        max_cost = owner.monthly_budget or 0.0
        max_runs = owner.monthly_runs or 0
        remaining_budget = max(0.0, max_cost - usage["totalCost"]) if max_cost > 0 else -1
        remaining_runs = max(0, max_runs - usage["totalRuns"]) if max_runs > 0 else -1

        if max_cost > 0 and usage["totalCost"] + estimated_cost > max_cost:
            logger.info(f"Owner {owner_id} would exceed budget ({usage['totalCost']:.4f} + {estimated_cost:.4f} > {max_cost})")
            return {
                "canAfford": False,
                "reason": "budget_exceeded",
                "remainingBudget": remaining_budget,
                "remainingRuns": remaining_runs,
            }

        if max_runs > 0 and usage["totalRuns"] + runs > max_runs:
            logger.info(f"Owner {owner_id} would exceed monthly runs ({usage['totalRuns']} + {runs} > {max_runs})")
            return {
                "canAfford": False,
                "reason": "runs_exceeded",
                "remainingBudget": remaining_budget,
                "remainingRuns": remaining_runs,
            }

        return {
            "canAfford": True,
            "reason": "within_limits",
            "remainingBudget": remaining_budget - estimated_cost if max_cost > 0 else -1,
            "remainingRuns": remaining_runs - runs if max_runs > 0 else -1,
        }

    def record_usage(
        self,
        owner_id: str,
        cost: float,
        model: str,
        feature: str,
        metadata: Optional[Dict[str, Any]] = None,
        cost_type: str = "api_call",
        is_billable_run: bool = True,
    ) -> UsageRecord:
        record = UsageRecord(
            profile_owner_id=owner_id,
            cost=cost,
            model=model,
            feature=feature,
            cost_type=cost_type,
            is_billable_run=is_billable_run,
            details=json.dumps(metadata or {}, default=str),
        )
        try:
            self.db.add(record)
            self.db.commit()
            self.db.refresh(record)
        except Exception as e:
            logger.error(f"Failed to record usage for {owner_id}: {str(e)}")
            self.db.rollback()
            raise
        logger.info(f"Recorded {feature} usage for {owner_id}: ${cost:.6f} ({model})")
        return record
