"""
Single-use scan tokens for the public exchange form.

A token is a signed itsdangerous payload backed by a ScanToken row. The row
moves issued -> reserved -> used through conditional updates, so two requests
presenting the same token cannot both get past reservation.
"""
from sqlalchemy.orm import Session
from itsdangerous import URLSafeTimedSerializer, BadSignature, SignatureExpired
from models import ScanToken, ProfileOwner, TOKEN_ISSUED, TOKEN_RESERVED, TOKEN_USED
from datetime import datetime, timedelta
from typing import Dict, Any, Optional
import logging
import secrets
import time

from config import APP_SECRET_KEY, SCAN_TOKEN_TTL_SECONDS
from cost_estimator import CostEstimator
from cost_tracking import CostTrackingService
from scan_errors import InvalidScanToken

logger = logging.getLogger(__name__)

TOKEN_PURPOSE = "public_scan"
TOKEN_SALT = "public-scan-token"


def new_token_id() -> str:
    return f"scan_{int(time.time() * 1000)}_{secrets.token_hex(5)[:9]}"


class ScanTokenService:
    """Issue, verify and consume public scan tokens"""

    def __init__(self, db: Session, secret_key: Optional[str] = None, ttl_seconds: int = SCAN_TOKEN_TTL_SECONDS):
        self.db = db
        self.ttl_seconds = ttl_seconds
        self.serializer = URLSafeTimedSerializer(secret_key or APP_SECRET_KEY, salt=TOKEN_SALT)

    def issue_token(self, owner: ProfileOwner) -> Dict[str, Any]:
        """Sign a new token for owner, provided they can afford one scan"""
        estimated_cost = CostEstimator().precheck_estimate(1)
        cost_check = CostTrackingService(self.db).can_afford_operation(owner.id, estimated_cost, 1)
        if not cost_check["canAfford"]:
            logger.info(f"Profile owner {owner.id} cannot afford scan: {cost_check['reason']}")
            return {
                "success": False,
                "error": "BUDGET_EXCEEDED",
                "reason": cost_check["reason"],
                "remainingBudget": cost_check.get("remainingBudget"),
            }

        now = datetime.utcnow()
        token_id = new_token_id()
        expires_at = now + timedelta(seconds=self.ttl_seconds)

        token = self.serializer.dumps({
            "tokenId": token_id,
            "profileOwnerId": owner.id,
            "profileOwnerName": owner.name,
            "purpose": TOKEN_PURPOSE,
        })

        self.db.add(ScanToken(
            token_id=token_id,
            profile_owner_id=owner.id,
            profile_owner_name=owner.name,
            status=TOKEN_ISSUED,
            issued_at=now,
            expires_at=expires_at,
        ))
        self.db.commit()

        logger.info(f"Scan token issued: {token_id}")
        return {
            "success": True,
            "token": token,
            "tokenId": token_id,
            "expiresAt": expires_at.isoformat(),
            "canAfford": True,
        }

    def verify_token(self, token: str) -> Optional[Dict[str, Any]]:
        """Token data for a valid, unexpired, not yet claimed token, else None"""
        try:
            payload = self.serializer.loads(token, max_age=self.ttl_seconds)
        except SignatureExpired:
            logger.warning("Scan token expired")
            return None
        except BadSignature as e:
            logger.warning(f"Invalid scan token: {str(e)}")
            return None

        if not isinstance(payload, dict) or payload.get("purpose") != TOKEN_PURPOSE:
            return None

        row = self.db.query(ScanToken).filter(ScanToken.token_id == payload.get("tokenId")).first()
        if not row or row.status != TOKEN_ISSUED or row.expires_at <= datetime.utcnow():
            return None

        return {
            "profileOwnerId": payload["profileOwnerId"],
            "profileOwnerName": payload.get("profileOwnerName"),
            "tokenId": payload["tokenId"],
        }

    def _transition(self, token_id: str, from_status: str, values: Dict[str, Any]) -> bool:
        query = self.db.query(ScanToken).filter(
            ScanToken.token_id == token_id,
            ScanToken.status == from_status,
        )
        if from_status == TOKEN_ISSUED:
            query = query.filter(ScanToken.expires_at > datetime.utcnow())
        updated = query.update(values, synchronize_session=False)
        self.db.commit()
        return updated == 1

    def reserve_token(self, token_id: str) -> bool:
        """issued -> reserved; False if another request claimed it first"""
        return self._transition(token_id, TOKEN_ISSUED, {
            "status": TOKEN_RESERVED,
            "reserved_at": datetime.utcnow(),
        })

    def mark_token_used(self, token_id: str) -> bool:
        """reserved -> used"""
        used = self._transition(token_id, TOKEN_RESERVED, {
            "status": TOKEN_USED,
            "used_at": datetime.utcnow(),
        })
        if used:
            logger.info(f"Token marked as used: {token_id}")
        else:
            logger.warning(f"Token {token_id} was not reserved, cannot mark as used")
        return used

    def release_token(self, token_id: str) -> bool:
        """reserved -> issued, for requests that fail before responding"""
        return self._transition(token_id, TOKEN_RESERVED, {
            "status": TOKEN_ISSUED,
            "reserved_at": None,
        })

    def claim_token(self, token: str) -> Dict[str, Any]:
        """Verify and reserve in one step; raises InvalidScanToken"""
        token_data = self.verify_token(token) if token else None
        if not token_data or not self.reserve_token(token_data["tokenId"]):
            raise InvalidScanToken("Invalid or expired scan token")
        return token_data

    def cleanup_expired_tokens(self, older_than: timedelta = timedelta(days=1)) -> int:
        cutoff = datetime.utcnow() - older_than
        try:
            deleted = self.db.query(ScanToken).filter(
                ScanToken.expires_at < cutoff
            ).delete(synchronize_session=False)
            self.db.commit()
        except Exception as e:
            logger.error(f"Error cleaning up expired tokens: {str(e)}")
            self.db.rollback()
            return 0

        if deleted:
            logger.info(f"Cleaned up {deleted} expired scan tokens")
        return deleted

    def get_token_usage_stats(self, owner_id: str, days: int = 7) -> Dict[str, Any]:
        start_date = datetime.utcnow() - timedelta(days=days)
        tokens = self.db.query(ScanToken).filter(
            ScanToken.profile_owner_id == owner_id,
            ScanToken.issued_at >= start_date,
        ).order_by(ScanToken.issued_at.desc()).all()

        total_used = sum(1 for t in tokens if t.status == TOKEN_USED)
        return {
            "totalGenerated": len(tokens),
            "totalUsed": total_used,
            "totalUnused": len(tokens) - total_used,
            "usageRate": (total_used / len(tokens)) * 100 if tokens else 0,
            "recentTokens": [t.to_dict() for t in tokens[:10]],
        }
