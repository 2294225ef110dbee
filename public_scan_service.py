"""
Public business card scan: the request-level flow from token to merged result.

validate -> scan every side concurrently -> merge -> cost -> respond.
"""
from sqlalchemy.orm import Session
from typing import Dict, Any, List, Optional
import asyncio
import logging
import secrets
import time

from business_card_scanner import BusinessCardScanner
from config import (
    SCAN_MODEL_NAME,
    PUBLIC_SCAN_RATE_LIMIT,
    PUBLIC_SCAN_RATE_WINDOW_MINUTES,
)
from cost_estimator import CostEstimator
from cost_tracking import CostTrackingService
from deduplication import merge_fallback_results, merge_side_results
from image_sanitizer import sanitize_image
from personalized_message import PersonalizedMessageGenerator, extract_client_name
from rate_limiter import RateLimiter
from scan_errors import InvalidRequest, BudgetExceeded
from scan_fields import SIDES
from scan_tokens import ScanTokenService

logger = logging.getLogger(__name__)

SCAN_FEATURE = "public_card_scan_enhanced"


def new_request_id() -> str:
    return f"pub_scan_{int(time.time() * 1000)}_{secrets.token_hex(2)}"


def scan_mode(sides: List[str]) -> str:
    if len(sides) > 1:
        return "multi_side_combined"
    return sides[0] if sides else "single_side"


class PublicScanService:
    """Scan a card for a visitor, billed to the profile owner who issued the token"""

    def __init__(
        self,
        db: Session,
        scanner: BusinessCardScanner,
        greeter: PersonalizedMessageGenerator,
        cost_estimator: Optional[CostEstimator] = None,
    ):
        self.db = db
        self.scanner = scanner
        self.greeter = greeter
        self.cost_estimator = cost_estimator or CostEstimator()
        self.tokens = ScanTokenService(db)
        self.cost_tracker = CostTrackingService(db)

    def check_rate_limit(self, client_ip: str) -> int:
        return RateLimiter(self.db).check(
            f"public_scan_rate_{client_ip}",
            PUBLIC_SCAN_RATE_LIMIT,
            PUBLIC_SCAN_RATE_WINDOW_MINUTES,
            label="Public scan",
            unit="scans",
        )

    @staticmethod
    def requested_sides(images: Optional[Dict[str, Any]]) -> List[str]:
        if not isinstance(images, dict):
            return []
        return [side for side in SIDES if images.get(side)]

    async def process_scan(
        self,
        images: Dict[str, Any],
        scan_token: str,
        language: str = "en",
        request_id: Optional[str] = None,
    ) -> Dict[str, Any]:
        request_id = request_id or new_request_id()
        sides = self.requested_sides(images)

        if not sides:
            raise InvalidRequest("At least one image (front or back) is required")
        if not scan_token:
            raise InvalidRequest("Secure scan token required")

        logger.info(f"[{request_id}] Processing public scan for side(s): {', '.join(sides)} (language {language})")

        # Every image is checked before any provider or token work
        sanitized = {side: sanitize_image(images[side]) for side in sides}

        token_data = self.tokens.claim_token(scan_token)
        owner_id = token_data["profileOwnerId"]
        owner_name = token_data.get("profileOwnerName") or "Profile Owner"

        try:
            estimated_cost = self.cost_estimator.precheck_estimate(len(sides))
            cost_check = self.cost_tracker.can_afford_operation(owner_id, estimated_cost, 1)
            if not cost_check["canAfford"]:
                raise BudgetExceeded("Profile owner has insufficient AI budget")

            start = time.monotonic()
            side_results = await asyncio.gather(*(
                self.scanner.scan_side(sanitized[side], side, request_id) for side in sides
            ))
            merged = merge_side_results(side_results)
            scan_duration = int((time.monotonic() - start) * 1000)

            if merged.success:
                response_result = merged
            else:
                logger.warning(f"[{request_id}] No side succeeded, returning fallback fields")
                response_result = merge_fallback_results(side_results)

            cost = self.cost_estimator.operation_cost(
                [r.cost for r in side_results],
                scan_duration,
                has_qr=merged.has_qr_code,
                fields_count=merged.fields_count,
            )

            client_name = extract_client_name(merged.parsed_fields)
            self.cost_tracker.record_usage(
                owner_id,
                cost,
                SCAN_MODEL_NAME,
                SCAN_FEATURE,
                {
                    "requestId": request_id,
                    "scanDuration": scan_duration,
                    "fieldsDetected": merged.fields_count,
                    "dynamicFields": merged.dynamic_fields_count,
                    "hasQRCode": merged.has_qr_code,
                    "clientName": client_name or "unknown",
                    "sidesScanned": sides,
                    "scanMode": scan_mode(sides),
                },
                "api_call",
            )

            personalized_message = None
            if merged.success and client_name:
                personalized_message = await self.greeter.generate(client_name, owner_name, language)

        except Exception:
            self.tokens.release_token(token_data["tokenId"])
            raise

        self.tokens.mark_token_used(token_data["tokenId"])
        logger.info(f"[{request_id}] Public scan completed for {' & '.join(sides)} in {scan_duration}ms (${cost:.6f})")

        return {
            "success": response_result.success,
            "parsedFields": [f.to_dict() for f in response_result.parsed_fields],
            "personalizedMessage": personalized_message,
            "metadata": {
                **response_result.metadata(),
                "scanDuration": f"{scan_duration}ms",
                "sidesProcessed": sides,
                "enhancedProcessing": True,
                "cost": cost,
                "requestId": request_id,
            },
        }
