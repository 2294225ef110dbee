from fastapi import FastAPI, HTTPException, Request, Depends, Query
from pydantic import BaseModel, ValidationError
from fastapi.responses import JSONResponse
from fastapi.middleware.cors import CORSMiddleware
from sqlalchemy.orm import Session
from typing import Dict, Any, Optional
import logging

from config import (
    ALLOWED_ORIGINS,
    IS_PRODUCTION,
    GREETING_MODEL_NAME,
    SCAN_MODEL_NAME,
    TOKEN_RATE_LIMIT,
    TOKEN_RATE_WINDOW_MINUTES,
)
from database import get_db
from models import ProfileOwner
from business_card_scanner import BusinessCardScanner
from field_extractor import AIFieldExtractor
from gemini_client import GeminiTextGenerator
from personalized_message import PersonalizedMessageGenerator
from public_scan_service import PublicScanService, new_request_id
from rate_limiter import RateLimiter
from scan_errors import InvalidOrigin, InvalidRequest, classify_error
from scan_tokens import ScanTokenService

logging.basicConfig(level=logging.INFO)
logger = logging.getLogger(__name__)

app = FastAPI(title="Business Card Scanner", version="1.0.0")

app.add_middleware(
    CORSMiddleware,
    allow_origins=ALLOWED_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# Initialize components
card_scanner = BusinessCardScanner(AIFieldExtractor(GeminiTextGenerator(model_name=SCAN_MODEL_NAME)))
greeter = PersonalizedMessageGenerator(GeminiTextGenerator(model_name=GREETING_MODEL_NAME))


class PublicScanRequest(BaseModel):
    images: Optional[Dict[str, Any]] = None
    scanToken: Optional[str] = None
    language: Optional[str] = "en"


class ScanTokenRequest(BaseModel):
    userId: Optional[str] = None
    username: Optional[str] = None


def get_scan_service(db: Session = Depends(get_db)) -> PublicScanService:
    return PublicScanService(db, card_scanner, greeter)


def client_ip(request: Request) -> str:
    forwarded = request.headers.get("x-forwarded-for")
    if forwarded:
        return forwarded.split(",")[0].strip()
    real_ip = request.headers.get("x-real-ip")
    if real_ip:
        return real_ip
    return request.client.host if request.client else "unknown"


def check_origin(request: Request):
    origin = request.headers.get("origin")
    if IS_PRODUCTION and origin not in ALLOWED_ORIGINS:
        raise InvalidOrigin("Invalid origin")


def error_response(error: Exception, request_id: str) -> JSONResponse:
    status_code, code = classify_error(error)
    message = str(error) if status_code != 500 else f"Scan failed: {str(error)}"
    return JSONResponse(
        status_code=status_code,
        content={"success": False, "error": message, "code": code, "requestId": request_id},
    )


@app.post("/api/scan/public")
async def public_scan(request: Request, service: PublicScanService = Depends(get_scan_service)):
    """Scan one or both sides of a business card for an unauthenticated visitor"""
    request_id = new_request_id()
    logger.info(f"[{request_id}] Public scan request received")

    try:
        check_origin(request)
        service.check_rate_limit(client_ip(request))

        try:
            body = PublicScanRequest(**(await request.json()))
        except (ValueError, TypeError, ValidationError) as e:
            raise InvalidRequest(f"Invalid request body: {str(e)}")

        result = await service.process_scan(
            body.images or {},
            body.scanToken,
            language=body.language or "en",
            request_id=request_id,
        )
        return JSONResponse(result)

    except Exception as e:
        logger.error(f"[{request_id}] Public scan failed: {str(e)}")
        return error_response(e, request_id)


@app.post("/api/scan-token")
async def create_scan_token(
    payload: ScanTokenRequest,
    request: Request,
    db: Session = Depends(get_db),
):
    """Issue a single-use scan token billed to a profile owner"""
    try:
        RateLimiter(db).check(
            f"scan_token_rate_{client_ip(request)}",
            TOKEN_RATE_LIMIT,
            TOKEN_RATE_WINDOW_MINUTES,
            label="Scan token",
        )
    except Exception as e:
        return error_response(e, "")

    if not payload.userId and not payload.username:
        raise HTTPException(status_code=400, detail="userId or username is required")

    query = db.query(ProfileOwner)
    if payload.userId:
        owner = query.filter(ProfileOwner.id == payload.userId).first()
    else:
        owner = query.filter(ProfileOwner.username == payload.username.strip()).first()

    if not owner:
        return JSONResponse(status_code=404, content={"success": False, "error": "PROFILE_NOT_FOUND"})
    if not owner.exchange_enabled:
        return JSONResponse(status_code=403, content={"success": False, "error": "EXCHANGE_DISABLED"})

    tokens = ScanTokenService(db)
    tokens.cleanup_expired_tokens()
    result = tokens.issue_token(owner)
    if not result["success"]:
        return JSONResponse(status_code=402, content={
            "success": False,
            "error": "INSUFFICIENT_BUDGET",
            "reason": result.get("reason"),
        })

    return JSONResponse({
        "success": True,
        "token": result["token"],
        "tokenId": result["tokenId"],
        "expiresAt": result["expiresAt"],
    })


@app.get("/api/scan-token/stats/{owner_id}")
async def scan_token_stats(owner_id: str, days: int = Query(7, ge=1, le=90), db: Session = Depends(get_db)):
    """Token usage statistics for a profile owner"""
    return {"success": True, "stats": ScanTokenService(db).get_token_usage_stats(owner_id, days)}


@app.get("/health")
async def health_check():
    """Health check endpoint"""
    return {"status": "healthy", "service": "Business Card Scanner"}


if __name__ == "__main__":
    import uvicorn
    uvicorn.run(app, host="0.0.0.0", port=8000)
