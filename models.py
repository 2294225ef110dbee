from sqlalchemy import Column, Integer, String, Float, DateTime, Text, Boolean, ForeignKey
from sqlalchemy.ext.declarative import declarative_base
from sqlalchemy.orm import relationship
from datetime import datetime
import json

Base = declarative_base()

TOKEN_ISSUED = "issued"
TOKEN_RESERVED = "reserved"
TOKEN_USED = "used"


class ProfileOwner(Base):
    """Owner of a public profile; public scans are billed to them"""
    __tablename__ = "profile_owners"

    id = Column(String(64), primary_key=True, index=True)
    username = Column(String(255), unique=True, nullable=True, index=True)
    display_name = Column(String(255), nullable=True)
    subscription_level = Column(String(50), default="base")  # base, pro, premium, business, enterprise
    exchange_enabled = Column(Boolean, default=True)
    monthly_budget = Column(Float, default=0.0)  # USD, 0 = no cap
    monthly_runs = Column(Integer, default=0)  # 0 = no cap
    created_at = Column(DateTime, default=datetime.utcnow)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    scan_tokens = relationship("ScanToken", back_populates="profile_owner")
    usage_records = relationship("UsageRecord", back_populates="profile_owner")

    @property
    def name(self):
        return self.display_name or self.username or "Profile Owner"

    def to_dict(self):
        return {
            "id": self.id,
            "username": self.username,
            "display_name": self.display_name,
            "subscription_level": self.subscription_level,
            "exchange_enabled": self.exchange_enabled,
            "monthly_budget": self.monthly_budget,
            "monthly_runs": self.monthly_runs,
            "created_at": self.created_at.isoformat() if self.created_at else None,
        }


class ScanToken(Base):
    """Single-use authorization for one public scan"""
    __tablename__ = "scan_tokens"

    token_id = Column(String(64), primary_key=True, index=True)
    profile_owner_id = Column(String(64), ForeignKey("profile_owners.id"), nullable=False, index=True)
    profile_owner_name = Column(String(255), nullable=True)
    status = Column(String(20), default=TOKEN_ISSUED, nullable=False, index=True)
    issued_at = Column(DateTime, default=datetime.utcnow)
    expires_at = Column(DateTime, nullable=False)
    reserved_at = Column(DateTime, nullable=True)
    used_at = Column(DateTime, nullable=True)

    profile_owner = relationship("ProfileOwner", back_populates="scan_tokens")

    def to_dict(self):
        return {
            "token_id": self.token_id,
            "profile_owner_id": self.profile_owner_id,
            "status": self.status,
            "issued_at": self.issued_at.isoformat() if self.issued_at else None,
            "expires_at": self.expires_at.isoformat() if self.expires_at else None,
            "used_at": self.used_at.isoformat() if self.used_at else None,
        }


class UsageRecord(Base):
    """Cost ledger entry for one billable operation"""
    __tablename__ = "usage_records"

    id = Column(Integer, primary_key=True, index=True)
    profile_owner_id = Column(String(64), ForeignKey("profile_owners.id"), nullable=False, index=True)
    cost = Column(Float, nullable=False, default=0.0)
    model = Column(String(100), nullable=True)
    feature = Column(String(100), nullable=False)
    cost_type = Column(String(50), default="api_call")
    is_billable_run = Column(Boolean, default=True)
    details = Column(Text, nullable=True)  # JSON-encoded metadata
    created_at = Column(DateTime, default=datetime.utcnow, index=True)

    profile_owner = relationship("ProfileOwner", back_populates="usage_records")

    def to_dict(self):
        return {
            "id": self.id,
            "profile_owner_id": self.profile_owner_id,
            "cost": self.cost,
            "model": self.model,
            "feature": self.feature,
            "cost_type": self.cost_type,
            "is_billable_run": self.is_billable_run,
            "metadata": json.loads(self.details) if self.details else {},
            "created_at": self.created_at.isoformat() if self.created_at else None,
        }


class RateLimitHit(Base):
    """One request counted against a rate limit key"""
    __tablename__ = "rate_limit_hits"

    id = Column(Integer, primary_key=True, index=True)
    key = Column(String(255), nullable=False, index=True)
    created_at = Column(DateTime, default=datetime.utcnow, index=True)
