# models.py
"""
Plain result types shared by the normalizer, the rule evaluators and the API.
"""

from dataclasses import dataclass
from typing import Any, Dict, Optional, Tuple


@dataclass(frozen=True)
class ParsedTarget:
    href: str
    scheme: str
    host: str
    full: str


@dataclass(frozen=True)
class RuleOutcome:
    rule: str
    delta: int
    reason: Optional[str] = None


@dataclass(frozen=True)
class HttpInfo:
    final_url: str
    status: Optional[int] = None
    title: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        return {"status": self.status, "finalUrl": self.final_url, "title": self.title}


@dataclass(frozen=True)
class ScanResult:
    url: str
    host: str
    risk_score: int
    risk_level: str
    http_info: HttpInfo
    reasons: Tuple[str, ...] = ()

    def to_dict(self) -> Dict[str, Any]:
        """JSON body returned by POST /scan."""
        return {
            "ok": True,
            "url": self.url,
            "host": self.host,
            "riskScore": self.risk_score,
            "riskLevel": self.risk_level,
            "reasons": list(self.reasons),
            "httpInfo": self.http_info.to_dict(),
        }
