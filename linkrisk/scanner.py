"""
scanner.py
Main orchestration of the URL risk pipeline: normalize, static rules,
live fetch, aggregate, classify.
"""

import argparse
import json
import logging
from typing import Iterable

from linkrisk.heuristics import evaluate
from linkrisk.html_scanner import inspect_page
from linkrisk.models import HttpInfo, RuleOutcome, ScanResult
from linkrisk.normalizer import InvalidURL, normalize_url

logger = logging.getLogger("scanner")

# Risk level thresholds (lower score -> riskier)
LOW_RISK_MIN_SCORE = 10
MEDIUM_RISK_MIN_SCORE = -20


def aggregate(outcomes: Iterable[RuleOutcome]) -> int:
    return sum(o.delta for o in outcomes)


def classify(score: int) -> str:
    if score >= LOW_RISK_MIN_SCORE:
        return "low"
    if score >= MEDIUM_RISK_MIN_SCORE:
        return "medium"
    return "high"


def scan_url(url: str, fetch: bool = True) -> ScanResult:
    """
    Score a raw URL string. Raises InvalidURL when it cannot be normalized;
    fetch problems are folded into the score instead of raised.
    """
    target = normalize_url(url)
    outcomes = evaluate(target)

    http_info = HttpInfo(final_url=target.href)
    if fetch:
        http_info, page_outcomes = inspect_page(target)
        outcomes.extend(page_outcomes)

    score = aggregate(outcomes)
    level = classify(score)
    logger.info("scanned %s: score=%d level=%s", target.host, score, level)
    return ScanResult(
        url=target.href,
        host=target.host,
        risk_score=score,
        risk_level=level,
        reasons=tuple(o.reason for o in outcomes if o.reason),
        http_info=http_info,
    )


# CLI testing
def main(argv=None) -> None:
    parser = argparse.ArgumentParser(description="Score one or more URLs.")
    parser.add_argument("urls", nargs="+")
    parser.add_argument("--no-fetch", action="store_true", help="static rules only, no HTTP request")
    args = parser.parse_args(argv)
    for u in args.urls:
        print("=" * 80)
        try:
            result = scan_url(u, fetch=not args.no_fetch)
        except InvalidURL as e:
            print(f"{u}: invalid URL ({e})")
            continue
        print(json.dumps(result.to_dict(), indent=2, ensure_ascii=False))


if __name__ == "__main__":
    logging.basicConfig(level=logging.INFO)
    main()
