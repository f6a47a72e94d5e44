"""
heuristics.py

Static, explainable URL rules. Each rule looks at the normalized URL only
(no network) and contributes a signed delta: positive deltas are reassuring,
negative ones suspicious.

Public function:
    evaluate(target: ParsedTarget) -> list[RuleOutcome]

Example:
    >>> from linkrisk.normalizer import normalize_url
    >>> [o.delta for o in evaluate(normalize_url("http://192.168.0.1/login"))]
    [-20, 5, -10, -30]
"""

import re
from typing import List

from linkrisk.models import ParsedTarget, RuleOutcome

# Weights and thresholds
WEIGHT_HTTPS = 10
WEIGHT_NO_HTTPS = -20
LONG_URL_LENGTH = 80
VERY_LONG_URL_LENGTH = 140
WEIGHT_LONG_URL = -10
WEIGHT_VERY_LONG_URL = -25
WEIGHT_NORMAL_LENGTH = 5
MANY_DIGITS = 5
VERY_MANY_DIGITS = 12
WEIGHT_MANY_DIGITS = -10
WEIGHT_VERY_MANY_DIGITS = -20
WEIGHT_IP_HOST = -30
WEIGHT_AT_SIGN = -25
WEIGHT_RISKY_TLD = -15
WEIGHT_BRAND_LOOKALIKE = -25

RISKY_TLDS = (
    '.xyz', '.top', '.click', '.gq', '.ml', '.cf', '.tk',
    '.info', '.work', '.zip', '.mov',
)
FAMOUS_BRANDS = (
    'facebook', 'google', 'paypal', 'microsoft', 'apple', 'amazon',
    'instagram', 'bank', 'gov',
)

IP_HOST_RE = re.compile(r'^\d{1,3}(\.\d{1,3}){3}$')
DIGIT_RE = re.compile(r'\d')


def check_scheme(target: ParsedTarget) -> List[RuleOutcome]:
    if target.scheme == 'https':
        return [RuleOutcome('https', WEIGHT_HTTPS, "Site uses HTTPS (good sign).")]
    return [RuleOutcome('https', WEIGHT_NO_HTTPS, "Site does not use HTTPS; the connection is not encrypted.")]


def check_length(target: ParsedTarget) -> List[RuleOutcome]:
    length = len(target.full)
    if LONG_URL_LENGTH < length <= VERY_LONG_URL_LENGTH:
        return [RuleOutcome('length', WEIGHT_LONG_URL,
                            f"URL is fairly long ({length} chars); it may be hiding something.")]
    if length > VERY_LONG_URL_LENGTH:
        return [RuleOutcome('length', WEIGHT_VERY_LONG_URL,
                            f"URL is very long ({length} chars), common in phishing links.")]
    return [RuleOutcome('length', WEIGHT_NORMAL_LENGTH, "URL length looks normal.")]


def check_digits(target: ParsedTarget) -> List[RuleOutcome]:
    digits = len(DIGIT_RE.findall(target.full))
    if MANY_DIGITS < digits <= VERY_MANY_DIGITS:
        return [RuleOutcome('digits', WEIGHT_MANY_DIGITS, f"URL contains many digits ({digits}).")]
    if digits > VERY_MANY_DIGITS:
        return [RuleOutcome('digits', WEIGHT_VERY_MANY_DIGITS,
                            f"URL contains a very high number of digits ({digits}); this is suspicious.")]
    return []


def check_ip_host(target: ParsedTarget) -> List[RuleOutcome]:
    if IP_HOST_RE.match(target.host):
        return [RuleOutcome('ip_host', WEIGHT_IP_HOST,
                            "Site uses an IP address instead of a domain name, often suspicious.")]
    return []


def check_at_sign(target: ParsedTarget) -> List[RuleOutcome]:
    if '@' in target.full:
        return [RuleOutcome('at_sign', WEIGHT_AT_SIGN,
                            "URL contains '@', which can be used to disguise the real destination.")]
    return []


def check_risky_tld(target: ParsedTarget) -> List[RuleOutcome]:
    if target.host.endswith(RISKY_TLDS):
        return [RuleOutcome('risky_tld', WEIGHT_RISKY_TLD,
                            "Domain extension is one frequently used for fraud and spam.")]
    return []


def check_brand_lookalike(target: ParsedTarget) -> List[RuleOutcome]:
    # one outcome per matching brand; matches stack
    return [
        RuleOutcome('brand_lookalike', WEIGHT_BRAND_LOOKALIKE,
                    f"Site appears to imitate a well-known brand ({brand}).")
        for brand in FAMOUS_BRANDS
        if brand in target.host and not target.host.endswith(brand + '.com')
    ]


RULES = (
    check_scheme,
    check_length,
    check_digits,
    check_ip_host,
    check_at_sign,
    check_risky_tld,
    check_brand_lookalike,
)


def evaluate(target: ParsedTarget) -> List[RuleOutcome]:
    """Run every static rule in order and return the triggered outcomes."""
    outcomes: List[RuleOutcome] = []
    for rule in RULES:
        outcomes.extend(rule(target))
    return outcomes
