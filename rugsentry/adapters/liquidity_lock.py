"""
Liquidity Lock Adapter for RugSentry
Liquidity depth, lock percentage and duration, and holder concentration
"""

from rugsentry.core.model import AddressType, AnalysisResult, ThreatCategory, ThreatFinding


METADATA = {
    "id": "liquidity_lock",
    "name": "Liquidity & Lock Check",
    "category": ThreatCategory.MARKET.value,
    "networks": "*",
    "address_types": [AddressType.TOKEN.value, AddressType.LIQUIDITY_POOL.value],
    "timeout": 10.0,
    "default_confidence": 90.0,
    "description": "Rug-pull exposure from unlocked liquidity and concentrated holdings",
}

NEUTRAL_RISK = 50.0
LARGE_SELL_USD = 10000


def _depth_adjustment(liquidity_usd: float) -> float:
    if liquidity_usd > 1_000_000:
        return -25
    if liquidity_usd > 100_000:
        return -15
    if liquidity_usd > 10_000:
        return -5
    if liquidity_usd < 1_000:
        return 20
    return 0


async def analyze(target, context) -> AnalysisResult:
    data = await context.fetch("liquidity", target)
    findings = []
    risk = NEUTRAL_RISK

    liquidity_usd = float(data.get("total_liquidity_usd") or 0)
    risk += _depth_adjustment(liquidity_usd)
    if liquidity_usd < 1_000:
        findings.append(ThreatFinding(
            category=ThreatCategory.MARKET,
            severity=60,
            confidence=90,
            description="Very low liquidity",
            evidence=(f"Total liquidity ${liquidity_usd:,.0f}",),
            mitigation="Thin pools make exits expensive; size positions to the pool depth",
        ))

    if data.get("liquidity_locked"):
        risk -= 20
        lock_days = float(data.get("lock_duration_days") or 0)
        if lock_days > 365:
            risk -= 10
        elif 0 < lock_days < 30:
            risk += 5
            findings.append(ThreatFinding(
                category=ThreatCategory.MARKET,
                severity=45,
                confidence=90,
                description="Liquidity lock expires soon",
                evidence=(f"Lock duration {lock_days:.0f} days",),
                mitigation="Re-check the lock before it expires",
            ))

        locked_pct = float(data.get("lock_percentage") or 0)
        if locked_pct > 80:
            risk -= 10
        elif locked_pct < 50:
            risk += 10
            findings.append(ThreatFinding(
                category=ThreatCategory.MARKET,
                severity=90 if locked_pct < 20 else 75,
                confidence=95,
                description="Most liquidity is not locked",
                evidence=(f"Only {locked_pct:.1f}% of liquidity is locked",),
                mitigation="Verify liquidity locks before investing significant amounts",
            ))
    else:
        risk += 25
        findings.append(ThreatFinding(
            category=ThreatCategory.MARKET,
            severity=80,
            confidence=90,
            description="Liquidity is not locked",
            evidence=("No liquidity lock found",),
            mitigation="Unlocked liquidity can be withdrawn at any time; avoid or monitor closely",
        ))

    holders = list(data.get("major_holders") or [])
    top_holder = max((float(h.get("percentage", 0)) for h in holders), default=0.0)
    if top_holder > 50:
        risk += 20
    elif top_holder > 20:
        risk += 10

    concentration = float(data.get("ownership_concentration") or top_holder)
    if concentration > 80:
        findings.append(ThreatFinding(
            category=ThreatCategory.MARKET,
            severity=75,
            confidence=88,
            description="High ownership concentration",
            evidence=(f"Top holders control {concentration:.1f}% of supply",),
            mitigation="Monitor large holder movements and consider position sizing",
        ))

    if any(h.get("is_known_exchange") for h in holders):
        risk -= 10

    large_sells = [
        tx for tx in data.get("recent_large_transactions") or []
        if tx.get("type") == "sell" and float(tx.get("amount_usd", 0)) > LARGE_SELL_USD
    ]
    if len(large_sells) > 3:
        risk += 15
        findings.append(ThreatFinding(
            category=ThreatCategory.MARKET,
            severity=55,
            confidence=80,
            description="Repeated large sells",
            evidence=(f"{len(large_sells)} sells above ${LARGE_SELL_USD:,}",),
        ))

    stability = data.get("liquidity_stability_score")
    if stability is not None:
        risk -= (float(stability) - 50) * 0.5

    for indicator in data.get("rug_pull_indicators") or []:
        risk += 10
        findings.append(ThreatFinding(
            category=ThreatCategory.MARKET,
            severity=70,
            confidence=80,
            description=f"Rug-pull indicator: {indicator}",
            evidence=(str(indicator),),
        ))

    return AnalysisResult(sub_score=risk, findings=findings)
