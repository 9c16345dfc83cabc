"""
Honeypot Simulation Adapter for RugSentry
Scores buy/sell simulation results, trade taxes and transfer restrictions
"""

from rugsentry.core.model import AddressType, AnalysisResult, ThreatCategory, ThreatFinding
from rugsentry.core.networks import EVM_NETWORKS


METADATA = {
    "id": "honeypot_simulation",
    "name": "Honeypot Simulation",
    "category": ThreatCategory.BEHAVIORAL.value,
    "networks": list(EVM_NETWORKS) + ["solana"],
    "address_types": [AddressType.TOKEN.value, AddressType.PROXY.value],
    "timeout": 10.0,
    "default_confidence": 90.0,
    "description": "Simulated buy and sell round trip plus fee and restriction checks",
}

LONG_COOLDOWN_SECONDS = 300


def _fee_finding(max_fee: float):
    """(risk points, finding severity) for the highest trade tax."""
    if max_fee > 20:
        return 40, 80
    if max_fee > 10:
        return 25, 60
    if max_fee > 5:
        return 10, 35
    return 0, 0


async def analyze(target, context) -> AnalysisResult:
    data = await context.fetch("trading", target)
    findings = []

    sell_ok = data.get("sell_simulation_success", True)
    if data.get("honeypot_detected") or not sell_ok:
        reason = data.get("sell_revert_reason") or "sell transaction reverted"
        findings.append(ThreatFinding(
            category=ThreatCategory.BEHAVIORAL,
            severity=95,
            confidence=95,
            description="Confirmed honeypot: tokens can be bought but not sold",
            evidence=(f"Sell simulation failed: {reason}",),
            mitigation="Do not buy; holders of this token cannot exit",
        ))
        # Nothing else matters once selling is impossible
        return AnalysisResult(sub_score=100, findings=findings, confidence=95)

    buy_fee = float(data.get("buy_fee_percentage") or 0)
    sell_fee = float(data.get("sell_fee_percentage") or 0)
    transfer_fee = float(data.get("transfer_fee_percentage") or 0)
    risk = 0.0

    max_fee = max(buy_fee, sell_fee, transfer_fee)
    points, severity = _fee_finding(max_fee)
    if points:
        risk += points
        findings.append(ThreatFinding(
            category=ThreatCategory.BEHAVIORAL,
            severity=severity,
            confidence=90,
            description=f"High trading tax of {max_fee:.1f}%",
            evidence=(f"buy {buy_fee:.1f}%, sell {sell_fee:.1f}%, transfer {transfer_fee:.1f}%",),
            mitigation="Account for the tax in any trade and check whether the owner can raise it",
        ))

    if data.get("hidden_fees"):
        risk += 20
        findings.append(ThreatFinding(
            category=ThreatCategory.BEHAVIORAL,
            severity=70,
            confidence=80,
            description="Hidden fees taken on transfer",
            evidence=("Simulated received amount is lower than the quoted amount",),
            mitigation="Compare quoted and received amounts with a small test trade",
        ))

    asymmetry = abs(buy_fee - sell_fee)
    if asymmetry > 5:
        risk += 15
        findings.append(ThreatFinding(
            category=ThreatCategory.BEHAVIORAL,
            severity=55,
            confidence=85,
            description="Asymmetric buy and sell taxes",
            evidence=(f"Sell tax differs from buy tax by {asymmetry:.1f} points",),
        ))

    mechanisms = [str(m).lower() for m in data.get("anti_bot_mechanisms") or []]
    if "blacklist" in mechanisms:
        risk += 10
        findings.append(ThreatFinding(
            category=ThreatCategory.BEHAVIORAL,
            severity=45,
            confidence=75,
            description="Owner can blacklist addresses from trading",
            evidence=("blacklist mechanism present",),
            mitigation="Blacklists can be abused to trap holders; monitor owner activity",
        ))

    cooldowns = [float(c) for c in data.get("cooldown_periods") or []]
    if any(c > LONG_COOLDOWN_SECONDS for c in cooldowns):
        risk += 15
        findings.append(ThreatFinding(
            category=ThreatCategory.BEHAVIORAL,
            severity=50,
            confidence=80,
            description="Long trading cooldown between transactions",
            evidence=(f"Cooldown of {max(cooldowns):.0f}s",),
        ))

    if data.get("sandwich_protection"):
        risk -= 5

    context.logger.debug(f"Honeypot simulation for {target.address}: risk {risk:.0f}")
    return AnalysisResult(sub_score=risk, findings=findings,
                          confidence=data.get("simulation_confidence"))
