"""
Ownership & Governance Adapter for RugSentry
Checks mint / freeze authority, ownership renouncement and upgrade control
"""

from rugsentry.core.model import AddressType, AnalysisResult, ThreatCategory, ThreatFinding


METADATA = {
    "id": "ownership_governance",
    "name": "Ownership & Governance",
    "category": ThreatCategory.STRUCTURAL.value,
    "networks": "*",
    "address_types": [
        AddressType.TOKEN.value,
        AddressType.PROXY.value,
        AddressType.LIQUIDITY_POOL.value,
        AddressType.STAKING_CONTRACT.value,
    ],
    "timeout": 10.0,
    "default_confidence": 85.0,
    "description": "Who controls the contract and what they are allowed to change",
}


async def analyze(target, context) -> AnalysisResult:
    data = await context.fetch("authority", target)
    findings = []
    risk = 0.0

    access_controls = list(data.get("access_controls") or [])
    mint_authority = data.get("mint_authority")
    can_mint = bool(data.get("has_mint_function") or mint_authority)

    if can_mint and not access_controls:
        risk += 40
        findings.append(ThreatFinding(
            category=ThreatCategory.STRUCTURAL,
            severity=85,
            confidence=90,
            description="Unrestricted mint authority",
            evidence=tuple(e for e in (
                f"Mint authority: {mint_authority}" if mint_authority else "",
                "No access control guards the mint function",
            ) if e),
            mitigation="Supply can be inflated at will; avoid unless minting is revoked",
        ))
    elif can_mint:
        risk += 10
        findings.append(ThreatFinding(
            category=ThreatCategory.STRUCTURAL,
            severity=40,
            confidence=80,
            description="Controlled mint function present",
            evidence=(f"Guarded by: {', '.join(map(str, access_controls))}",),
        ))

    freeze_authority = data.get("freeze_authority")
    if freeze_authority:
        risk += 25
        findings.append(ThreatFinding(
            category=ThreatCategory.STRUCTURAL,
            severity=75,
            confidence=90,
            description="Freeze authority can lock holder balances",
            evidence=(f"Freeze authority: {freeze_authority}",),
            mitigation="Prefer tokens whose freeze authority has been revoked",
        ))

    if not data.get("ownership_renounced", False):
        risk += 10
        owner = data.get("owner")
        findings.append(ThreatFinding(
            category=ThreatCategory.STRUCTURAL,
            severity=35,
            confidence=85,
            description="Contract ownership has not been renounced",
            evidence=(f"Owner: {owner}",) if owner else (),
        ))

    if data.get("upgradeable") or data.get("proxy_admin"):
        risk += 20
        admin = data.get("proxy_admin")
        findings.append(ThreatFinding(
            category=ThreatCategory.STRUCTURAL,
            severity=60,
            confidence=85,
            description="Contract logic can be upgraded by an admin",
            evidence=(f"Proxy admin: {admin}",) if admin else ("Upgradeable implementation slot",),
            mitigation="Upgradeable contracts can change behaviour after launch; check for a timelock",
        ))

    # Safeguards lower the risk but never below zero
    if float(data.get("timelock_seconds") or 0) > 0:
        risk -= 5
    if access_controls:
        risk -= 5

    return AnalysisResult(sub_score=max(0.0, risk), findings=findings)
