"""
Bytecode Vulnerability Adapter for RugSentry
Static checks for dangerous opcodes, hidden functions and known-exploit similarity
"""

from rugsentry.core.model import AddressType, AnalysisResult, ThreatCategory, ThreatFinding
from rugsentry.core.networks import EVM_NETWORKS


METADATA = {
    "id": "bytecode_vulnerability",
    "name": "Bytecode Vulnerability Scan",
    "category": ThreatCategory.STRUCTURAL.value,
    "networks": list(EVM_NETWORKS),
    "address_types": [
        AddressType.TOKEN.value,
        AddressType.PROXY.value,
        AddressType.LIQUIDITY_POOL.value,
        AddressType.STAKING_CONTRACT.value,
    ],
    "timeout": 20.0,
    "default_confidence": 75.0,
    "description": "Static analysis of deployed bytecode",
}

# pattern -> (risk points, severity, confidence)
CODE_PATTERNS = {
    "selfdestruct": (25, 80, 85),
    "delegatecall": (15, 60, 70),
    "tx.origin": (10, 55, 90),
    "block.timestamp": (5, 25, 60),
}

MAX_EXTERNAL_CALLS = 5
LARGE_CONTRACT_BYTES = 50000
MAX_FUNCTIONS = 100


async def analyze(target, context) -> AnalysisResult:
    data = await context.fetch("bytecode", target)
    findings = []
    risk = 0.0

    detected = {str(p).lower(): p for p in data.get("patterns") or []}
    for pattern, (points, severity, confidence) in CODE_PATTERNS.items():
        if pattern not in detected:
            continue
        risk += points
        findings.append(ThreatFinding(
            category=ThreatCategory.STRUCTURAL,
            severity=severity,
            confidence=confidence,
            description=f"Detected {pattern} usage which may indicate security risks",
            evidence=(f"Bytecode contains {pattern}",),
            mitigation=f"Review {pattern} usage and ensure proper security measures",
        ))

    hidden = list(data.get("hidden_functions") or [])
    if hidden:
        risk += 25
        findings.append(ThreatFinding(
            category=ThreatCategory.STRUCTURAL,
            severity=70,
            confidence=75,
            description="Hidden or unverified functions in contract",
            evidence=tuple(str(h) for h in hidden[:5]),
            mitigation="Only interact with contracts whose source is verified and matches the bytecode",
        ))

    external_calls = int(data.get("external_calls") or 0)
    if external_calls > MAX_EXTERNAL_CALLS:
        risk += 10
        findings.append(ThreatFinding(
            category=ThreatCategory.STRUCTURAL,
            severity=30,
            confidence=70,
            description="Large external call surface",
            evidence=(f"{external_calls} external calls",),
        ))

    if int(data.get("contract_size") or 0) > LARGE_CONTRACT_BYTES:
        risk += 5
    if int(data.get("function_count") or 0) > MAX_FUNCTIONS:
        risk += 5

    matches = list(data.get("similarity_matches") or [])
    if matches:
        best = max(matches, key=lambda m: float(m.get("similarity_score", 0)))
        similarity = float(best.get("similarity_score", 0))
        name = best.get("name", "known exploit")
        if similarity > 0.8:
            risk += 50
            findings.append(ThreatFinding(
                category=ThreatCategory.STRUCTURAL,
                severity=90,
                confidence=similarity * 100,
                description="Bytecode closely matches a known exploit contract",
                evidence=(f"{similarity:.0%} similar to {name}",),
                mitigation="Treat as a likely clone of a known scam contract",
            ))
        elif similarity > 0.5:
            risk += 25
            findings.append(ThreatFinding(
                category=ThreatCategory.STRUCTURAL,
                severity=65,
                confidence=similarity * 100,
                description="Bytecode partially matches a known exploit contract",
                evidence=(f"{similarity:.0%} similar to {name}",),
            ))

    if not data.get("source_verified", True):
        confidence = 60.0
    else:
        confidence = None

    return AnalysisResult(sub_score=risk, findings=findings, confidence=confidence)
