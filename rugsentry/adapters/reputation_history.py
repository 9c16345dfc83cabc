"""
Reputation History Adapter for RugSentry
Known-scam list, deployer track record and cross-chain clone detection
"""

import json
from functools import lru_cache
from pathlib import Path
from typing import Dict

from rugsentry.core.errors import DataUnavailableError
from rugsentry.core.model import AnalysisResult, ThreatCategory, ThreatFinding
from rugsentry.core.networks import cache_address


METADATA = {
    "id": "reputation_history",
    "name": "Reputation & History",
    "category": ThreatCategory.CONTEXTUAL.value,
    "networks": "*",
    "address_types": "*",
    "timeout": 10.0,
    "default_confidence": 80.0,
    "description": "Known scam addresses, creator history and clones on other chains",
}

KNOWN_SCAMS_PATH = Path(__file__).resolve().parent.parent / "data" / "known_scams.json"
MIN_CLONE_NETWORKS = 3
COMMUNITY_REPORT_THRESHOLD = 5


@lru_cache(maxsize=1)
def load_known_scams(path: str = str(KNOWN_SCAMS_PATH)) -> Dict[str, Dict[str, str]]:
    """{network: {canonical address: reason}}"""
    with open(path, "r", encoding="utf-8") as f:
        raw = json.load(f)
    return {
        network: {
            (address.lower() if address.startswith("0x") else address): reason
            for address, reason in entries.items()
        }
        for network, entries in raw.items()
    }


def _known_scam_finding(reason: str) -> ThreatFinding:
    return ThreatFinding(
        category=ThreatCategory.CONTEXTUAL,
        severity=98,
        confidence=99,
        description="Address is on the known scam list",
        evidence=(reason,),
        mitigation="Do not interact with this address",
    )


async def analyze(target, context) -> AnalysisResult:
    listed_reason = load_known_scams().get(target.network, {}).get(cache_address(target))

    try:
        data = await context.fetch("reputation", target)
    except DataUnavailableError:
        if listed_reason is None:
            raise
        context.logger.debug(f"No reputation data for {target.address}; using the scam list only")
        return AnalysisResult(sub_score=100, findings=[_known_scam_finding(listed_reason)], confidence=95)

    findings = []
    risk = 0.0

    if listed_reason is not None or data.get("known_scam"):
        risk = 100.0
        findings.append(_known_scam_finding(listed_reason or data.get("scam_reason") or "Flagged by reputation source"))

    creator = data.get("creator_address") or "unknown deployer"
    rugged = int(data.get("creator_rugged_tokens") or 0)
    if rugged > 0:
        risk += 40
        findings.append(ThreatFinding(
            category=ThreatCategory.CONTEXTUAL,
            severity=85,
            confidence=85,
            description="Deployer has launched tokens that were later rugged",
            evidence=(f"{creator} is linked to {rugged} rugged token(s) "
                      f"out of {int(data.get('creator_previous_tokens') or rugged)}",),
            mitigation="Treat any token from this deployer as high risk",
        ))
    elif data.get("creator_flagged"):
        risk += 25
        findings.append(ThreatFinding(
            category=ThreatCategory.CONTEXTUAL,
            severity=70,
            confidence=75,
            description="Deployer address has been flagged",
            evidence=(f"{creator} flagged by reputation source",),
        ))

    clones = list(data.get("cross_chain_matches") or [])
    for clone in clones:
        similarity = float(clone.get("confidence_score", clone.get("similarity", 0)))
        if similarity > 0.8:
            risk += 30
        elif similarity > 0.5:
            risk += 15
        else:
            risk += 5
    clone_networks = sorted({str(c.get("network")) for c in clones if c.get("network")})
    if len(clone_networks) >= MIN_CLONE_NETWORKS:
        findings.append(ThreatFinding(
            category=ThreatCategory.CONTEXTUAL,
            severity=55,
            confidence=75,
            description=f"Similar contract patterns found on {len(clone_networks)} networks",
            evidence=tuple(f"Related contract detected on {n}" for n in clone_networks),
            mitigation="Investigate cross-chain contract relationships and deployment patterns",
        ))

    reports = int(data.get("community_reports") or 0)
    if reports >= COMMUNITY_REPORT_THRESHOLD:
        risk += 15
        findings.append(ThreatFinding(
            category=ThreatCategory.CONTEXTUAL,
            severity=60,
            confidence=65,
            description="Address has multiple community scam reports",
            evidence=(f"{reports} community reports",),
        ))

    return AnalysisResult(sub_score=risk, findings=findings)
