"""
Social Footprint Adapter for RugSentry
Scores the project's public presence and flags manufactured hype
"""

from rugsentry.core.model import AddressType, AnalysisResult, ThreatCategory, ThreatFinding


METADATA = {
    "id": "social_footprint",
    "name": "Social Footprint",
    "category": ThreatCategory.CONTEXTUAL.value,
    "networks": "*",
    "address_types": [AddressType.TOKEN.value, AddressType.PROXY.value],
    "timeout": 20.0,
    "default_confidence": 65.0,
    "description": "Account age, community size, domain age and bot engagement",
}

BOT_ACTIVITY_THRESHOLD = 60


def _presence_score(data: dict) -> float:
    """Safety score on 0-100, starting from a neutral 50."""
    score = 50.0

    if data.get("twitter_handle"):
        if data.get("twitter_verified"):
            score += 15
        followers = int(data.get("twitter_followers") or 0)
        if followers > 10000:
            score += 10
        elif followers > 1000:
            score += 5
        age_days = float(data.get("twitter_account_age_days") or 0)
        if age_days > 365:
            score += 10
        elif age_days < 30:
            score -= 15
    else:
        score -= 10

    if data.get("github_repo"):
        commits = int(data.get("github_commits") or 0)
        if commits > 50:
            score += 15
        elif commits > 10:
            score += 5
        if int(data.get("github_contributors") or 0) > 5:
            score += 10
    else:
        score -= 5

    if data.get("website_domain"):
        domain_age = float(data.get("domain_age_days") or 0)
        if domain_age > 365:
            score += 10
        elif domain_age < 30:
            score -= 10

    if data.get("telegram_group"):
        members = int(data.get("telegram_members") or 0)
        if members > 5000:
            score += 10
        elif members > 1000:
            score += 5
        elif members < 100:
            score -= 5

    score -= len(data.get("social_red_flags") or []) * 10

    sentiment = data.get("community_sentiment")
    if sentiment == "positive":
        score += 10
    elif sentiment == "negative":
        score -= 15

    if int(data.get("influencer_mentions") or 0) > 5:
        score += 10

    return score


async def analyze(target, context) -> AnalysisResult:
    data = await context.fetch("social", target)
    findings = []

    if not data.get("twitter_handle"):
        findings.append(ThreatFinding(
            category=ThreatCategory.CONTEXTUAL,
            severity=40,
            confidence=70,
            description="No verifiable social presence",
            evidence=("No project Twitter/X account found",),
        ))
    elif float(data.get("twitter_account_age_days") or 0) < 30:
        findings.append(ThreatFinding(
            category=ThreatCategory.CONTEXTUAL,
            severity=55,
            confidence=75,
            description="Project social account is less than a month old",
            evidence=(f"@{data['twitter_handle']} created "
                      f"{float(data.get('twitter_account_age_days') or 0):.0f} days ago",),
        ))

    if data.get("website_domain") and float(data.get("domain_age_days") or 0) < 30:
        findings.append(ThreatFinding(
            category=ThreatCategory.CONTEXTUAL,
            severity=50,
            confidence=80,
            description="Project website domain was registered recently",
            evidence=(f"{data['website_domain']} registered "
                      f"{float(data.get('domain_age_days') or 0):.0f} days ago",),
        ))

    bot_activity = float(data.get("bot_activity") or 0)
    risk_bonus = 0.0
    if bot_activity > BOT_ACTIVITY_THRESHOLD:
        risk_bonus += 10
        findings.append(ThreatFinding(
            category=ThreatCategory.CONTEXTUAL,
            severity=60,
            confidence=bot_activity,
            description="High bot activity in project community",
            evidence=(f"Social media analysis shows {bot_activity:.1f}% bot engagement",),
            mitigation="Verify organic community engagement before participating",
        ))

    if data.get("suspicious_promotions"):
        risk_bonus += 15
        findings.append(ThreatFinding(
            category=ThreatCategory.CONTEXTUAL,
            severity=75,
            confidence=82,
            description="Suspicious promotional activities detected",
            evidence=("Coordinated promotional campaigns", "Unrealistic return promises"),
            mitigation="Be cautious of get-rich-quick promises and verify all claims",
        ))

    for flag in data.get("social_red_flags") or []:
        findings.append(ThreatFinding(
            category=ThreatCategory.CONTEXTUAL,
            severity=60,
            confidence=70,
            description=f"Social red flag: {flag}",
        ))

    if data.get("community_sentiment") == "negative":
        findings.append(ThreatFinding(
            category=ThreatCategory.CONTEXTUAL,
            severity=45,
            confidence=60,
            description="Community sentiment is negative",
        ))

    risk = 100.0 - _presence_score(data) + risk_bonus
    return AnalysisResult(sub_score=risk, findings=findings)
