"""
RugSentry
Composite scam-risk scoring for blockchain token and contract addresses

Fans out to independent analyzers concurrently, tolerates their failures,
and folds the evidence into one weighted score, risk level and report.
"""

__version__ = "1.0.0"
__author__ = "RugSentry Team"
__description__ = "Composite scam-risk scanner for token and contract addresses"
