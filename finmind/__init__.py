"""
FinMind - Source Package

A personal-finance tracker built around a Financial Insights Engine:
balances and cash flows are reduced into a metrics snapshot, a fixed
rule catalog turns that snapshot into advisory findings, and access is
gated by a trial/subscription entitlement with per-period AI quotas.

DESIGN PRINCIPLES:
1. Metrics and rules are pure functions of their inputs
2. Entitlement is recomputed on every access, never by a scheduler
3. Shared account state changes only through single conditional updates
4. The advice generator is optional and can never fail a request
5. Storage layer is swappable
"""

__version__ = "1.0.0"
__author__ = "FinMind Team"
