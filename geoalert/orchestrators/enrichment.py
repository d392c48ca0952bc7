"""
Risk-enrichment boundary for GeoAlert.

Every oracle call is bounded by a timeout and every failure (timeout,
transport error, malformed or out-of-range output) is absorbed into a
fixed fallback result. Nothing here raises to the caller.
"""

import asyncio
import time
from geoalert.core.models import AlertDraft, CoordinationPlan, EmergencyAlert, RiskAnalysis
from geoalert.core.risk import (
    COORDINATION_FALLBACK,
    RISK_FALLBACK,
    build_coordination_prompt,
    build_risk_prompt,
    parse_coordination_plan,
    parse_risk_analysis,
)
from geoalert.observability import metrics
from geoalert.observability.logging_setup import get_logger
from geoalert.ports.oracle import ScoringOraclePort

log = get_logger("geoalert.enrichment")

class RiskEnricher:
    """Fail-safe wrapper around the scoring oracle"""

    def __init__(self, oracle: ScoringOraclePort, *, timeout_sec: float = 10.0):
        """
        Args:
            oracle: text-completion oracle
            timeout_sec: upper bound for one oracle call
        """
        self.oracle = oracle
        self.timeout_sec = timeout_sec

    async def _ask(self, prompt: str) -> str:
        return await asyncio.wait_for(self.oracle.complete(prompt), timeout=self.timeout_sec)

    async def enrich(self, draft: AlertDraft) -> RiskAnalysis:
        """
        Risk analysis for a candidate alert.

        Returns:
            parsed oracle analysis, or RISK_FALLBACK on any failure
        """
        t0 = time.perf_counter()
        try:
            text = await self._ask(build_risk_prompt(draft))
            analysis = parse_risk_analysis(text)
        except Exception as e:
            metrics.oracle_fallbacks.labels(call="enrich").inc()
            log.warning("risk enrichment fell back", title=draft.title, error=repr(e))
            return RISK_FALLBACK
        finally:
            metrics.enrichment_seconds.observe(time.perf_counter() - t0)

        log.debug("risk enrichment done",
                  risk_score=analysis.risk_score,
                  confidence=analysis.confidence)
        return analysis

    async def coordinate_response(self, alert: EmergencyAlert) -> CoordinationPlan:
        """
        Response-coordination recommendations from an alert's response counts.

        Returns:
            parsed plan, or a copy of COORDINATION_FALLBACK on any failure
        """
        t0 = time.perf_counter()
        try:
            text = await self._ask(build_coordination_prompt(alert))
            return parse_coordination_plan(text)
        except Exception as e:
            metrics.oracle_fallbacks.labels(call="coordinate").inc()
            log.warning("response coordination fell back", alert_id=alert.id, error=repr(e))
            return COORDINATION_FALLBACK.model_copy(deep=True)
        finally:
            metrics.enrichment_seconds.observe(time.perf_counter() - t0)
