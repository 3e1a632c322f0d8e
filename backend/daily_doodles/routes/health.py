"""
Daily Doodles Backend — Health Check Route
============================================

What:  Liveness/readiness probe for Docker and load balancers.
How:   Reports whether Supabase is configured and whether Gemini answers.

Status levels:
    - healthy:   Supabase configured, Gemini reachable (HTTP 200)
    - degraded:  Gemini down or circuit open; journaling still works with
                 fallback prompts and insights (HTTP 200)
    - unhealthy: Supabase not configured; nobody can sign in (HTTP 503)
"""

import logging
import time

from fastapi import APIRouter, Request, Response

from daily_doodles import __version__
from daily_doodles.schemas.journal import HealthResponse
from daily_doodles.services.gemini_service import CircuitBreaker, GeminiService
from daily_doodles.services.llm_base import JournalAIService
from daily_doodles.supabase_client import is_supabase_configured

logger = logging.getLogger(__name__)

router = APIRouter(tags=["Health"])

_start_time = time.time()


async def _gemini_status(ai: JournalAIService) -> str:
    breaker = ai.circuit_breaker if isinstance(ai, GeminiService) else None
    if breaker is not None and breaker.state == CircuitBreaker.OPEN:
        return "circuit_open"
    if await ai.health_check():
        return "available"
    return "unavailable"


@router.get(
    "/health",
    response_model=HealthResponse,
    responses={503: {"description": "Supabase is not configured", "model": HealthResponse}},
    summary="Service health check",
)
async def health_check(request: Request, response: Response) -> HealthResponse:
    """
    Cheap probes only: a configuration check for Supabase (sessions open
    their own clients lazily) and a model metadata lookup for Gemini.
    """
    supabase_status = "configured" if is_supabase_configured() else "not_configured"
    gemini_status = await _gemini_status(request.app.state.ai)

    if supabase_status != "configured":
        overall = "unhealthy"
        response.status_code = 503
    elif gemini_status != "available":
        overall = "degraded"
    else:
        overall = "healthy"

    if overall != "healthy":
        logger.warning("Health check %s: supabase=%s gemini=%s", overall, supabase_status, gemini_status)

    return HealthResponse(
        status=overall,
        version=__version__,
        supabase=supabase_status,
        gemini=gemini_status,
        active_sessions=len(request.app.state.sessions),
        uptime_seconds=round(time.time() - _start_time, 2),
    )
