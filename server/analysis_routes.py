"""API routes for workspace and flow analysis."""

from fastapi import APIRouter, HTTPException, Request

from copilot.models.analysis import FlowAnalysis, GlobalAnalysis
from copilot.service import Copilot

router = APIRouter()


def get_copilot(request: Request) -> Copilot:
    return request.app.state.copilot


@router.get("/analyze")
async def analyze(request: Request, ai: bool = False) -> GlobalAnalysis:
    """Analyze the whole workspace.

    With ``ai=true`` each flow goes through the selected backend, falling
    back to local analysis per flow.
    """
    return await get_copilot(request).analyze(ai=ai)


@router.get("/history")
def history(request: Request) -> list[GlobalAnalysis]:
    """Past workspace analyses, newest first."""
    return get_copilot(request).aggregator.get_history()


@router.get("/flows/{flow_id}")
def analyze_flow(request: Request, flow_id: str) -> FlowAnalysis:
    """Analyze a single flow."""
    analysis = get_copilot(request).analyze_flow(flow_id)
    if analysis is None:
        raise HTTPException(status_code=404, detail=f"Flow not found: {flow_id}")
    return analysis
