"""
Board API routes.

Every endpoint reads from the BoardContext stored on ``app.state.board`` at
startup; handlers never mutate it. The inactive-rule gain ranking is computed
per request from the caller's selection, so the server keeps no session state.

Base URL: /api
OpenAPI docs: /docs
"""
import logging
from pathlib import Path
from typing import List, Literal, Optional

from fastapi import APIRouter, Depends, Query, Request
from fastapi.responses import PlainTextResponse, Response
from pydantic import BaseModel, Field

from ..config import ENCODING
from ..core.board_context import BoardContext
from ..core.coverage_aggregator import CoverageAggregator
from ..models.coverage_model import CoverageThresholds

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api", tags=["board"])


# ── Context dependency ───────────────────────────────────────────────────────

def get_context(request: Request) -> BoardContext:
    """The BoardContext the application was created with."""
    return request.app.state.board


# ── Pydantic schemas ─────────────────────────────────────────────────────────

class ThresholdsIn(BaseModel):
    tactics: int = Field(0, ge=0)
    techniques: int = Field(0, ge=0)
    subTechniques: int = Field(0, ge=0)


class GainRequest(BaseModel):
    selectedRuleIds: List[str] = Field(default_factory=list)
    effectiveOnly: bool = False
    sortBy: Optional[Literal["gain", "satisfies", "title", "id"]] = None
    descending: Optional[bool] = None
    thresholds: Optional[ThresholdsIn] = None


# ── Taxonomy and active coverage ─────────────────────────────────────────────

@router.get("/mitre-data", summary="Normalized ATT&CK tactic tree")
def mitre_data(context: BoardContext = Depends(get_context)):
    return context.mitre_data.to_dict()


@router.get("/rule-counts", summary="Active rule count per tactic/technique identifier")
def rule_counts(context: BoardContext = Depends(get_context)):
    return dict(context.active_coverage.counts)


@router.get("/rules", summary="Active rules referencing a technique")
def rules_for_technique(
    techniqueId: Optional[str] = Query(None),
    context: BoardContext = Depends(get_context),
):
    if not techniqueId:
        return PlainTextResponse("Missing 'techniqueId' query parameter", status_code=400)
    return [summary.to_dict() for summary in context.active_coverage.rules_for(techniqueId)]


@router.get("/coverage-summary", summary="Per-tactic coverage totals")
def coverage_summary(context: BoardContext = Depends(get_context)):
    return context.coverage_summary()


@router.get("/missing-techniques", summary="Techniques with no active rule")
def missing_techniques(
    output_format: Literal["json", "csv"] = Query("json", alias="format"),
    context: BoardContext = Depends(get_context),
):
    rows = context.missing_techniques()
    if output_format == "csv":
        return Response(
            content=CoverageAggregator.missing_techniques_csv(rows),
            media_type="text/csv",
            headers={"Content-Disposition": 'attachment; filename="missing_techniques.csv"'},
        )
    return rows


# ── Inactive rules ───────────────────────────────────────────────────────────

@router.get("/inactive-rules", summary="Inactive rule catalogue with static satisfies counts")
def inactive_rules(context: BoardContext = Depends(get_context)):
    return list(context.inactive_catalogue)


@router.post("/inactive-rules/gain", summary="Rank inactive rules by coverage gain")
def inactive_rules_gain(body: GainRequest, context: BoardContext = Depends(get_context)):
    thresholds = None
    if body.thresholds is not None:
        thresholds = CoverageThresholds(
            tactics=body.thresholds.tactics,
            techniques=body.thresholds.techniques,
            sub_techniques=body.thresholds.subTechniques,
        )

    report = context.evaluate_gain(
        body.selectedRuleIds,
        effective_only=body.effectiveOnly,
        sort_by=body.sortBy,
        descending=body.descending,
        thresholds=thresholds,
    )
    return report.to_dict()


# ── Rule content ─────────────────────────────────────────────────────────────

@router.get("/rule-content", summary="Raw rule definition file")
def rule_content(
    ruleId: Optional[str] = Query(None),
    context: BoardContext = Depends(get_context),
):
    if not ruleId:
        return PlainTextResponse("Missing 'ruleId' query parameter", status_code=400)

    path = context.rule_content_path(ruleId)
    if path is None:
        return PlainTextResponse(f"Rule content not found for ID: {ruleId}", status_code=404)

    try:
        with open(path, "rb") as f:
            content = f.read()
    except FileNotFoundError:
        logger.warning(f"Rule file for '{ruleId}' disappeared since startup: {path}")
        return PlainTextResponse(f"Rule content file not found for ID: {ruleId}", status_code=404)
    except OSError as e:
        logger.error(f"Error reading rule content for '{ruleId}' from {path}: {e}")
        return PlainTextResponse("Error reading rule content", status_code=500)

    media_type = "application/json" if Path(path).suffix.lower() == ".json" else "text/yaml"
    return Response(content=content, media_type=f"{media_type}; charset={ENCODING}")


# ── Diagnostics ──────────────────────────────────────────────────────────────

@router.get("/duplicates", summary="Duplicate rule ids found while scanning")
def duplicates(context: BoardContext = Depends(get_context)):
    return context.duplicate_conflicts()


@router.get("/stats", summary="Taxonomy and scan statistics")
def stats(context: BoardContext = Depends(get_context)):
    return context.statistics()
