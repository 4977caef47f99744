"""Prompt construction and best-effort parsing of backend answers.

Flows are sanitized before they leave the process: editor coordinates and
tab ids are dropped, and settings whose key looks sensitive are redacted.
Parsing backend output is explicitly fallible; whatever comes back, the
caller gets a usable ParsedAnalysis.
"""

import json
import logging
import re
from dataclasses import dataclass, field

from pydantic import ValidationError

from copilot.backends.catalog import get_prompt
from copilot.models.finding import Finding, Pattern, Severity
from copilot.models.flow import Flow, FlowNode

logger = logging.getLogger(__name__)

SENSITIVE_FIELDS = (
    "password",
    "token",
    "apikey",
    "secret",
    "key",
    "credentials",
    "auth",
    "cert",
    "private",
)
REDACTED = "[REDACTED]"

# editor layout and ownership fields that carry no meaning for analysis
SYSTEM_FIELDS = {"x", "y", "z", "g", "w", "h"}

JSON_OBJECT = re.compile(r"\{[\s\S]*\}")

RAW_TEXT_LIMIT = 200

# severities some models answer with instead of ours
SEVERITY_ALIASES = {
    "critical": Severity.high,
    "error": Severity.high,
    "medium": Severity.warning,
    "low": Severity.info,
}


@dataclass
class ParsedAnalysis:
    """Structured content recovered from a backend answer."""

    issues: list[Finding] = field(default_factory=list)
    patterns: list[Pattern] = field(default_factory=list)
    recommendations: list[str] = field(default_factory=list)
    structured: bool = True  # False when the answer had to be degraded


def is_sensitive(key: str) -> bool:
    lowered = key.lower()
    return any(marker in lowered for marker in SENSITIVE_FIELDS)


def sanitize_node_config(node: FlowNode) -> dict:
    """Node settings without layout fields and with secrets masked."""
    config = {}
    for key, value in node.config.items():
        if key in SYSTEM_FIELDS:
            continue
        config[key] = REDACTED if is_sensitive(key) else value
    return config


def prepare_flow_data(flow: Flow) -> dict:
    """Structure-only view of a flow that is safe to send to a backend.

    Node ids are kept because wires refer to them.
    """
    return {
        "id": flow.id,
        "label": flow.label,
        "type": flow.type,
        "nodeCount": len(flow.nodes),
        "nodes": [
            {
                "id": node.id,
                "type": node.type,
                "name": node.name or "",
                "config": sanitize_node_config(node),
                "wires": node.wires,
            }
            for node in flow.nodes
        ],
    }


def build_prompt(flow: Flow, analysis_type: str) -> str:
    flow_info = json.dumps(prepare_flow_data(flow), indent=2, ensure_ascii=False)
    return f"{get_prompt(analysis_type)}\n\nFlow data to analyze:\n{flow_info}"


def _coerce_issue(raw: dict) -> Finding | None:
    data = dict(raw)
    severity = str(data.get("severity", "info")).lower()
    data["severity"] = SEVERITY_ALIASES.get(severity, severity)
    data.setdefault("type", "ai-finding")
    data.setdefault("title", data.get("type"))
    data.setdefault("message", "")
    if "nodeIds" in data and "node_ids" not in data:
        data["node_ids"] = data.pop("nodeIds")
    data = {k: v for k, v in data.items() if k in Finding.model_fields}
    try:
        return Finding.model_validate(data)
    except ValidationError:
        logger.debug("dropping malformed issue from backend answer: %r", raw)
        return None


def _coerce_pattern(raw: dict) -> Pattern | None:
    data = {k: v for k, v in raw.items() if k in Pattern.model_fields}
    try:
        data["confidence"] = max(0, min(100, int(data.get("confidence", 0))))
        return Pattern.model_validate(data)
    except (TypeError, ValueError, ValidationError):
        logger.debug("dropping malformed pattern from backend answer: %r", raw)
        return None


def _as_list(value) -> list:
    if value is None:
        return []
    if isinstance(value, list):
        return value
    return [value]


def parse_analysis_response(content: str) -> ParsedAnalysis:
    """Recover issues, patterns and recommendations from free-form text.

    The first ``{`` through the last ``}`` is parsed as JSON. Without any
    JSON object, the raw text becomes a single recommendation; with an
    object that does not parse, a fixed notice does.
    """
    match = JSON_OBJECT.search(content or "")
    if match is None:
        text = (content or "")[:RAW_TEXT_LIMIT]
        return ParsedAnalysis(recommendations=[text + "..."], structured=False)

    try:
        data = json.loads(match.group(0))
    except ValueError as exc:
        logger.warning("could not parse backend answer: %s", exc)
        return ParsedAnalysis(
            recommendations=["Received a malformed answer from the AI model"],
            structured=False,
        )
    if not isinstance(data, dict):
        return ParsedAnalysis(
            recommendations=["Received a malformed answer from the AI model"],
            structured=False,
        )

    issues = [
        issue
        for raw in _as_list(data.get("issues"))
        if isinstance(raw, dict) and (issue := _coerce_issue(raw)) is not None
    ]
    patterns = [
        pattern
        for raw in _as_list(data.get("patterns"))
        if isinstance(raw, dict) and (pattern := _coerce_pattern(raw)) is not None
    ]
    recommendations = [str(r) for r in _as_list(data.get("recommendations")) if r]
    return ParsedAnalysis(issues=issues, patterns=patterns, recommendations=recommendations)
