"""Data model for editor flows.

A flow is one tab of the editor: an independent directed graph of typed
nodes. Nodes keep their editor-specific settings (``func``, ``url``,
``method``, ...) as extra fields, so a flow export can be validated
without knowing every node type up front.
"""

from typing import Any

from pydantic import BaseModel, Field


class FlowNode(BaseModel):
    """a node placed on a flow tab."""

    model_config = {"extra": "allow"}

    id: str
    type: str
    name: str | None = None
    # one inner list per output port, each holding target node ids
    wires: list[list[str]] = Field(default_factory=list)
    z: str | None = None  # id of the owning tab in flat exports

    @property
    def config(self) -> dict[str, Any]:
        """Node-type specific settings (everything that is not a core field)."""
        return dict(self.model_extra or {})

    def get(self, key: str, default: Any = None) -> Any:
        """Look up a node setting by key."""
        return (self.model_extra or {}).get(key, default)

    def targets(self) -> list[str]:
        """All wire targets across every output port, in port order."""
        return [target for port in self.wires for target in port]


class Flow(BaseModel):
    """a single flow tab with its nodes."""

    model_config = {"extra": "allow"}

    id: str
    label: str | None = None
    type: str = "tab"
    nodes: list[FlowNode] = Field(default_factory=list)

    @property
    def display_label(self) -> str:
        return self.label or f"Flow {self.id}"


def group_flat_flows(records: list[dict] | dict) -> list[Flow]:
    """Group a flat editor export into flows.

    The editor stores tabs and nodes side by side in one list, with each
    node pointing at its tab through ``z``. Tabs keep their export order;
    nodes whose tab is missing from the export are dropped. Records that
    already look like flows (a ``nodes`` list) are validated as-is.

    Args:
        records: the export list, or a ``{"flows": [...]}`` wrapper

    Returns:
        list of Flow objects in tab order
    """
    if isinstance(records, dict):
        records = records.get("flows") or []

    flows: dict[str, Flow] = {}
    loose_nodes: list[dict] = []

    for record in records:
        if not isinstance(record, dict):
            continue
        if isinstance(record.get("nodes"), list):
            flow = Flow.model_validate(record)
            flows[flow.id] = flow
        elif record.get("type") == "tab":
            flow = Flow.model_validate({**record, "nodes": []})
            flows[flow.id] = flow
        else:
            loose_nodes.append(record)

    for record in loose_nodes:
        tab_id = record.get("z")
        flow = flows.get(tab_id) if isinstance(tab_id, str) else None
        if flow is None:
            continue
        flow.nodes.append(FlowNode.model_validate(record))

    return list(flows.values())
