"""Flow sources: where the current workspace comes from.

The host editor owns flow storage; the copilot only needs a way to ask for
the current workspace. Sources never raise for missing or unreadable data;
they report an empty workspace, which analyzes to a zeroed result.
"""

import json
import logging
from pathlib import Path

from pydantic import ValidationError

from copilot.models.flow import Flow, group_flat_flows

logger = logging.getLogger(__name__)


class FlowSource:
    """Protocol for providing the current workspace."""

    def get_flows(self) -> list[Flow]:
        """Return the workspace's flows in editor order."""
        raise NotImplementedError

    def get_flow(self, flow_id: str) -> Flow | None:
        for flow in self.get_flows():
            if flow.id == flow_id:
                return flow
        return None


class StaticFlowSource(FlowSource):
    """Holds flows in memory."""

    def __init__(self, flows: list[Flow] | None = None) -> None:
        self.flows: list[Flow] = list(flows or [])

    def get_flows(self) -> list[Flow]:
        return list(self.flows)

    def set_flows(self, flows: list[Flow]) -> None:
        """Replace the workspace (e.g. after a deploy event)."""
        self.flows = list(flows)


class FileFlowSource(FlowSource):
    """Reads an editor flow export (flows.json) on every request."""

    def __init__(self, path: Path | str) -> None:
        self.path = Path(path)

    def get_flows(self) -> list[Flow]:
        if not self.path.exists():
            logger.warning("flow file %s not found, workspace is empty", self.path)
            return []
        try:
            data = json.loads(self.path.read_text())
            return group_flat_flows(data)
        except (OSError, ValueError, ValidationError) as exc:
            logger.warning("could not read flows from %s: %s", self.path, exc)
            return []
