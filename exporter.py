from typing import Any, Callable, Dict, Optional

import pulumi

from orchestrator import OrchestrationResult

NOT_AVAILABLE = "not available"

# Stack output names.
OUTPUT_NAMES = {
    "service_url": "serviceUrl",
    "project_id": "gcpProjectId",
    "region": "deployedRegion",
}


class ResultExporter:
    def export(self, result: Optional[OrchestrationResult]) -> Dict[str, Any]:
        """Project ``result`` onto the named outputs; every field is
        ``NOT_AVAILABLE`` when there is no result."""
        if result is None:
            return {output: NOT_AVAILABLE for output in OUTPUT_NAMES.values()}
        return {output: getattr(result, attr) for attr, output in OUTPUT_NAMES.items()}

    def publish(self, result: OrchestrationResult, export_fn: Callable[[str, Any], None] = pulumi.export) -> Dict[str, Any]:
        outputs = self.export(result)
        for name, value in outputs.items():
            try:
                export_fn(name, value)
            except Exception as e:
                pulumi.log.warn(f"Failed to export output '{name}': {e}")
        return outputs
