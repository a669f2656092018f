import logging
import json
import os

from .models import EndpointReport

logger = logging.getLogger(__name__)


def export_reports(reports: list[EndpointReport], output_path: str) -> bool:
    """Write the reports as pretty JSON. Returns False (and logs) on failure."""
    payload = [report.model_dump() for report in reports]
    try:
        directory = os.path.dirname(output_path)
        if directory:
            os.makedirs(directory, exist_ok=True)
        with open(output_path, "w", encoding="utf-8") as f:
            json.dump(payload, f, indent=2)
        logger.info(f"Results exported to {output_path}")
        return True
    except OSError as e:
        logger.warning(f"Failed to write output {output_path}: {e}")
        return False
