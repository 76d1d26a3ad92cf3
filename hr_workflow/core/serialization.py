"""JSON export and import of whole workflows.

File shape::

    {"nodes": [Node, ...], "edges": [Edge, ...]}

Unknown node and edge fields (canvas position, edge markers) are kept as-is.
"""

import json
from typing import Any, Dict, List, Union

from pydantic import ValidationError

from ..models.core import Workflow
from .exceptions import WorkflowImportError
from .logging import get_logger

logger = get_logger(__name__)


def export_workflow(workflow: Workflow) -> Dict[str, Any]:
    """Convert a workflow to its JSON-ready file shape."""
    return workflow.model_dump(mode="json", by_alias=True)


def dumps_workflow(workflow: Workflow, indent: int = 2) -> str:
    """Serialize a workflow to pretty-printed JSON text."""
    return json.dumps(export_workflow(workflow), indent=indent)


def _format_validation_errors(error: ValidationError) -> List[str]:
    messages = []
    for item in error.errors(include_url=False):
        location = ".".join(str(part) for part in item["loc"])
        messages.append(f"{location}: {item['msg']}" if location else item["msg"])
    return messages


def parse_workflow(data: Any) -> Workflow:
    """
    Build a workflow from decoded JSON data.

    Args:
        data: Decoded file contents

    Returns:
        Workflow: The parsed workflow

    Raises:
        WorkflowImportError: If ``nodes``/``edges`` are missing or not arrays,
            or if any record does not parse
    """
    if not isinstance(data, dict):
        raise WorkflowImportError(
            "Invalid workflow file: expected a JSON object",
            import_errors=[f"top level is {type(data).__name__}"]
        )

    problems = []
    for key in ("nodes", "edges"):
        if key not in data:
            problems.append(f"missing '{key}'")
        elif not isinstance(data[key], list):
            problems.append(f"'{key}' must be an array")
    if problems:
        raise WorkflowImportError("Invalid workflow file", import_errors=problems)

    try:
        workflow = Workflow.model_validate({"nodes": data["nodes"], "edges": data["edges"]})
    except ValidationError as e:
        messages = _format_validation_errors(e)
        logger.warning(f"Rejected workflow import with {len(messages)} error(s)")
        raise WorkflowImportError("Invalid workflow file", import_errors=messages) from e

    return workflow


def loads_workflow(text: Union[str, bytes]) -> Workflow:
    """Parse workflow JSON text, see :func:`parse_workflow`."""
    try:
        data = json.loads(text)
    except (json.JSONDecodeError, UnicodeDecodeError) as e:
        raise WorkflowImportError(
            "Invalid workflow file: not valid JSON",
            import_errors=[str(e)]
        ) from e
    return parse_workflow(data)
