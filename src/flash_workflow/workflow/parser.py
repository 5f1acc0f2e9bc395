"""
Manifest parser - Reads workflow.xml into a Workflow.

Element and attribute names are matched by local name, case-insensitively,
so namespaced or differently cased manifests parse the same way.
"""

import xml.etree.ElementTree as ET
from pathlib import Path

from ..constants import DEFAULT_WORKFLOW_NAME, DEFAULT_WORKFLOW_VERSION
from ..errors import ConfigurationError, NotFoundError
from ..log import WorkflowLogger
from .models import Step, Workflow


def local_name(tag: str) -> str:
    """Strip a ``{namespace}`` prefix from an element or attribute name."""
    if tag.startswith("{"):
        return tag.rsplit("}", 1)[1]
    return tag


def _matches(element: ET.Element, name: str) -> bool:
    return isinstance(element.tag, str) and local_name(element.tag).casefold() == name.casefold()


def _find_first(element: ET.Element, name: str) -> ET.Element | None:
    """Find the element itself or its first descendant with the given local name."""
    for candidate in element.iter():
        if _matches(candidate, name):
            return candidate
    return None


def _find_descendants(element: ET.Element, name: str) -> list[ET.Element]:
    return [candidate for candidate in element.iter() if candidate is not element and _matches(candidate, name)]


def get_attribute(element: ET.Element, name: str, default: str | None = "") -> str | None:
    """Get an attribute by local name, case-insensitively."""
    wanted = name.casefold()
    for key, value in element.attrib.items():
        if local_name(key).casefold() == wanted:
            return value
    return default


def _parse_step(element: ET.Element) -> Step:
    step_type = get_attribute(element, "Type")
    if not step_type:
        raise ConfigurationError("Workflow step is missing the Type attribute")

    condition = get_attribute(element, "Condition", None)
    entries = []
    for child in element:
        if not isinstance(child.tag, str):
            continue
        text = "".join(child.itertext()).strip()
        if text:
            entries.append((local_name(child.tag), text))

    return Step(
        type=step_type,
        name=get_attribute(element, "Name"),
        condition=condition or None,
        params=dict(entries),
        entries=tuple(entries),
    )


def parse_workflow_text(text: str | bytes, logger: WorkflowLogger | None = None) -> Workflow:
    """
    Parse manifest content.

    Args:
        text: XML document
        logger: Optional logger for parse diagnostics

    Returns:
        Workflow

    Raises:
        ConfigurationError: Malformed XML, no Workflow element, or a step without Type
    """
    try:
        document = ET.fromstring(text)
    except ET.ParseError as e:
        raise ConfigurationError(f"Invalid workflow file: {e}") from e

    root = _find_first(document, "Workflow")
    if root is None:
        raise ConfigurationError("Invalid workflow file: missing Workflow root element")

    variables: dict[str, str] = {}
    variables_node = _find_first(root, "Variables")
    if variables_node is not None:
        for node in _find_descendants(variables_node, "Variable"):
            name = get_attribute(node, "Name")
            if name:
                variables[name] = get_attribute(node, "Value") or ""

    steps: list[Step] = []
    steps_node = _find_first(root, "Steps")
    if steps_node is not None:
        steps = [_parse_step(node) for node in _find_descendants(steps_node, "Step")]

    if logger:
        seen: set[str] = set()
        for step in steps:
            if step.name in seen:
                logger.warning(f"Duplicate step name '{step.name}': only the last result will be recorded")
            seen.add(step.name)

    return Workflow(
        name=get_attribute(root, "Name") or DEFAULT_WORKFLOW_NAME,
        version=get_attribute(root, "Version") or DEFAULT_WORKFLOW_VERSION,
        variables=variables,
        steps=tuple(steps),
    )


def parse_workflow(path: Path, logger: WorkflowLogger | None = None) -> Workflow:
    """
    Parse a manifest file.

    Raises:
        NotFoundError: The file does not exist
        ConfigurationError: The file is not a valid manifest
    """
    if not path.is_file():
        raise NotFoundError(f"Workflow file not found: {path}")

    workflow = parse_workflow_text(path.read_bytes(), logger)

    if logger:
        logger.info(f"Parsed workflow: {workflow.name} v{workflow.version}, {len(workflow.steps)} steps")
    return workflow
