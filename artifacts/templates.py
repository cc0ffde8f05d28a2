"""
Default lip-sync templates.

Canned timing files used by the front-end for its intro and first-message
animations before any real reply has been synthesized.
"""

import json
import logging
from pathlib import Path
from typing import Any, Dict, List

logger = logging.getLogger(__name__)

DEFAULT_TEMPLATES: Dict[str, Dict[str, Any]] = {
    "intro_0.json": {
        "mouthCues": [
            {"start": 0, "end": 0.5, "value": "X"},
            {"start": 0.5, "end": 1.0, "value": "A"},
        ]
    },
    "intro_1.json": {
        "mouthCues": [
            {"start": 0, "end": 0.3, "value": "X"},
            {"start": 0.3, "end": 0.8, "value": "B"},
            {"start": 0.8, "end": 1.2, "value": "C"},
        ]
    },
    "message_0.json": {
        "mouthCues": [
            {"start": 0, "end": 0.4, "value": "X"},
            {"start": 0.4, "end": 0.9, "value": "D"},
            {"start": 0.9, "end": 1.5, "value": "E"},
        ]
    },
}

EMPTY_TIMING = {"mouthCues": []}


def write_default_templates(templates_dir: Path) -> List[str]:
    """
    Create any missing default template in ``templates_dir``.

    Existing files are left alone so operators can replace them.

    Returns:
        Names of the templates that were created
    """
    templates_dir.mkdir(parents=True, exist_ok=True)
    created = []

    for filename, content in DEFAULT_TEMPLATES.items():
        path = templates_dir / filename
        if path.exists():
            continue
        path.write_text(json.dumps(content), encoding="utf-8")
        created.append(filename)

    if created:
        logger.info(f" Created default templates: {created}")
    return created


def placeholder_for(filename: str) -> bytes:
    """Valid-shape stand-in for a template that could not be copied."""
    if filename.endswith(".json"):
        return json.dumps(EMPTY_TIMING).encode("utf-8")
    return b""
