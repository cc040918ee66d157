import re
from pathlib import Path

import yaml
from pydantic import ValidationError

from cmsmail.rules.models import Rules

# First ```yaml fenced block of a markdown document
_YAML_FENCE = re.compile(r"^[ \t]*```yaml[ \t]*\n(.*?)^[ \t]*```", re.MULTILINE | re.DOTALL)


def extract_yaml(text: str) -> str:
    """Return the fenced YAML block when the rules live in markdown, else the text itself."""
    match = _YAML_FENCE.search(text)
    return match.group(1) if match else text


def load_rules(path: Path) -> Rules:
    """
    Load and validate the rules file.

    Raises FileNotFoundError if the file is missing and ValueError if the
    YAML or the schema is invalid.
    """
    if not path.exists():
        raise FileNotFoundError(f"Rules file not found at: {path}")

    try:
        data = yaml.safe_load(extract_yaml(path.read_text(encoding="utf-8")))
    except yaml.YAMLError as e:
        raise ValueError(f"Invalid YAML syntax in rules file: {e}") from e

    try:
        return Rules.model_validate(data)
    except ValidationError as e:
        raise ValueError(f"Rules validation failed:\n{e}") from e
