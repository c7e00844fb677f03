"""Gherkin ``.feature`` file summaries."""

import os
from typing import List, Optional

from .models import GherkinFeatureSummary, GherkinScenarioSummary

STEP_PREFIXES = ("given", "when", "then", "and", "but")


def _is_step(lowered: str) -> bool:
    return any(lowered.startswith(p + " ") or lowered.startswith(p + "\t") for p in STEP_PREFIXES)


def _after_colon(line: str) -> str:
    return line.split(":", 1)[1].strip() if ":" in line else line.strip()


def parse_feature(text: str, rel_path: str) -> Optional[GherkinFeatureSummary]:
    """Feature title plus scenarios with their steps.

    Returns None for a file with neither a title nor any scenario.
    """
    title = ""
    scenarios: List[GherkinScenarioSummary] = []
    current: Optional[GherkinScenarioSummary] = None

    def finish():
        if current is not None and (current.steps or current.name):
            scenarios.append(current)

    for raw in text.splitlines():
        line = raw.strip()
        if not line or line.startswith("#"):
            continue
        lowered = line.lower()

        if lowered.startswith("feature:"):
            title = _after_colon(line)
        elif lowered.startswith("background:"):
            finish()
            current = GherkinScenarioSummary(name="Background", scenario_type="BACKGROUND")
        elif lowered.startswith(("scenario outline:", "scenario template:")):
            finish()
            current = GherkinScenarioSummary(name=_after_colon(line), scenario_type="SCENARIO_OUTLINE")
        elif lowered.startswith(("scenario:", "example:")):
            finish()
            current = GherkinScenarioSummary(name=_after_colon(line), scenario_type="SCENARIO")
        elif lowered.startswith(("examples:", "scenarios:")):
            if current is None:
                current = GherkinScenarioSummary(name="Examples", scenario_type="EXAMPLES")
            current.steps.append(line)
        elif _is_step(lowered) or line.startswith(("*", "|")):
            if current is None:
                current = GherkinScenarioSummary(name="Scenario", scenario_type="SCENARIO")
            current.steps.append(line)
        elif current is not None and line.startswith(('"""', "```")):
            current.steps.append(line)

    finish()

    if not scenarios and not title:
        return None
    if not title:
        title = os.path.basename(rel_path)[: -len(".feature")] if rel_path.endswith(".feature") else rel_path
    return GherkinFeatureSummary(feature_file=rel_path, feature_title=title, scenarios=scenarios)
