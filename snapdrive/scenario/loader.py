"""Scenario loader — reads YAML scenario files into pydantic models.

Layout on disk::

    <snapdrive_dir>/test-cases/<id>/scenario.yaml
    <snapdrive_dir>/test-cases/<id>/baselines/<checkpoint>.png
"""

from __future__ import annotations

import logging
from pathlib import Path

import yaml
from pydantic import ValidationError

from snapdrive.errors import ScenarioError
from snapdrive.models.scenario import Scenario, TestCase

logger = logging.getLogger(__name__)

SCENARIO_FILE = "scenario.yaml"
BASELINES_DIR = "baselines"


def load_scenario(path: str | Path) -> Scenario:
    path = Path(path)
    try:
        with open(path) as f:
            data = yaml.safe_load(f)
    except OSError as e:
        raise ScenarioError(f"Cannot read scenario {path}: {e}") from e
    except yaml.YAMLError as e:
        raise ScenarioError(f"Invalid YAML in {path}: {e}") from e

    if not isinstance(data, dict):
        raise ScenarioError(f"Scenario {path} must be a mapping")
    try:
        return Scenario.model_validate(data)
    except ValidationError as e:
        raise ScenarioError(f"Invalid scenario {path}: {e}") from e


def load_test_case(test_case_dir: str | Path) -> TestCase:
    """Load ``<dir>/scenario.yaml``; the directory name is the test case id."""
    test_case_dir = Path(test_case_dir)
    scenario = load_scenario(test_case_dir / SCENARIO_FILE)
    return TestCase(
        id=test_case_dir.name,
        path=str(test_case_dir),
        scenario=scenario,
        baselines_dir=str(test_case_dir / BASELINES_DIR),
    )


def cases_root(snapdrive_dir: str | Path) -> Path:
    return Path(snapdrive_dir) / "test-cases"


def list_test_cases(snapdrive_dir: str | Path) -> list[TestCase]:
    """All loadable test cases, sorted by id; broken ones are skipped."""
    root = cases_root(snapdrive_dir)
    if not root.is_dir():
        return []

    cases: list[TestCase] = []
    for scenario_file in sorted(root.glob(f"*/{SCENARIO_FILE}")):
        try:
            cases.append(load_test_case(scenario_file.parent))
        except ScenarioError as e:
            logger.warning("Skipping test case %s: %s", scenario_file.parent.name, e)
    return cases


def select_test_cases(snapdrive_dir: str | Path, ids: list[str] | None = None) -> list[TestCase]:
    """Load the named test cases, or every test case when ``ids`` is empty."""
    if not ids:
        return list_test_cases(snapdrive_dir)
    root = cases_root(snapdrive_dir)
    missing = [i for i in ids if not (root / i / SCENARIO_FILE).is_file()]
    if missing:
        raise ScenarioError(f"Test case(s) not found: {', '.join(missing)}")
    return [load_test_case(root / i) for i in ids]
