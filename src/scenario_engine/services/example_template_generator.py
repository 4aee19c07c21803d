"""Example template generation hook.

Generating example templates from resolved scenarios lives outside this
package; the compiler only needs something implementing
:class:`ExampleTemplateGenerator`.
"""
from __future__ import annotations

import logging
from typing import Protocol

from src.shared.models.scenarios import TestScenario

logger = logging.getLogger(__name__)


class ExampleTemplateGenerator(Protocol):
    def generate_example_template_for_test_scenario(self, test_scenario: TestScenario) -> None:
        """Called once per scenario after all of its steps are resolved."""
        ...


class NullExampleTemplateGenerator:
    """Generator that records nothing."""

    def generate_example_template_for_test_scenario(self, test_scenario: TestScenario) -> None:
        logger.debug(
            "No example template generator configured for scenario %r (%d steps)",
            test_scenario.description,
            len(test_scenario.resolved_steps),
        )
