"""Compilation of test definitions into resolved scenarios."""
from __future__ import annotations

import logging
from pathlib import Path
from typing import Any

from src.scenario_engine.services.example_template_generator import (
    ExampleTemplateGenerator,
    NullExampleTemplateGenerator,
)
from src.scenario_engine.services.step_resolver import StepResolver, TestScenarioContext
from src.shared.models.scenarios import TestDefinitionFile, TestScenario

logger = logging.getLogger(__name__)


class TestScenarioCompiler:
    """Resolves prepare steps once, then every scenario in declaration order."""
    __test__ = False

    def __init__(
        self,
        step_resolver: StepResolver,
        example_template_generator: ExampleTemplateGenerator | None = None,
    ) -> None:
        self._step_resolver = step_resolver
        self._template_generator = example_template_generator or NullExampleTemplateGenerator()

    def compile(
        self,
        raw_def: dict[str, Any],
        test_def: TestDefinitionFile,
        definition_dir: Path,
    ) -> TestDefinitionFile:
        """Fill *test_def* with the resolved steps of *raw_def*.

        The tracking context lives only for the duration of this call.
        """
        ctx = TestScenarioContext(test_def=test_def, definition_dir=definition_dir)

        for raw_step in raw_def.get("prepareSteps") or []:
            step = self._step_resolver.resolve_step(raw_step, ctx)
            step.is_scope_prepare_step = True
            test_def.prepare_steps.append(step)

        for raw_scenario in raw_def.get("testScenarios") or []:
            test_def.test_scenarios.append(self.compile_scenario(raw_scenario, ctx))
        return test_def

    def compile_scenario(
        self, raw_scenario: dict[str, Any], ctx: TestScenarioContext
    ) -> TestScenario:
        required = list(
            dict.fromkeys([*(raw_scenario.get("requiredVariables") or []), *ctx.test_def.required_variables])
        )
        scenario = TestScenario(
            description=raw_scenario.get("description", ""),
            share_test_scope=raw_scenario.get("shareTestScope", True),
            variables=raw_scenario.get("variables") or {},
            required_variables=required,
            steps=[],
            resolved_steps=list(ctx.test_def.prepare_steps),
        )

        ctx.begin_scenario(scenario)
        try:
            for raw_step in raw_scenario.get("steps") or []:
                step = self._step_resolver.resolve_step(raw_step, ctx)
                scenario.steps.append(step)
                scenario.resolved_steps.append(step)
        finally:
            ctx.end_scenario()

        self._template_generator.generate_example_template_for_test_scenario(scenario)
        logger.debug(
            "Compiled scenario %r: %d own steps, %d resolved steps",
            scenario.description,
            len(scenario.steps),
            len(scenario.resolved_steps),
        )
        return scenario
