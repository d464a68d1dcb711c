"""Variable scope resolution by step position."""

from __future__ import annotations

from typing import List, Sequence

from ..contracts import AvailableVariable, WorkflowStep


def get_available_variables(
    steps: Sequence[WorkflowStep], before_step_index: int
) -> List[AvailableVariable]:
    """Return the variables a step at ``before_step_index`` may reference.

    Only extractions of strictly earlier steps are visible, in step then
    extraction order. Indices past the end clamp to the number of steps.
    """

    variables: List[AvailableVariable] = []
    for step in steps[: max(0, before_step_index)]:
        for extraction in step.extractions:
            variables.append(
                AvailableVariable(
                    name=extraction.name, step_name=step.name, step_id=step.id
                )
            )
    return variables
