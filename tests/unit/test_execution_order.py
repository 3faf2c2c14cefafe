import pytest

from roleflow.contracts import WorkflowStep
from roleflow.exceptions import DependencyCycleError, WorkflowValidationError
from roleflow.execute import execution_order, validate_dependencies


def _step(step_id, *dependencies):
    return WorkflowStep(
        id=step_id, type="task", title=step_id.upper(), dependencies=list(dependencies)
    )


def test_dependencies_come_first():
    steps = [_step("c", "b"), _step("b", "a"), _step("a")]
    assert execution_order(steps) == ["a", "b", "c"]


def test_independent_steps_keep_creation_order():
    steps = [_step("x"), _step("y"), _step("z")]
    assert execution_order(steps) == ["x", "y", "z"]


def test_fan_in_after_all_dependencies():
    steps = [_step("m"), _step("e", "m"), _step("r", "m", "e"), _step("p")]
    order = execution_order(steps)

    assert order == ["m", "e", "r", "p"]
    for step in steps:
        for dep in step.dependencies:
            assert order.index(dep) < order.index(step.id)


def test_unknown_dependencies_are_ignored():
    steps = [_step("a", "ghost"), _step("b", "a")]
    assert execution_order(steps) == ["a", "b"]


def test_cycle_is_rejected():
    steps = [_step("a", "c"), _step("b", "a"), _step("c", "b")]

    with pytest.raises(DependencyCycleError) as excinfo:
        execution_order(steps)

    assert excinfo.value.cycle[0] == excinfo.value.cycle[-1]
    assert set(excinfo.value.cycle) == {"a", "b", "c"}


def test_self_dependency_is_a_cycle():
    with pytest.raises(DependencyCycleError):
        execution_order([_step("a", "a")])


def test_duplicate_ids_fail_validation():
    with pytest.raises(WorkflowValidationError):
        validate_dependencies([_step("a"), _step("a")])


def test_empty_graph():
    assert validate_dependencies([]) == []


def test_long_dependency_chain():
    # Each step depends on the next one, so the last step must run first.
    size = 1500
    steps = [
        _step(f"s{i}", f"s{i + 1}") if i < size - 1 else _step(f"s{i}")
        for i in range(size)
    ]

    order = execution_order(steps)

    assert order == [f"s{i}" for i in reversed(range(size))]


def test_cycle_at_the_end_of_a_long_chain():
    size = 1500
    steps = [_step(f"s{i}", f"s{i + 1}") for i in range(size - 1)]
    steps.append(_step(f"s{size - 1}", "s0"))

    with pytest.raises(DependencyCycleError) as excinfo:
        execution_order(steps)

    assert excinfo.value.cycle[0] == excinfo.value.cycle[-1] == "s0"
    assert len(excinfo.value.cycle) == size + 1
