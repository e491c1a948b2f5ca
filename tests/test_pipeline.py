"""
Tests for run_pipeline - ordering, resume, force and fail-fast semantics.
"""

import pytest

from facilitator_deploy.errors import StepExecutionError
from facilitator_deploy.pipeline import run_pipeline, validate_steps
from facilitator_deploy.state_store import MarkerStore

from conftest import ScriptedStep


@pytest.fixture
def store(tmp_path):
    s = MarkerStore(str(tmp_path / ".setup-state"))
    s.load(total=6)
    return s


class TestRunPipeline:
    def test_runs_all_steps_in_order(self, ctx, store, scripted_steps):
        steps, calls = scripted_steps()
        result = run_pipeline(ctx=ctx, steps=steps, store=store)

        assert calls == [1, 2, 3, 4, 5, 6]
        assert result.ran_steps == [1, 2, 3, 4, 5, 6]
        assert result.skipped_steps == []
        assert store.completed == [1, 2, 3, 4, 5, 6]

    def test_second_run_is_a_no_op(self, ctx, store, scripted_steps):
        """Running twice without failures repeats no side effects."""
        steps, calls = scripted_steps()
        run_pipeline(ctx=ctx, steps=steps, store=store)
        calls.clear()

        result = run_pipeline(ctx=ctx, steps=steps, store=store)

        assert calls == []
        assert result.skipped_steps == [1, 2, 3, 4, 5, 6]

    def test_failure_keeps_earlier_markers(self, ctx, store, scripted_steps):
        steps, calls = scripted_steps(fail_at=3)

        with pytest.raises(StepExecutionError) as exc_info:
            run_pipeline(ctx=ctx, steps=steps, store=store)

        assert exc_info.value.ordinal == 3
        assert "scripted step 3" in str(exc_info.value)
        assert isinstance(exc_info.value.__cause__, RuntimeError)
        assert calls == [1, 2, 3]
        assert store.path.read_text() == "DONE:1\nDONE:2\n"

    def test_resume_retries_exactly_the_failed_step(self, ctx, store, scripted_steps):
        steps, calls = scripted_steps(fail_at=3)
        with pytest.raises(StepExecutionError):
            run_pipeline(ctx=ctx, steps=steps, store=store)

        steps[2].fail = False
        calls.clear()
        reloaded = MarkerStore(str(store.path))
        reloaded.load(total=6)
        result = run_pipeline(ctx=ctx, steps=steps, store=reloaded)

        assert calls == [3, 4, 5, 6]
        assert result.skipped_steps == [1, 2]

    def test_force_reruns_everything(self, ctx, store, scripted_steps):
        steps, calls = scripted_steps()
        run_pipeline(ctx=ctx, steps=steps, store=store)
        calls.clear()

        result = run_pipeline(ctx=ctx, steps=steps, store=store, force=True)

        assert calls == [1, 2, 3, 4, 5, 6]
        assert result.skipped_steps == []

    def test_satisfied_step_is_marked_without_running(self, ctx, store, scripted_steps):
        steps, calls = scripted_steps(already=(2, 4))
        result = run_pipeline(ctx=ctx, steps=steps, store=store)

        assert calls == [1, 3, 5, 6]
        assert result.ran_steps == [1, 2, 3, 4, 5, 6]
        assert store.completed == [1, 2, 3, 4, 5, 6]

    def test_without_store_every_step_runs(self, ctx, scripted_steps):
        steps, calls = scripted_steps()
        run_pipeline(ctx=ctx, steps=steps[4:])

        assert calls == [5, 6]

    def test_os_errors_become_step_errors(self, ctx, store):
        class Broken(ScriptedStep):
            def run(self, ctx):
                raise PermissionError("read-only filesystem")

        with pytest.raises(StepExecutionError, match="read-only filesystem"):
            run_pipeline(ctx=ctx, steps=[Broken(1, [])], store=store)
        assert not store.path.exists()


class TestValidateSteps:
    def test_rejects_gaps(self):
        calls = []
        with pytest.raises(ValueError):
            validate_steps([ScriptedStep(1, calls), ScriptedStep(3, calls)])

    def test_rejects_out_of_order(self):
        calls = []
        with pytest.raises(ValueError):
            validate_steps([ScriptedStep(2, calls), ScriptedStep(1, calls)])

    def test_tail_of_sequence_is_valid(self):
        calls = []
        validate_steps([ScriptedStep(5, calls), ScriptedStep(6, calls)])
