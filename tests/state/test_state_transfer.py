"""Tests for export/import and compensating multi-partition writes."""

import pytest

from gzclp.domain.enums import WeightUnit
from gzclp.state.errors import ImportValidationError
from gzclp.state.models import STATE_VERSION, ConfigState, HistoryState, Partition, ProgressionStore, UserSettings
from gzclp.state.repository import StateRepository
from gzclp.state.transfer import (
    CompensatingStep,
    CompensationError,
    export_state,
    import_state,
    parse_bundle,
    run_compensating_steps,
)


class HistoryWriteFails(StateRepository):
    def save(self, partition, state, *, expected_revision=None):
        if partition == Partition.HISTORY:
            raise OSError("disk full")
        return super().save(partition, state, expected_revision=expected_revision)


class TestCompensatingSteps:
    def test_all_steps_run_in_order(self):
        calls: list[str] = []

        run_compensating_steps(
            [
                CompensatingStep("a", lambda: calls.append("a"), lambda: calls.append("undo a")),
                CompensatingStep("b", lambda: calls.append("b"), lambda: calls.append("undo b")),
            ]
        )

        assert calls == ["a", "b"]

    def test_failure_undoes_completed_steps_in_reverse(self):
        calls: list[str] = []

        def fail():
            raise ValueError("boom")

        with pytest.raises(ValueError, match="boom"):
            run_compensating_steps(
                [
                    CompensatingStep("a", lambda: calls.append("a"), lambda: calls.append("undo a")),
                    CompensatingStep("b", lambda: calls.append("b"), lambda: calls.append("undo b")),
                    CompensatingStep("c", fail, lambda: calls.append("undo c")),
                ]
            )

        assert calls == ["a", "b", "undo b", "undo a"]

    def test_failed_undo_is_reported(self):
        def fail():
            raise ValueError("boom")

        def fail_undo():
            raise OSError("undo failed")

        with pytest.raises(CompensationError) as excinfo:
            run_compensating_steps(
                [
                    CompensatingStep("a", lambda: None, fail_undo),
                    CompensatingStep("b", fail, lambda: None),
                ]
            )

        assert excinfo.value.failed_undos == ["a"]
        assert isinstance(excinfo.value.__cause__, ValueError)


class TestExportImport:
    def test_export_then_import_restores_state(self, repository, exercises, progression):
        repository.save_config(ConfigState(exercises=exercises, settings=UserSettings(weight_unit=WeightUnit.LBS)))
        repository.save_progression(ProgressionStore(progression=progression))
        data = export_state(repository).model_dump(mode="json")

        repository.save_config(ConfigState())
        repository.save_progression(ProgressionStore())
        import_state(repository, parse_bundle(data))

        assert repository.load_config().settings.weight_unit == WeightUnit.LBS
        assert repository.load_config().exercises == exercises
        assert repository.load_progression().progression == progression

    def test_failed_import_leaves_previous_state(self, session_factory, exercises, progression):
        repository = HistoryWriteFails(session_factory)
        repository.save_config(ConfigState(exercises=exercises))
        bundle = parse_bundle(
            {
                "version": STATE_VERSION,
                "config": ConfigState().model_dump(mode="json"),
                "progression": ProgressionStore(progression=progression).model_dump(mode="json"),
                "history": HistoryState().model_dump(mode="json"),
            }
        )

        with pytest.raises(OSError):
            import_state(repository, bundle)

        assert repository.load_config().exercises == exercises
        assert repository.load_progression().progression == {}

    @pytest.mark.parametrize("version", [None, 0, STATE_VERSION + 1, "1"])
    def test_unsupported_version_is_rejected(self, version):
        with pytest.raises(ImportValidationError):
            parse_bundle({"version": version, "config": {}, "progression": {}, "history": {}})

    def test_malformed_partition_is_rejected(self):
        with pytest.raises(ImportValidationError):
            parse_bundle({"version": STATE_VERSION, "config": {"exercises": "nope"}, "progression": {}, "history": {}})
