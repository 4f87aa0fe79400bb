"""Tests for job input models."""

from pydantic import ValidationError
import pytest

from queue_explorer.models import FilterState, JobChanges, JobOptions, JobTemplate


class TestJobTemplate:
    def test_null_opts_become_empty(self):
        template = JobTemplate.model_validate({"name": "send", "data": None, "opts": None})

        assert template.data is None
        assert template.opts.to_bull_options() == {}

    def test_blank_name_is_rejected(self):
        with pytest.raises(ValidationError):
            JobTemplate.model_validate({"name": "  ", "data": {}})

    def test_data_is_required(self):
        with pytest.raises(ValidationError):
            JobTemplate.model_validate({"name": "send"})


class TestJobOptions:
    def test_bullmq_names_round_trip(self):
        opts = JobOptions.model_validate(
            {
                "jobId": "custom-1",
                "removeOnFail": 5,
                "backoff": {"type": "exponential", "delay": 1000},
                "stackTraceLimit": 3,
            }
        )

        assert opts.to_bull_options() == {
            "backoff": {"type": "exponential", "delay": 1000},
            "jobId": "custom-1",
            "removeOnFail": 5,
            "stackTraceLimit": 3,
        }

    def test_priority_upper_bound(self):
        with pytest.raises(ValidationError):
            JobOptions(priority=2_097_153)


class TestJobChanges:
    def test_only_given_fields_are_set(self):
        changes = JobChanges.model_validate({"priority": 2})

        assert changes.model_fields_set == {"priority"}

    def test_null_numeric_fields_are_ignored(self):
        changes = JobChanges.model_validate({"delay": None, "data": None})

        assert changes.model_fields_set == {"data"}

    def test_unknown_fields_are_ignored(self):
        changes = JobChanges.model_validate({"name": "other", "progress": 80})

        assert changes.model_fields_set == {"progress"}


class TestFilterState:
    def test_is_empty(self):
        assert FilterState().is_empty()
        assert not FilterState(job_id_pattern="1").is_empty()
