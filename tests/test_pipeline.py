"""End-to-end generation graph over in-memory collaborators."""

import dataclasses

import pytest

from safeplan.domains.workout import (
    ConstraintValidationError,
    NoEligibleExercisesError,
    StoreError,
    run_workout_generation_pipeline,
)
from safeplan.domains.workout.graph import GenerationPipeline
from tests.factories import BrokenAuditLog, BrokenProfiles, FakeTextGenerator, gen_exercise, plan_json


def _request(**constraints):
    data = {"duration_minutes": 45, "difficulty_level": 3, "equipment_available": ["bodyweight"]}
    data.update(constraints)
    return {"constraints": data}


def _event_names(result):
    return [e["name"] for e in result.audit["events"]]


def test_safe_candidate_is_returned(services, audit_log):
    result = run_workout_generation_pipeline(_request(), services)

    plan = result.plan
    assert plan.generated_by == "llm"
    assert result.report.is_safe is True
    assert result.fallback_reason is None
    assert result.eligible_count > 0
    for ex in plan.exercises:
        assert ex.sets <= 6
        assert ex.reps <= 30
    assert _event_names(result) == [
        "pipeline_start",
        "context_done",
        "normalize_done",
        "retrieval_done",
        "history_done",
        "generate_done",
        "validate_done",
        "pipeline_end",
    ]

    record = audit_log.records[-1]
    assert record["kind"] == "generation"
    assert record["success"] is True
    assert record["method"] == "llm"
    assert record["workout_id"] == plan.id
    assert record["request_id"] == result.request_id


def test_unsafe_candidate_replaced_by_fallback(services, audit_log):
    services.llm = FakeTextGenerator(response=plan_json([
        gen_exercise("1", "Push-up"),
        gen_exercise("7", "Good Morning"),
    ]))

    result = run_workout_generation_pipeline(
        {**_request(), "preferences": {"injury_history": ["lower_back"]}},
        services,
    )

    assert result.plan.generated_by == "template"
    assert result.fallback_reason == "unsafe_candidate"
    assert result.report.is_safe is True
    assert "Good Morning" not in [ex.name for ex in result.plan.exercises]
    assert {"type": "fallback_used", "detail": "unsafe_candidate"} in result.warnings

    validate = next(e for e in result.audit["events"] if e["name"] == "validate_done")
    assert validate["payload"]["is_safe"] is False
    assert validate["payload"]["risk_level"] == "very_high"
    assert audit_log.records[-1]["method"] == "template"


def test_stored_profile_injuries_apply(services):
    services.llm = FakeTextGenerator(response=plan_json([gen_exercise("7", "Good Morning")]))

    result = run_workout_generation_pipeline({**_request(), "user_id": "u-back"}, services)

    assert result.plan.generated_by == "template"
    assert result.context.injury_history == ["lower_back"]


@pytest.mark.parametrize(
    "llm",
    [
        None,
        FakeTextGenerator(error=ConnectionError("connection reset")),
        FakeTextGenerator(response="Sure! Here's a great workout."),
        FakeTextGenerator(response=plan_json([gen_exercise("8", "Deadlift")])),
    ],
)
def test_generation_failure_falls_back(services, llm):
    services.llm = llm

    result = run_workout_generation_pipeline(_request(), services)

    assert result.plan.generated_by == "template"
    assert result.fallback_reason == "generation_failed"
    assert result.report.is_safe is True
    assert result.plan.exercises


def test_generator_called_once(services, good_generator):
    run_workout_generation_pipeline(_request(), services)
    assert good_generator.calls == 1


def test_rejected_request_never_reaches_generator(services, good_generator, audit_log):
    with pytest.raises(ConstraintValidationError) as exc:
        run_workout_generation_pipeline(_request(equipment_available=["olympic_rings"]), services)

    assert exc.value.details["unsafe_equipment"] == ["olympic_rings"]
    assert good_generator.calls == 0
    assert audit_log.records[-1]["success"] is False
    assert audit_log.records[-1]["error_code"] == "VALIDATION_ERROR"


def test_experience_from_profile_caps_difficulty(services, good_generator):
    with pytest.raises(ConstraintValidationError):
        run_workout_generation_pipeline({**_request(difficulty_level=4), "user_id": "u-beginner"}, services)
    assert good_generator.calls == 0


def test_empty_eligible_set_is_surfaced(services, good_generator, audit_log):
    with pytest.raises(NoEligibleExercisesError):
        run_workout_generation_pipeline(_request(equipment_available=["cable"]), services)

    assert good_generator.calls == 0
    assert audit_log.records[-1]["error_code"] == "NO_EXERCISES"


def test_profile_store_failure_is_fatal(services, good_generator):
    services.profiles = BrokenProfiles()

    with pytest.raises(StoreError):
        run_workout_generation_pipeline({**_request(), "user_id": "u-1"}, services)
    assert good_generator.calls == 0


def test_audit_failure_does_not_fail_generation(services):
    services.audit_log = BrokenAuditLog()

    result = run_workout_generation_pipeline(_request(), services)

    assert result.plan.generated_by == "llm"
    end = result.audit["events"][-1]
    assert end["name"] == "pipeline_end"
    assert end["payload"]["audit_persisted"] is False


def test_envelope_variant_tightens_clamps(services):
    services.envelope = dataclasses.replace(services.envelope, max_sets_per_exercise=4, max_reps_per_set=12)

    result = GenerationPipeline(services).run(_request())

    assert result.plan.generated_by == "llm"
    assert max(ex.sets for ex in result.plan.exercises) == 4
    assert max(ex.reps for ex in result.plan.exercises) == 12


def test_scalar_preference_list_is_rejected(services, good_generator):
    with pytest.raises(ConstraintValidationError) as exc:
        run_workout_generation_pipeline({**_request(), "preferences": {"avoid_exercises": 7}}, services)

    assert exc.value.details["fields"] == ["avoid_exercises"]
    assert good_generator.calls == 0


def test_empty_fallback_is_flagged(services, audit_log):
    result = run_workout_generation_pipeline(_request(equipment_available=["barbell"]), services)

    assert result.plan.generated_by == "template"
    assert result.plan.exercises == []
    assert result.fallback_reason == "generation_failed"
    assert {"type": "empty_plan", "detail": "no eligible bodyweight exercises"} in result.warnings
    assert audit_log.records[-1]["empty_plan"] is True


def test_non_empty_plan_is_not_flagged(services, audit_log):
    result = run_workout_generation_pipeline(_request(), services)

    assert all(w["type"] != "empty_plan" for w in result.warnings)
    assert audit_log.records[-1]["empty_plan"] is False
