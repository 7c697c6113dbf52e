from .envelope import SafetyEnvelope, load_envelope
from .errors import (
    ConstraintValidationError,
    GenerationError,
    NoEligibleExercisesError,
    SafetyEngineError,
    StoreError,
)
from .graph import GenerationPipeline, run_workout_generation_pipeline
from .stores import WorkoutServices
from .validation import run_safety_validation

__all__ = [
    "SafetyEnvelope",
    "load_envelope",
    "ConstraintValidationError",
    "GenerationError",
    "NoEligibleExercisesError",
    "SafetyEngineError",
    "StoreError",
    "GenerationPipeline",
    "run_workout_generation_pipeline",
    "WorkoutServices",
    "run_safety_validation",
]
