from django.core.validators import MaxValueValidator, MinValueValidator
from django.db import models

from safeplan.domains.workout.schemas import (
    HistoryExercise,
    HistorySession,
    LibraryExercise,
    UserSafetyContext,
)

_RATING = [MinValueValidator(1), MaxValueValidator(5)]


class Exercise(models.Model):
    """Curated, safety-rated library entry."""

    name = models.CharField(max_length=255, unique=True)
    category = models.CharField(max_length=32, default="strength")
    movement_pattern = models.CharField(max_length=64, blank=True, default="")
    muscle_groups = models.JSONField(default=list, blank=True)
    equipment = models.JSONField(default=list, blank=True)
    safety_rating = models.PositiveSmallIntegerField(validators=_RATING, db_index=True)
    difficulty_level = models.PositiveSmallIntegerField(validators=_RATING, db_index=True)
    contraindications = models.JSONField(default=list, blank=True)
    is_compound = models.BooleanField(default=False)

    created_at = models.DateTimeField(auto_now_add=True)

    def __str__(self) -> str:
        return self.name

    def to_library_exercise(self) -> LibraryExercise:
        return LibraryExercise(
            id=str(self.pk),
            name=self.name,
            category=self.category,
            movement_pattern=self.movement_pattern,
            muscle_groups=self.muscle_groups or [],
            equipment=self.equipment or [],
            safety_rating=self.safety_rating,
            difficulty_level=self.difficulty_level,
            contraindications=self.contraindications or [],
            is_compound=self.is_compound,
        )


class UserSafetyProfile(models.Model):
    class ExperienceLevel(models.TextChoices):
        BEGINNER = "beginner", "Beginner"
        INTERMEDIATE = "intermediate", "Intermediate"
        ADVANCED = "advanced", "Advanced"

    user_id = models.CharField(max_length=64, unique=True)
    experience_level = models.CharField(max_length=16, choices=ExperienceLevel.choices, blank=True, default="")
    injury_history = models.JSONField(default=list, blank=True)
    limitations = models.JSONField(default=list, blank=True)
    medical_conditions = models.JSONField(default=list, blank=True)
    age = models.PositiveSmallIntegerField(null=True, blank=True)

    updated_at = models.DateTimeField(auto_now=True)

    def __str__(self) -> str:
        return f"profile:{self.user_id}"

    def to_context(self) -> UserSafetyContext:
        return UserSafetyContext(
            injury_history=self.injury_history or [],
            limitations=self.limitations or [],
            experience_level=self.experience_level or None,
            medical_conditions=self.medical_conditions or [],
            age=self.age,
        )


class WorkoutSession(models.Model):
    class Status(models.TextChoices):
        PLANNED = "planned", "Planned"
        IN_PROGRESS = "in_progress", "In progress"
        COMPLETED = "completed", "Completed"

    user_id = models.CharField(max_length=64, db_index=True)
    status = models.CharField(max_length=16, choices=Status.choices, default=Status.COMPLETED)
    completed_at = models.DateTimeField(null=True, blank=True, db_index=True)

    created_at = models.DateTimeField(auto_now_add=True)

    def __str__(self) -> str:
        return f"session:{self.user_id}:{self.completed_at}"

    def to_history(self) -> HistorySession:
        return HistorySession(
            completed_at=self.completed_at,
            exercises=[
                HistoryExercise(name=e.name, sets=e.sets, reps=e.reps, intensity=e.intensity)
                for e in self.exercises.all()
            ],
        )


class SessionExercise(models.Model):
    session = models.ForeignKey(WorkoutSession, related_name="exercises", on_delete=models.CASCADE)
    exercise = models.ForeignKey(Exercise, null=True, blank=True, on_delete=models.SET_NULL)
    name = models.CharField(max_length=255)
    sets = models.PositiveSmallIntegerField(default=0)
    reps = models.PositiveSmallIntegerField(default=0)
    intensity = models.FloatField(null=True, blank=True)
    order = models.PositiveSmallIntegerField(default=0)

    class Meta:
        ordering = ["order", "id"]


class GenerationAuditLog(models.Model):
    """Append-only record of generation / validation outcomes."""

    class Kind(models.TextChoices):
        GENERATION = "generation", "Generation"
        VALIDATION = "validation", "Validation"

    kind = models.CharField(max_length=16, choices=Kind.choices)
    request_id = models.CharField(max_length=64, blank=True, default="")
    user_id = models.CharField(max_length=64, blank=True, default="", db_index=True)
    success = models.BooleanField(null=True)
    method = models.CharField(max_length=16, blank=True, default="")
    validation_type = models.CharField(max_length=16, blank=True, default="")
    risk_level = models.CharField(max_length=16, blank=True, default="")
    safety_score = models.PositiveSmallIntegerField(null=True, blank=True)
    is_safe = models.BooleanField(null=True)
    error_message = models.TextField(blank=True, default="")
    payload = models.JSONField(default=dict, blank=True)

    created_at = models.DateTimeField(auto_now_add=True)

    def __str__(self) -> str:
        return f"{self.kind}:{self.request_id or self.pk}"
