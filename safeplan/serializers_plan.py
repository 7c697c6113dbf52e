from rest_framework import serializers

from safeplan.domains.workout.contract import EXPERIENCE_LEVELS, VALIDATION_TYPES


def _csv(value: str) -> list[str]:
    return [x.strip() for x in (value or "").split(",") if x.strip()]


def _string_list(**kwargs):
    return serializers.ListField(child=serializers.CharField(), **kwargs)


class ConstraintsSerializer(serializers.Serializer):
    duration_minutes = serializers.IntegerField(min_value=5, max_value=180)
    difficulty_level = serializers.IntegerField(min_value=1, max_value=5)
    equipment_available = _string_list(required=False, allow_empty=True, default=list)
    muscle_groups_focus = _string_list(required=False, allow_null=True, allow_empty=True)
    limitations = _string_list(required=False, allow_null=True, allow_empty=True)
    goals = _string_list(required=False, allow_null=True, allow_empty=True)


class PreferencesSerializer(serializers.Serializer):
    experience_level = serializers.ChoiceField(choices=list(EXPERIENCE_LEVELS), required=False, allow_null=True)
    injury_history = _string_list(required=False, allow_empty=True, default=list)
    medical_conditions = _string_list(required=False, allow_empty=True, default=list)
    avoid_exercises = _string_list(required=False, allow_empty=True, default=list)
    focus_areas = _string_list(required=False, allow_empty=True, default=list)

    def to_internal_value(self, data):
        # experience level is accepted case-insensitively
        if isinstance(data, dict) and isinstance(data.get("experience_level"), str):
            data = {**data, "experience_level": data["experience_level"].strip().lower()}
        return super().to_internal_value(data)


class WorkoutGenerateSerializer(serializers.Serializer):
    constraints = ConstraintsSerializer()
    preferences = PreferencesSerializer(required=False)
    user_id = serializers.CharField(required=False, allow_blank=False, max_length=64)


class SafetyValidateSerializer(serializers.Serializer):
    validation_type = serializers.ChoiceField(choices=list(VALIDATION_TYPES))
    workout_plan = serializers.DictField(required=False)
    exercise_suggestion = serializers.DictField(required=False)
    user_context = serializers.DictField(required=False)
    user_id = serializers.CharField(required=False, allow_blank=False, max_length=64)

    def validate(self, attrs):
        vt = attrs.get("validation_type")
        if vt == "workout" and not attrs.get("workout_plan"):
            raise serializers.ValidationError({"workout_plan": "Required for workout validation."})
        if vt == "exercise" and not attrs.get("exercise_suggestion"):
            raise serializers.ValidationError({"exercise_suggestion": "Required for exercise validation."})
        if vt == "progression" and not attrs.get("user_id"):
            raise serializers.ValidationError({"user_id": "Required for progression validation."})
        return attrs


class EligibleQuerySerializer(serializers.Serializer):
    duration_minutes = serializers.IntegerField(min_value=5, max_value=180, required=False, default=30)
    difficulty_level = serializers.IntegerField(min_value=1, max_value=5, required=False, default=3)

    # CSV strings, e.g. "dumbbell, bodyweight"
    equipment = serializers.CharField(required=False, allow_blank=True, default="")
    muscles = serializers.CharField(required=False, allow_blank=True, default="")
    avoid = serializers.CharField(required=False, allow_blank=True, default="")

    def to_constraints(self) -> dict:
        data = self.validated_data
        return {
            "duration_minutes": data["duration_minutes"],
            "difficulty_level": data["difficulty_level"],
            "equipment_available": _csv(data.get("equipment", "")),
            "muscle_groups_focus": _csv(data.get("muscles", "")) or None,
        }

    def avoid_list(self) -> list[str]:
        return _csv(self.validated_data.get("avoid", ""))
