import django.core.validators
import django.db.models.deletion
from django.db import migrations, models


class Migration(migrations.Migration):

    initial = True

    dependencies = []

    operations = [
        migrations.CreateModel(
            name="Exercise",
            fields=[
                ("id", models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name="ID")),
                ("name", models.CharField(max_length=255, unique=True)),
                ("category", models.CharField(default="strength", max_length=32)),
                ("movement_pattern", models.CharField(blank=True, default="", max_length=64)),
                ("muscle_groups", models.JSONField(blank=True, default=list)),
                ("equipment", models.JSONField(blank=True, default=list)),
                ("safety_rating", models.PositiveSmallIntegerField(db_index=True, validators=[django.core.validators.MinValueValidator(1), django.core.validators.MaxValueValidator(5)])),
                ("difficulty_level", models.PositiveSmallIntegerField(db_index=True, validators=[django.core.validators.MinValueValidator(1), django.core.validators.MaxValueValidator(5)])),
                ("contraindications", models.JSONField(blank=True, default=list)),
                ("is_compound", models.BooleanField(default=False)),
                ("created_at", models.DateTimeField(auto_now_add=True)),
            ],
        ),
        migrations.CreateModel(
            name="UserSafetyProfile",
            fields=[
                ("id", models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name="ID")),
                ("user_id", models.CharField(max_length=64, unique=True)),
                ("experience_level", models.CharField(blank=True, choices=[("beginner", "Beginner"), ("intermediate", "Intermediate"), ("advanced", "Advanced")], default="", max_length=16)),
                ("injury_history", models.JSONField(blank=True, default=list)),
                ("limitations", models.JSONField(blank=True, default=list)),
                ("medical_conditions", models.JSONField(blank=True, default=list)),
                ("age", models.PositiveSmallIntegerField(blank=True, null=True)),
                ("updated_at", models.DateTimeField(auto_now=True)),
            ],
        ),
        migrations.CreateModel(
            name="WorkoutSession",
            fields=[
                ("id", models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name="ID")),
                ("user_id", models.CharField(db_index=True, max_length=64)),
                ("status", models.CharField(choices=[("planned", "Planned"), ("in_progress", "In progress"), ("completed", "Completed")], default="completed", max_length=16)),
                ("completed_at", models.DateTimeField(blank=True, db_index=True, null=True)),
                ("created_at", models.DateTimeField(auto_now_add=True)),
            ],
        ),
        migrations.CreateModel(
            name="SessionExercise",
            fields=[
                ("id", models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name="ID")),
                ("name", models.CharField(max_length=255)),
                ("sets", models.PositiveSmallIntegerField(default=0)),
                ("reps", models.PositiveSmallIntegerField(default=0)),
                ("intensity", models.FloatField(blank=True, null=True)),
                ("order", models.PositiveSmallIntegerField(default=0)),
                ("exercise", models.ForeignKey(blank=True, null=True, on_delete=django.db.models.deletion.SET_NULL, to="safeplan.exercise")),
                ("session", models.ForeignKey(on_delete=django.db.models.deletion.CASCADE, related_name="exercises", to="safeplan.workoutsession")),
            ],
            options={
                "ordering": ["order", "id"],
            },
        ),
        migrations.CreateModel(
            name="GenerationAuditLog",
            fields=[
                ("id", models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name="ID")),
                ("kind", models.CharField(choices=[("generation", "Generation"), ("validation", "Validation")], max_length=16)),
                ("request_id", models.CharField(blank=True, default="", max_length=64)),
                ("user_id", models.CharField(blank=True, db_index=True, default="", max_length=64)),
                ("success", models.BooleanField(null=True)),
                ("method", models.CharField(blank=True, default="", max_length=16)),
                ("validation_type", models.CharField(blank=True, default="", max_length=16)),
                ("risk_level", models.CharField(blank=True, default="", max_length=16)),
                ("safety_score", models.PositiveSmallIntegerField(blank=True, null=True)),
                ("is_safe", models.BooleanField(null=True)),
                ("error_message", models.TextField(blank=True, default="")),
                ("payload", models.JSONField(blank=True, default=dict)),
                ("created_at", models.DateTimeField(auto_now_add=True)),
            ],
        ),
    ]
