from django.urls import path

from safeplan.views import EligibleExercisesView, SafetyValidateView, WorkoutGenerateView

urlpatterns = [
    path("api/workouts/generate/", WorkoutGenerateView.as_view(), name="workout-generate"),
    path("api/safety/validate/", SafetyValidateView.as_view(), name="safety-validate"),
    path("api/exercises/eligible/", EligibleExercisesView.as_view(), name="exercises-eligible"),
]
