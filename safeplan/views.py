from typing import Any, Dict, Optional

from loguru import logger
from rest_framework import status
from rest_framework.response import Response
from rest_framework.views import APIView

from safeplan.domains.workout import (
    SafetyEngineError,
    StoreError,
    WorkoutServices,
    run_safety_validation,
    run_workout_generation_pipeline,
)
from safeplan.domains.workout.orm_stores import build_orm_services
from safeplan.domains.workout.services.constraints import normalize
from safeplan.domains.workout.services.library import get_eligible
from safeplan.serializers_plan import (
    EligibleQuerySerializer,
    SafetyValidateSerializer,
    WorkoutGenerateSerializer,
)
from safeplan.shared.llm import LLMClient


_SERVICES: Optional[WorkoutServices] = None


def get_services() -> WorkoutServices:
    """Lazy-load the ORM-backed collaborators."""
    global _SERVICES
    if _SERVICES is None:
        _SERVICES = build_orm_services(llm=LLMClient())
    return _SERVICES


def _error_response(code: str, message: str, details: Dict[str, Any], http_status: int) -> Response:
    return Response({"error": code, "message": message, "details": details}, status=http_status)


def _domain_error_response(e: SafetyEngineError) -> Response:
    if isinstance(e, StoreError):
        http_status = status.HTTP_503_SERVICE_UNAVAILABLE
    elif type(e) is SafetyEngineError:
        http_status = status.HTTP_500_INTERNAL_SERVER_ERROR
    else:
        http_status = status.HTTP_400_BAD_REQUEST
    return Response(e.to_dict(), status=http_status)


def _invalid_request(errors: Any) -> Response:
    return _error_response("VALIDATION_ERROR", "Invalid request", errors, status.HTTP_400_BAD_REQUEST)


def _request_user_id(request, fallback: Optional[str]) -> Optional[str]:
    user = getattr(request, "user", None)
    if user is not None and getattr(user, "is_authenticated", False):
        return str(getattr(user, "id", "")) or fallback
    return fallback


class WorkoutGenerateView(APIView):
    def post(self, request):
        ser = WorkoutGenerateSerializer(data=request.data)
        if not ser.is_valid():
            return _invalid_request(ser.errors)

        raw_input = dict(ser.validated_data)
        raw_input["constraints"] = dict(raw_input["constraints"])
        raw_input["preferences"] = dict(raw_input.get("preferences") or {})
        raw_input["user_id"] = _request_user_id(request, raw_input.get("user_id"))

        try:
            result = run_workout_generation_pipeline(raw_input, get_services())
        except SafetyEngineError as e:
            return _domain_error_response(e)

        logger.info(f"[PIPELINE] request {result.request_id} -> {result.plan.generated_by} plan {result.plan.id}")
        response = Response(result.plan.model_dump(mode="json"), status=status.HTTP_201_CREATED)
        response["X-Request-ID"] = result.request_id
        if result.warnings:
            response["X-Workout-Warnings"] = ",".join(w["type"] for w in result.warnings)
        return response


class SafetyValidateView(APIView):
    def post(self, request):
        ser = SafetyValidateSerializer(data=request.data)
        if not ser.is_valid():
            return _invalid_request(ser.errors)

        payload = dict(ser.validated_data)
        payload["user_id"] = _request_user_id(request, payload.get("user_id"))

        try:
            report = run_safety_validation(payload, get_services())
        except SafetyEngineError as e:
            return _domain_error_response(e)

        return Response(report.model_dump(mode="json"), status=status.HTTP_200_OK)


class EligibleExercisesView(APIView):
    def get(self, request):
        ser = EligibleQuerySerializer(data=request.query_params)
        if not ser.is_valid():
            return _invalid_request(ser.errors)

        services = get_services()
        try:
            constraints = normalize(ser.to_constraints(), None, services.envelope)
            eligible = get_eligible(constraints, services.library, services.envelope, ser.avoid_list())
        except SafetyEngineError as e:
            return _domain_error_response(e)

        results = [ex.model_dump(mode="json") for ex in eligible]
        return Response({
            "constraints": constraints.model_dump(mode="json"),
            "count": len(results),
            "results": results,
        })
