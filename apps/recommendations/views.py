import logging

from django.conf import settings
from django.contrib.auth import get_user_model
from drf_yasg import openapi
from drf_yasg.utils import swagger_auto_schema
from rest_framework import status
from rest_framework.permissions import IsAuthenticated
from rest_framework.response import Response
from rest_framework.views import APIView

from apps.jobs.models import Job
from apps.jobs.serializers import JobSerializer
from apps.users.serializers import UserSerializer
from core.utils import IsEmployer, IsWorker
from .engine import MatchEngine

logger = logging.getLogger(__name__)
User = get_user_model()


class WorkerJobRecommendationView(APIView):
    permission_classes = [IsAuthenticated, IsWorker]

    @swagger_auto_schema(
        operation_description="Open jobs ranked by skill overlap with the authenticated worker.",
        responses={
            200: openapi.Response(
                description='Recommended jobs',
                schema=openapi.Schema(
                    type=openapi.TYPE_ARRAY,
                    items=openapi.Schema(
                        type=openapi.TYPE_OBJECT,
                        properties={
                            'job': openapi.Schema(type=openapi.TYPE_OBJECT),
                            'similarity_score': openapi.Schema(type=openapi.TYPE_INTEGER),
                        }
                    )
                )
            ),
            401: 'Unauthorized',
            403: 'Forbidden'
        }
    )
    def get(self, request):
        candidates = Job.objects.filter(status='open', is_active=True).exclude(employer=request.user)
        matches = MatchEngine.recommend(request.user.skills, list(candidates), limit=settings.RECOMMENDATION_LIMIT)
        if not matches:
            logger.info(f"No matching jobs for worker {request.user.pk}")
        return Response([
            {'job': JobSerializer(job, context={'request': request}).data, 'similarity_score': score}
            for job, score in matches
        ])


class JobWorkerRecommendationView(APIView):
    permission_classes = [IsAuthenticated, IsEmployer]

    @swagger_auto_schema(
        operation_description="Active workers ranked by skill overlap with one of the employer's jobs.",
        responses={
            200: 'Recommended workers',
            401: 'Unauthorized',
            403: 'Forbidden',
            404: 'Not Found'
        }
    )
    def get(self, request, job_id):
        job = Job.objects.filter(pk=job_id).first()
        if not job:
            return Response({"error": "Job not found"}, status=status.HTTP_404_NOT_FOUND)
        if job.employer_id != request.user.pk:
            logger.warning(f"User {request.user.pk} not authorized to view matches for job {job_id}")
            return Response({"error": "Not authorized to view this job"}, status=status.HTTP_403_FORBIDDEN)
        workers = User.objects.filter(role='worker', is_active=True)
        matches = MatchEngine.recommend_workers(job.required_skills, workers, limit=settings.RECOMMENDATION_LIMIT)
        return Response([
            {'worker': UserSerializer(worker).data, 'similarity_score': score}
            for worker, score in matches
        ])
