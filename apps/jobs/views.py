import logging

from drf_yasg import openapi
from drf_yasg.utils import swagger_auto_schema
from rest_framework import status
from rest_framework.permissions import IsAuthenticated
from rest_framework.response import Response
from rest_framework.views import APIView

from apps.contracts.serializers import ContractSerializer
from core.exceptions import error_response
from core.utils import IsEmployer, IsWorker, paginate
from . import services
from .models import Job
from .serializers import (
    ApplicationDecisionSerializer, ApplySerializer, CloseJobSerializer,
    JobSerializer, JobWriteSerializer,
)

logger = logging.getLogger(__name__)


def _job_response(request, job, status_code=status.HTTP_200_OK, message=None):
    data = JobSerializer(job, context={'request': request}).data
    if message:
        data = {"message": message, "job": data}
    return Response(data, status=status_code)


class JobListCreateView(APIView):

    def get_permissions(self):
        if self.request.method == 'POST':
            return [IsAuthenticated(), IsEmployer()]
        return [IsAuthenticated()]

    @swagger_auto_schema(
        operation_description="List active jobs, newest first.",
        manual_parameters=[
            openapi.Parameter('status', openapi.IN_QUERY, type=openapi.TYPE_STRING, description="Defaults to 'open'"),
            openapi.Parameter('category', openapi.IN_QUERY, type=openapi.TYPE_STRING),
            openapi.Parameter('skills', openapi.IN_QUERY, type=openapi.TYPE_STRING, description='Comma separated skill names'),
            openapi.Parameter('min_budget', openapi.IN_QUERY, type=openapi.TYPE_NUMBER),
            openapi.Parameter('max_budget', openapi.IN_QUERY, type=openapi.TYPE_NUMBER),
            openapi.Parameter('location', openapi.IN_QUERY, type=openapi.TYPE_STRING),
            openapi.Parameter('page', openapi.IN_QUERY, type=openapi.TYPE_INTEGER),
            openapi.Parameter('limit', openapi.IN_QUERY, type=openapi.TYPE_INTEGER),
        ],
        responses={200: JobSerializer(many=True), 401: 'Unauthorized'}
    )
    def get(self, request):
        params = request.query_params
        jobs = Job.objects.filter(is_active=True, status=params.get('status', 'open')).select_related('employer')
        if params.get('category'):
            jobs = jobs.filter(category=params['category'])
        if params.get('location'):
            jobs = jobs.filter(location__icontains=params['location'])
        try:
            if params.get('min_budget'):
                jobs = jobs.filter(budget_min__gte=float(params['min_budget']))
            if params.get('max_budget'):
                jobs = jobs.filter(budget_max__lte=float(params['max_budget']))
        except ValueError:
            return Response({"error": "Budget filters must be numbers"}, status=status.HTTP_400_BAD_REQUEST)
        if params.get('skills'):
            wanted = {s.strip().lower() for s in params['skills'].split(',') if s.strip()}
            jobs = [job for job in jobs if wanted & {s['name'].lower() for s in job.required_skills}]
        page, meta = paginate(jobs, request)
        return Response({"jobs": JobSerializer(page, many=True, context={'request': request}).data, **meta})

    @swagger_auto_schema(
        operation_description="Post a new job. It starts open with no applications.",
        request_body=JobWriteSerializer,
        responses={
            201: JobSerializer,
            400: 'Bad Request',
            401: 'Unauthorized',
            403: 'Forbidden'
        }
    )
    def post(self, request):
        serializer = JobWriteSerializer(data=request.data)
        if not serializer.is_valid():
            return Response(serializer.errors, status=status.HTTP_400_BAD_REQUEST)
        result = services.create_job(request.user, serializer.validated_data)
        if not result.success:
            return error_response(result.error)
        return _job_response(request, result.data, status.HTTP_201_CREATED, result.message)


class JobDetailView(APIView):
    permission_classes = [IsAuthenticated]

    @swagger_auto_schema(
        operation_description="Job detail. Each call counts as a view.",
        responses={200: JobSerializer, 404: 'Not Found'}
    )
    def get(self, request, job_id):
        result = services.view_job(job_id)
        if not result.success:
            return error_response(result.error)
        return _job_response(request, result.data)

    @swagger_auto_schema(
        operation_description="Update a job. Only the owner, and only while it is open.",
        request_body=JobWriteSerializer,
        responses={200: JobSerializer, 400: 'Bad Request', 403: 'Forbidden', 404: 'Not Found'}
    )
    def put(self, request, job_id):
        serializer = JobWriteSerializer(data=request.data, partial=True)
        if not serializer.is_valid():
            return Response(serializer.errors, status=status.HTTP_400_BAD_REQUEST)
        result = services.update_job(job_id, request.user, dict(serializer.validated_data))
        if not result.success:
            return error_response(result.error)
        return _job_response(request, result.data, message="Job updated successfully")

    @swagger_auto_schema(
        operation_description="Delete a job. Only the owner, and only while it is open.",
        responses={200: 'Job deleted', 400: 'Bad Request', 403: 'Forbidden', 404: 'Not Found'}
    )
    def delete(self, request, job_id):
        result = services.delete_job(job_id, request.user)
        if not result.success:
            return error_response(result.error)
        return Response({"message": result.message})


class JobApplyView(APIView):
    permission_classes = [IsAuthenticated, IsWorker]

    @swagger_auto_schema(
        operation_description="Apply to an open job. A worker may hold one live application per job.",
        request_body=ApplySerializer,
        responses={
            201: JobSerializer,
            400: openapi.Response('Bad Request', openapi.Schema(
                type=openapi.TYPE_OBJECT,
                properties={
                    'error': openapi.Schema(type=openapi.TYPE_STRING),
                    'message': openapi.Schema(type=openapi.TYPE_STRING),
                }
            )),
            401: openapi.Response('Unauthorized'),
            403: openapi.Response('Forbidden'),
            404: openapi.Response('Not Found'),
            409: openapi.Response('Concurrent update, retry'),
        }
    )
    def post(self, request, job_id):
        serializer = ApplySerializer(data=request.data)
        if not serializer.is_valid():
            return Response(serializer.errors, status=status.HTTP_400_BAD_REQUEST)
        data = serializer.validated_data
        result = services.apply(job_id, request.user, data['proposal'], data['bid_amount'], data['estimated_duration'])
        if not result.success:
            return error_response(result.error)
        return _job_response(request, result.data, status.HTTP_201_CREATED, "Application submitted successfully")


class JobWithdrawView(APIView):
    permission_classes = [IsAuthenticated, IsWorker]

    @swagger_auto_schema(
        operation_description="Withdraw a pending application. The worker may apply again later.",
        responses={200: JobSerializer, 400: 'Bad Request', 404: 'Not Found'}
    )
    def post(self, request, job_id):
        result = services.withdraw(job_id, request.user)
        if not result.success:
            return error_response(result.error)
        return _job_response(request, result.data, message="Application withdrawn")


class ApplicationDecisionView(APIView):
    permission_classes = [IsAuthenticated, IsEmployer]

    @swagger_auto_schema(
        operation_description=(
            "Accept or reject a worker's application. Accepting moves the job to "
            "in-progress and drafts the contract; other applications stay pending."
        ),
        request_body=ApplicationDecisionSerializer,
        responses={
            200: 'Application status updated',
            400: 'Bad Request',
            403: 'Forbidden',
            404: 'Not Found',
            409: 'Concurrent update, retry',
            500: 'Job accepted but contract not created (flagged for reconciliation)',
        }
    )
    def put(self, request, job_id, worker_id):
        serializer = ApplicationDecisionSerializer(data=request.data)
        if not serializer.is_valid():
            return Response(serializer.errors, status=status.HTTP_400_BAD_REQUEST)
        data = serializer.validated_data
        terms = {}
        if data['status'] == 'accepted':
            terms = {'amount': data['amount'], 'duration': data['duration'], 'milestones': data['milestones']}
        result = services.decide(job_id, request.user, worker_id, data['status'], **terms)
        if not result.success:
            return error_response(result.error)
        contract = result.data['contract']
        return Response({
            "message": result.message,
            "job": JobSerializer(result.data['job'], context={'request': request}).data,
            "contract": ContractSerializer(contract).data if contract else None,
        })


class JobCloseView(APIView):
    permission_classes = [IsAuthenticated, IsEmployer]

    @swagger_auto_schema(
        operation_description="Close a job as completed (from in-progress) or cancelled (from open or in-progress).",
        request_body=CloseJobSerializer,
        responses={200: JobSerializer, 400: 'Bad Request', 403: 'Forbidden', 404: 'Not Found'}
    )
    def post(self, request, job_id):
        serializer = CloseJobSerializer(data=request.data)
        if not serializer.is_valid():
            return Response(serializer.errors, status=status.HTTP_400_BAD_REQUEST)
        result = services.close(job_id, request.user, serializer.validated_data['outcome'])
        if not result.success:
            return error_response(result.error)
        return _job_response(request, result.data, message=f"Job {serializer.validated_data['outcome']}")


class EmployerJobsView(APIView):
    permission_classes = [IsAuthenticated, IsEmployer]

    @swagger_auto_schema(
        manual_parameters=[
            openapi.Parameter('status', openapi.IN_QUERY, type=openapi.TYPE_STRING),
            openapi.Parameter('page', openapi.IN_QUERY, type=openapi.TYPE_INTEGER),
            openapi.Parameter('limit', openapi.IN_QUERY, type=openapi.TYPE_INTEGER),
        ],
        responses={200: JobSerializer(many=True)}
    )
    def get(self, request):
        jobs = Job.objects.filter(employer=request.user).select_related('employer')
        if request.query_params.get('status'):
            jobs = jobs.filter(status=request.query_params['status'])
        page, meta = paginate(jobs, request)
        return Response({"jobs": JobSerializer(page, many=True, context={'request': request}).data, **meta})


class WorkerApplicationsView(APIView):
    permission_classes = [IsAuthenticated, IsWorker]

    @swagger_auto_schema(
        operation_description="Jobs the authenticated worker has applied to, with their own application.",
        responses={200: 'Jobs with user_application'}
    )
    def get(self, request):
        # Applications live in the job's JSON column; filter in Python to stay portable across backends
        jobs = [
            job for job in Job.objects.filter(applications_count__gt=0).select_related('employer')
            if job.application_for(request.user.pk) is not None
        ]
        page, meta = paginate(jobs, request)
        return Response({
            "jobs": [
                {
                    **JobSerializer(job, context={'request': request}).data,
                    "user_application": job.application_for(request.user.pk),
                }
                for job in page
            ],
            **meta,
        })
