from drf_yasg.utils import swagger_auto_schema
from rest_framework import status
from rest_framework.permissions import IsAuthenticated
from rest_framework.response import Response
from rest_framework.views import APIView

from core.exceptions import DomainError, error_response
from core.utils import IsVerified, IsWorker
from . import services
from .serializers import BatchCertifySerializer, CertifySerializer, GenerateHashSerializer


class GenerateHashView(APIView):
    permission_classes = [IsAuthenticated, IsWorker]

    @swagger_auto_schema(
        operation_description="Hash certificate evidence for a skill (SHA-256 of content, user, skill and time).",
        request_body=GenerateHashSerializer,
        responses={200: 'Certificate hash', 400: 'Bad Request'}
    )
    def post(self, request):
        serializer = GenerateHashSerializer(data=request.data)
        if not serializer.is_valid():
            return Response(serializer.errors, status=status.HTTP_400_BAD_REQUEST)
        data = serializer.validated_data
        try:
            return Response(services.generate_hash(request.user.pk, data['file_content'], data['skill_name']))
        except DomainError as e:
            return error_response(e)


class CertifyView(APIView):
    permission_classes = [IsAuthenticated, IsWorker, IsVerified]

    @swagger_auto_schema(
        operation_description="Issue a skill certification through the external issuer and store it on the profile.",
        request_body=CertifySerializer,
        responses={200: 'Skill certified', 400: 'Bad Request', 503: 'Not configured', 504: 'Issuer timeout'}
    )
    def post(self, request):
        serializer = CertifySerializer(data=request.data)
        if not serializer.is_valid():
            return Response(serializer.errors, status=status.HTTP_400_BAD_REQUEST)
        data = serializer.validated_data
        result = services.certify(request.user, data['skill_name'], data['certificate_hash'], data['address'] or None)
        if not result.success:
            return error_response(result.error)
        return Response({"message": result.message, **result.data})


class BatchCertifyView(APIView):
    permission_classes = [IsAuthenticated, IsWorker, IsVerified]

    @swagger_auto_schema(request_body=BatchCertifySerializer, responses={200: 'Per-item results'})
    def post(self, request):
        serializer = BatchCertifySerializer(data=request.data)
        if not serializer.is_valid():
            return Response(serializer.errors, status=status.HTTP_400_BAD_REQUEST)
        result = services.batch_certify(request.user, serializer.validated_data['certifications'])
        if not result.success:
            return error_response(result.error)
        return Response({"message": result.message, "results": result.data})


class VerifyCertificationView(APIView):
    permission_classes = [IsAuthenticated]

    def get(self, request, user_id, skill):
        result = services.verify(user_id, skill)
        if not result.success:
            return error_response(result.error)
        return Response(result.data)


class UserCertificationsView(APIView):
    permission_classes = [IsAuthenticated]

    def get(self, request, user_id):
        result = services.user_certifications(user_id)
        if not result.success:
            return error_response(result.error)
        return Response({"certifications": result.data})
