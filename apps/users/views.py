import logging

from django.contrib.auth import get_user_model
from drf_yasg import openapi
from drf_yasg.utils import swagger_auto_schema
from rest_framework import status
from rest_framework.authtoken.models import Token
from rest_framework.permissions import AllowAny, IsAuthenticated
from rest_framework.response import Response
from rest_framework.views import APIView

from core.exceptions import error_response
from core.utils import IsVerified, IsWorker, paginate
from . import services
from .serializers import (
    CertifySkillSerializer, EducationUpdateSerializer, ExperienceUpdateSerializer,
    LoginSerializer, ProfileSerializer, RatingSerializer, RegisterSerializer,
    SkillsUpdateSerializer, UserSerializer, VerifyAccountSerializer,
    WalletTransactionSerializer,
)

User = get_user_model()
logger = logging.getLogger(__name__)


class AuthRegisterView(APIView):
    permission_classes = [AllowAny]

    @swagger_auto_schema(
        operation_description="Register a worker or employer account. A verification code is sent by email/SMS.",
        request_body=RegisterSerializer,
        responses={201: ProfileSerializer, 400: 'Bad Request'}
    )
    def post(self, request):
        serializer = RegisterSerializer(data=request.data)
        if serializer.is_valid():
            user = serializer.save()
            token, created = Token.objects.get_or_create(user=user)
            return Response({
                "token": token.key,
                "user": ProfileSerializer(user).data
            }, status=status.HTTP_201_CREATED)
        return Response(serializer.errors, status=status.HTTP_400_BAD_REQUEST)


class AuthVerifyView(APIView):
    permission_classes = [AllowAny]

    @swagger_auto_schema(
        operation_description="Confirm the verification code sent at registration.",
        request_body=VerifyAccountSerializer,
        responses={200: ProfileSerializer, 400: 'Bad Request'}
    )
    def post(self, request):
        serializer = VerifyAccountSerializer(data=request.data)
        if serializer.is_valid():
            user = serializer.save()
            return Response(ProfileSerializer(user).data)
        return Response(serializer.errors, status=status.HTTP_400_BAD_REQUEST)


class AuthLoginView(APIView):
    permission_classes = [AllowAny]

    @swagger_auto_schema(
        request_body=LoginSerializer,
        responses={
            200: openapi.Response(
                description='Login successful',
                schema=openapi.Schema(
                    type=openapi.TYPE_OBJECT,
                    properties={
                        'token': openapi.Schema(type=openapi.TYPE_STRING),
                        'user': openapi.Schema(type=openapi.TYPE_OBJECT),
                    }
                )
            ),
            400: 'Bad Request'
        }
    )
    def post(self, request):
        serializer = LoginSerializer(data=request.data)
        if serializer.is_valid():
            user = serializer.save()
            token, created = Token.objects.get_or_create(user=user)
            return Response({
                "token": token.key,
                "user": ProfileSerializer(user).data
            }, status=status.HTTP_200_OK)
        return Response(serializer.errors, status=status.HTTP_400_BAD_REQUEST)


class MeView(APIView):
    permission_classes = [IsAuthenticated]

    @swagger_auto_schema(responses={200: ProfileSerializer})
    def get(self, request):
        return Response(ProfileSerializer(request.user).data)

    @swagger_auto_schema(
        operation_description="Update profile fields, including the blockchain address used for certifications.",
        request_body=ProfileSerializer,
        responses={200: ProfileSerializer, 400: 'Bad Request'}
    )
    def put(self, request):
        serializer = ProfileSerializer(request.user, data=request.data, partial=True)
        if serializer.is_valid():
            serializer.save()
            return Response({"message": "Profile updated successfully", "user": serializer.data})
        return Response(serializer.errors, status=status.HTTP_400_BAD_REQUEST)


class WorkerListView(APIView):
    permission_classes = [IsAuthenticated]

    @swagger_auto_schema(
        operation_description="Browse active workers, best rated first.",
        manual_parameters=[
            openapi.Parameter('skills', openapi.IN_QUERY, type=openapi.TYPE_STRING, description='Comma separated skill names'),
            openapi.Parameter('location', openapi.IN_QUERY, type=openapi.TYPE_STRING),
            openapi.Parameter('min_rating', openapi.IN_QUERY, type=openapi.TYPE_NUMBER),
            openapi.Parameter('page', openapi.IN_QUERY, type=openapi.TYPE_INTEGER),
            openapi.Parameter('limit', openapi.IN_QUERY, type=openapi.TYPE_INTEGER),
        ],
        responses={200: UserSerializer(many=True)}
    )
    def get(self, request):
        workers = User.objects.filter(role='worker', is_active=True).order_by('-rating_average', 'id')
        location = request.query_params.get('location')
        if location:
            workers = workers.filter(location__icontains=location)
        min_rating = request.query_params.get('min_rating')
        if min_rating:
            try:
                workers = workers.filter(rating_average__gte=float(min_rating))
            except ValueError:
                return Response({"error": "min_rating must be a number"}, status=status.HTTP_400_BAD_REQUEST)
        skills = request.query_params.get('skills')
        if skills:
            wanted = {s.strip().lower() for s in skills.split(',') if s.strip()}
            # Skills live in a JSON list; filter in Python to stay portable across backends
            workers = [
                w for w in workers
                if wanted & {skill['name'].lower() for skill in w.skills}
            ]
        page, meta = paginate(workers, request)
        return Response({"workers": UserSerializer(page, many=True).data, **meta})


class WorkerDetailView(APIView):
    permission_classes = [IsAuthenticated]

    @swagger_auto_schema(responses={200: UserSerializer, 404: 'Not Found'})
    def get(self, request, user_id):
        worker = User.objects.filter(pk=user_id, role='worker', is_active=True).first()
        if not worker:
            return Response({"error": "Worker not found"}, status=status.HTTP_404_NOT_FOUND)
        return Response(UserSerializer(worker).data)


class SkillsUpdateView(APIView):
    permission_classes = [IsAuthenticated, IsWorker]

    @swagger_auto_schema(
        operation_description="Replace the worker's skill list. Certification data of kept skills is preserved.",
        request_body=SkillsUpdateSerializer,
        responses={200: SkillsUpdateSerializer, 400: 'Bad Request'}
    )
    def put(self, request):
        serializer = SkillsUpdateSerializer(data=request.data)
        if not serializer.is_valid():
            return Response(serializer.errors, status=status.HTTP_400_BAD_REQUEST)
        result = services.update_skills(request.user, serializer.validated_data['skills'])
        if not result.success:
            return error_response(result.error)
        return Response({"message": "Skills updated successfully", "skills": result.data})


class ExperienceUpdateView(APIView):
    permission_classes = [IsAuthenticated, IsWorker]

    @swagger_auto_schema(request_body=ExperienceUpdateSerializer, responses={200: ExperienceUpdateSerializer})
    def put(self, request):
        serializer = ExperienceUpdateSerializer(data=request.data)
        if not serializer.is_valid():
            return Response(serializer.errors, status=status.HTTP_400_BAD_REQUEST)
        request.user.experience = serializer.validated_data['experience']
        request.user.save(update_fields=['experience'])
        return Response({"message": "Experience updated successfully", "experience": request.user.experience})


class EducationUpdateView(APIView):
    permission_classes = [IsAuthenticated, IsWorker]

    @swagger_auto_schema(request_body=EducationUpdateSerializer, responses={200: EducationUpdateSerializer})
    def put(self, request):
        serializer = EducationUpdateSerializer(data=request.data)
        if not serializer.is_valid():
            return Response(serializer.errors, status=status.HTTP_400_BAD_REQUEST)
        request.user.education = serializer.validated_data['education']
        request.user.save(update_fields=['education'])
        return Response({"message": "Education updated successfully", "education": request.user.education})


class CertifySkillView(APIView):
    permission_classes = [IsAuthenticated, IsWorker, IsVerified]

    @swagger_auto_schema(
        operation_description="Attach a certification issued elsewhere (hash + transaction id) to a skill.",
        request_body=CertifySkillSerializer,
        responses={200: 'Skill certification added', 400: 'Bad Request'}
    )
    def post(self, request):
        serializer = CertifySkillSerializer(data=request.data)
        if not serializer.is_valid():
            return Response(serializer.errors, status=status.HTTP_400_BAD_REQUEST)
        data = serializer.validated_data
        result = services.certify_skill(request.user.pk, data['skill_name'], data['certificate_hash'], data['tx_id'])
        if not result.success:
            return error_response(result.error)
        return Response({"message": "Skill certification added successfully", "skill": result.data})


class WalletView(APIView):
    permission_classes = [IsAuthenticated]

    def get(self, request):
        recent = request.user.wallet_transactions.all()[:5]
        return Response({
            "balance": request.user.wallet_balance,
            "recent_transactions": WalletTransactionSerializer(recent, many=True).data,
        })


class WalletTransactionsView(APIView):
    permission_classes = [IsAuthenticated]

    @swagger_auto_schema(responses={200: WalletTransactionSerializer(many=True)})
    def get(self, request):
        page, meta = paginate(request.user.wallet_transactions.all(), request, default_limit=20)
        return Response({"transactions": WalletTransactionSerializer(page, many=True).data, **meta})


class RateUserView(APIView):
    permission_classes = [IsAuthenticated]

    @swagger_auto_schema(
        operation_description="Add a rating to a user's aggregate score.",
        request_body=RatingSerializer,
        responses={200: 'New rating', 400: 'Bad Request', 404: 'Not Found'}
    )
    def post(self, request, user_id):
        serializer = RatingSerializer(data=request.data)
        if not serializer.is_valid():
            return Response(serializer.errors, status=status.HTTP_400_BAD_REQUEST)
        result = services.rate_user(user_id, request.user, serializer.validated_data['rating'])
        if not result.success:
            return error_response(result.error)
        return Response({"message": "Rating submitted successfully", "new_rating": result.data})
