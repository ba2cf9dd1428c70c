import logging

from drf_yasg import openapi
from drf_yasg.utils import swagger_auto_schema
from rest_framework import status
from rest_framework.permissions import IsAuthenticated
from rest_framework.response import Response
from rest_framework.views import APIView

from core.exceptions import DomainError, error_response
from core.utils import IsEmployer, IsSuperuser, IsWorker, paginate
from . import services
from .serializers import (
    AwardContractSerializer, ContractListSerializer, ContractRatingSerializer,
    ContractSerializer, ContractStatusSerializer, DeliverableReviewSerializer,
    DeliverableSerializer, DisputeResolutionSerializer, DisputeSerializer,
    MessageSerializer, MilestoneInputSerializer, MilestoneStatusSerializer,
)

logger = logging.getLogger(__name__)


def _contract_response(result, message, key=None, status_code=status.HTTP_200_OK):
    if not result.success:
        return error_response(result.error)
    contract = ContractSerializer(result.data).data
    if key:
        return Response({"message": message, key: contract[key]}, status=status_code)
    return Response({"message": message, "contract": contract}, status=status_code)


class ContractAwardView(APIView):
    permission_classes = [IsAuthenticated, IsEmployer]

    @swagger_auto_schema(
        operation_description=(
            "Award a contract: accepts the worker's application on an open job and drafts "
            "the contract with the negotiated terms (amount defaults to the bid)."
        ),
        request_body=AwardContractSerializer,
        responses={
            201: ContractSerializer,
            400: 'Bad Request',
            403: 'Forbidden',
            404: 'Not Found',
            409: 'Concurrent update, retry',
            500: 'Job accepted but contract not created (flagged for reconciliation)',
        }
    )
    def post(self, request):
        serializer = AwardContractSerializer(data=request.data)
        if not serializer.is_valid():
            return Response(serializer.errors, status=status.HTTP_400_BAD_REQUEST)
        data = serializer.validated_data
        result = services.award(
            data['job_id'], request.user, data['worker_id'],
            amount=data['amount'], duration=data['duration'], milestones=data['milestones'],
        )
        if not result.success:
            return error_response(result.error)
        return Response({
            "message": result.message,
            "contract": ContractSerializer(result.data['contract']).data,
        }, status=status.HTTP_201_CREATED)


class MyContractsView(APIView):
    permission_classes = [IsAuthenticated]

    @swagger_auto_schema(
        manual_parameters=[
            openapi.Parameter('status', openapi.IN_QUERY, type=openapi.TYPE_STRING),
            openapi.Parameter('page', openapi.IN_QUERY, type=openapi.TYPE_INTEGER),
            openapi.Parameter('limit', openapi.IN_QUERY, type=openapi.TYPE_INTEGER),
        ],
        responses={200: ContractListSerializer(many=True)}
    )
    def get(self, request):
        contracts = services.contracts_for(request.user)
        if request.query_params.get('status'):
            contracts = contracts.filter(status=request.query_params['status'])
        page, meta = paginate(contracts, request)
        return Response({"contracts": ContractListSerializer(page, many=True).data, **meta})


class ContractDetailView(APIView):
    permission_classes = [IsAuthenticated]

    @swagger_auto_schema(responses={200: ContractSerializer, 403: 'Forbidden', 404: 'Not Found'})
    def get(self, request, contract_id):
        try:
            contract = services.get_contract_for(request.user, contract_id)
        except DomainError as e:
            return error_response(e)
        return Response(ContractSerializer(contract).data)


class ContractStatusView(APIView):
    permission_classes = [IsAuthenticated]

    @swagger_auto_schema(
        operation_description="Move the contract along draft -> active <-> paused -> completed, or cancel it.",
        request_body=ContractStatusSerializer,
        responses={200: ContractSerializer, 400: 'Bad Request', 403: 'Forbidden', 404: 'Not Found'}
    )
    def put(self, request, contract_id):
        serializer = ContractStatusSerializer(data=request.data)
        if not serializer.is_valid():
            return Response(serializer.errors, status=status.HTTP_400_BAD_REQUEST)
        result = services.change_status(contract_id, request.user, serializer.validated_data['status'])
        return _contract_response(result, "Contract status updated successfully")


class MilestoneCreateView(APIView):
    permission_classes = [IsAuthenticated, IsEmployer]

    @swagger_auto_schema(
        request_body=MilestoneInputSerializer,
        responses={201: 'Milestones', 400: 'Bad Request', 403: 'Forbidden', 404: 'Not Found'}
    )
    def post(self, request, contract_id):
        serializer = MilestoneInputSerializer(data=request.data)
        if not serializer.is_valid():
            return Response(serializer.errors, status=status.HTTP_400_BAD_REQUEST)
        data = serializer.validated_data
        result = services.add_milestone(
            contract_id, request.user, data['title'], data['description'], data['amount'], data['due_date']
        )
        return _contract_response(result, "Milestone added successfully", 'milestones', status.HTTP_201_CREATED)


class MilestoneStatusView(APIView):
    permission_classes = [IsAuthenticated]

    @swagger_auto_schema(
        operation_description="Set any milestone's status; milestones do not constrain each other.",
        request_body=MilestoneStatusSerializer,
        responses={200: 'Milestones', 400: 'Bad Request', 403: 'Forbidden', 404: 'Not Found'}
    )
    def put(self, request, contract_id, index):
        serializer = MilestoneStatusSerializer(data=request.data)
        if not serializer.is_valid():
            return Response(serializer.errors, status=status.HTTP_400_BAD_REQUEST)
        result = services.set_milestone_status(contract_id, request.user, index, serializer.validated_data['status'])
        return _contract_response(result, "Milestone status updated successfully", 'milestones')


class DeliverableCreateView(APIView):
    permission_classes = [IsAuthenticated, IsWorker]

    @swagger_auto_schema(request_body=DeliverableSerializer, responses={201: 'Deliverables'})
    def post(self, request, contract_id):
        serializer = DeliverableSerializer(data=request.data)
        if not serializer.is_valid():
            return Response(serializer.errors, status=status.HTTP_400_BAD_REQUEST)
        data = serializer.validated_data
        result = services.add_deliverable(contract_id, request.user, data['title'], data['description'], data['file_url'])
        return _contract_response(result, "Deliverable submitted successfully", 'deliverables', status.HTTP_201_CREATED)


class DeliverableReviewView(APIView):
    permission_classes = [IsAuthenticated, IsEmployer]

    @swagger_auto_schema(request_body=DeliverableReviewSerializer, responses={200: 'Deliverables'})
    def put(self, request, contract_id, index):
        serializer = DeliverableReviewSerializer(data=request.data)
        if not serializer.is_valid():
            return Response(serializer.errors, status=status.HTTP_400_BAD_REQUEST)
        data = serializer.validated_data
        result = services.review_deliverable(contract_id, request.user, index, data['approved'], data['feedback'])
        return _contract_response(result, "Deliverable reviewed", 'deliverables')


class ContractMessageView(APIView):
    permission_classes = [IsAuthenticated]

    @swagger_auto_schema(request_body=MessageSerializer, responses={201: 'Messages'})
    def post(self, request, contract_id):
        serializer = MessageSerializer(data=request.data)
        if not serializer.is_valid():
            return Response(serializer.errors, status=status.HTTP_400_BAD_REQUEST)
        data = serializer.validated_data
        result = services.add_message(contract_id, request.user, data['message'], data['type'])
        return _contract_response(result, "Message sent successfully", 'messages', status.HTTP_201_CREATED)


class ContractRateView(APIView):
    permission_classes = [IsAuthenticated]

    @swagger_auto_schema(
        operation_description=(
            "Rate the contract as employer or worker. Rating again replaces your earlier rating. "
            "The other party's profile rating is updated separately through /users/{id}/rate/."
        ),
        request_body=ContractRatingSerializer,
        responses={200: 'Ratings', 400: 'Bad Request', 403: 'Forbidden', 404: 'Not Found'}
    )
    def post(self, request, contract_id):
        serializer = ContractRatingSerializer(data=request.data)
        if not serializer.is_valid():
            return Response(serializer.errors, status=status.HTTP_400_BAD_REQUEST)
        data = serializer.validated_data
        result = services.rate(contract_id, request.user, data['rating'], data['review'])
        return _contract_response(result, "Rating submitted successfully", 'ratings')


class DisputeCreateView(APIView):
    permission_classes = [IsAuthenticated]

    @swagger_auto_schema(
        operation_description="Raise a dispute. The contract becomes disputed whatever its status.",
        request_body=DisputeSerializer,
        responses={201: ContractSerializer, 400: 'Bad Request', 403: 'Forbidden', 404: 'Not Found'}
    )
    def post(self, request, contract_id):
        serializer = DisputeSerializer(data=request.data)
        if not serializer.is_valid():
            return Response(serializer.errors, status=status.HTTP_400_BAD_REQUEST)
        data = serializer.validated_data
        result = services.raise_dispute(contract_id, request.user, data['reason'], data['description'])
        return _contract_response(result, "Dispute raised successfully", status_code=status.HTTP_201_CREATED)


class DisputeResolveView(APIView):
    permission_classes = [IsAuthenticated, IsSuperuser]

    @swagger_auto_schema(
        operation_description=(
            "Resolve a dispute (admin only). When no open dispute remains the contract "
            "moves to target_status."
        ),
        request_body=DisputeResolutionSerializer,
        responses={200: ContractSerializer, 400: 'Bad Request', 403: 'Forbidden', 404: 'Not Found'}
    )
    def post(self, request, contract_id, index):
        serializer = DisputeResolutionSerializer(data=request.data)
        if not serializer.is_valid():
            return Response(serializer.errors, status=status.HTTP_400_BAD_REQUEST)
        data = serializer.validated_data
        result = services.resolve_dispute(contract_id, request.user, index, data['resolution'], data['target_status'])
        return _contract_response(result, "Dispute resolved successfully")
