import logging

from django.db.models import Sum
from drf_yasg import openapi
from drf_yasg.utils import swagger_auto_schema
from rest_framework import status
from rest_framework.permissions import AllowAny, IsAuthenticated
from rest_framework.response import Response
from rest_framework.views import APIView

from apps.users import services as user_services
from apps.users.serializers import WalletTransactionSerializer
from core.exceptions import DomainError, error_response
from core.utils import IsEmployer, paginate
from . import services
from .gateway import verify_signature
from .serializers import (
    CreateOrderSerializer, MilestoneOrderSerializer, PaymentOrderSerializer,
    VerifyPaymentSerializer, WithdrawSerializer,
)

logger = logging.getLogger(__name__)


def _order_response(result, status_code=status.HTTP_201_CREATED):
    if not result.success:
        return error_response(result.error)
    return Response({
        "message": result.message,
        "order": PaymentOrderSerializer(result.data['order']).data,
        "checkout": result.data['checkout'],
    }, status=status_code)


class CreateOrderView(APIView):
    permission_classes = [IsAuthenticated, IsEmployer]

    @swagger_auto_schema(
        operation_description="Create a payment order at the gateway for a contract.",
        request_body=CreateOrderSerializer,
        responses={
            201: PaymentOrderSerializer,
            400: 'Bad Request',
            403: 'Forbidden',
            404: 'Not Found',
            503: 'Payment service not configured',
            504: 'Gateway timeout, order left pending',
        }
    )
    def post(self, request):
        serializer = CreateOrderSerializer(data=request.data)
        if not serializer.is_valid():
            return Response(serializer.errors, status=status.HTTP_400_BAD_REQUEST)
        data = serializer.validated_data
        return _order_response(services.create_order(
            data['contract_id'], request.user, data['amount'], data['type'], data['description']
        ))


class MilestoneOrderView(APIView):
    permission_classes = [IsAuthenticated, IsEmployer]

    @swagger_auto_schema(
        operation_description="Create a payment order for a completed milestone.",
        request_body=MilestoneOrderSerializer,
        responses={201: PaymentOrderSerializer, 400: 'Milestone not completed', 404: 'Milestone not found'}
    )
    def post(self, request, contract_id):
        serializer = MilestoneOrderSerializer(data=request.data)
        if not serializer.is_valid():
            return Response(serializer.errors, status=status.HTTP_400_BAD_REQUEST)
        data = serializer.validated_data
        return _order_response(services.create_milestone_order(
            contract_id, request.user, data['milestone_index'], data['amount']
        ))


class VerifyPaymentView(APIView):
    permission_classes = [IsAuthenticated, IsEmployer]

    @swagger_auto_schema(
        operation_description="Verify an order with the gateway and record the payment once it completed.",
        request_body=VerifyPaymentSerializer,
        responses={200: PaymentOrderSerializer, 400: 'Payment failed', 504: 'Gateway timeout, order left pending'}
    )
    def post(self, request):
        serializer = VerifyPaymentSerializer(data=request.data)
        if not serializer.is_valid():
            return Response(serializer.errors, status=status.HTTP_400_BAD_REQUEST)
        result = services.confirm(serializer.validated_data['tx_ref'], actor=request.user)
        if not result.success:
            return error_response(result.error)
        return Response({"message": result.message, "order": PaymentOrderSerializer(result.data).data})


class PaymentCallbackView(APIView):
    """Gateway webhook. Authenticated by an HMAC-SHA256 signature of the raw body."""
    authentication_classes = []
    permission_classes = [AllowAny]

    @swagger_auto_schema(
        operation_description="Payment gateway webhook.",
        manual_parameters=[
            openapi.Parameter('X-Payment-Signature', openapi.IN_HEADER, type=openapi.TYPE_STRING, required=True),
        ],
        responses={200: 'Processed', 401: 'Invalid webhook signature', 503: 'Webhook secret not configured'}
    )
    def post(self, request):
        try:
            valid = verify_signature(request.body, request.headers.get('X-Payment-Signature'))
        except DomainError as e:
            return error_response(e)
        if not valid:
            logger.error('Invalid webhook signature')
            return Response({'error': 'Invalid webhook signature'}, status=status.HTTP_401_UNAUTHORIZED)

        tx_ref = request.data.get('tx_ref')
        if not tx_ref:
            return Response({'error': 'tx_ref is required'}, status=status.HTTP_400_BAD_REQUEST)
        logger.info(f"Webhook received for {tx_ref} (reported status: {request.data.get('status')})")
        result = services.confirm(tx_ref)
        if not result.success:
            return error_response(result.error)
        return Response({'message': result.message, 'status': result.data.status})


class ContractPaymentsView(APIView):
    permission_classes = [IsAuthenticated]

    def get(self, request, contract_id):
        result = services.contract_payments(request.user, contract_id)
        if not result.success:
            return error_response(result.error)
        contract = result.data
        return Response({
            "payments": contract.payments,
            "total_paid": contract.total_paid,
            "total_amount": contract.amount,
            "payment_status": contract.payment_status,
            "orders": PaymentOrderSerializer(contract.payment_orders.all(), many=True).data,
        })


class PaymentHistoryView(APIView):
    permission_classes = [IsAuthenticated]

    @swagger_auto_schema(
        manual_parameters=[
            openapi.Parameter('page', openapi.IN_QUERY, type=openapi.TYPE_INTEGER),
            openapi.Parameter('limit', openapi.IN_QUERY, type=openapi.TYPE_INTEGER),
        ],
        responses={200: WalletTransactionSerializer(many=True)}
    )
    def get(self, request):
        entries = request.user.wallet_transactions.all()
        page, meta = paginate(entries, request, default_limit=20)
        credited = entries.filter(type='credit').aggregate(total=Sum('amount'))['total'] or 0
        return Response({
            "transactions": WalletTransactionSerializer(page, many=True).data,
            "balance": request.user.wallet_balance,
            "total_credited": credited,
            **meta,
        })


class WithdrawView(APIView):
    permission_classes = [IsAuthenticated]

    @swagger_auto_schema(
        operation_description="Withdraw from the wallet balance.",
        request_body=WithdrawSerializer,
        responses={200: 'New balance', 400: 'Insufficient balance'}
    )
    def post(self, request):
        serializer = WithdrawSerializer(data=request.data)
        if not serializer.is_valid():
            return Response(serializer.errors, status=status.HTTP_400_BAD_REQUEST)
        data = serializer.validated_data
        result = user_services.withdraw(request.user.pk, data['amount'], data['bank_details'])
        if not result.success:
            return error_response(result.error)
        return Response({
            "message": "Withdrawal processed successfully",
            "new_balance": result.data['new_balance'],
            "withdrawal_amount": result.data['withdrawal_amount'],
            "transaction": WalletTransactionSerializer(result.data['transaction']).data,
        })
