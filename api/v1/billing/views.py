"""
Billing views for the Club Manager API.
"""
from rest_framework import mixins, status, viewsets
from rest_framework.permissions import IsAuthenticated
from rest_framework.response import Response
from rest_framework.views import APIView
from drf_spectacular.utils import extend_schema, OpenApiParameter

from apps.accounts.exceptions import MemberNotFound
from apps.accounts.models import Member
from apps.billing.models import Payment
from apps.billing.services import (
    discounted_fee,
    generate_monthly_dues,
    get_base_fee,
    get_discount_percent,
    outstanding_charges,
    process_payment,
    set_base_fee,
    unpaid_dues,
)
from api.pagination import StandardResultsPagination
from api.permissions import IsClubAdmin, get_member

from .serializers import (
    BillingSettingsSerializer,
    GenerateDuesSerializer,
    PaymentCreateSerializer,
    PaymentSerializer,
)


def target_member(request):
    """
    The member a billing request is about: the caller, or for
    administrators the member named by ``?member=``.
    """
    member = get_member(request)
    member_id = request.query_params.get('member')
    if member_id and member is not None and member.is_club_admin:
        target = Member.objects.filter(pk=member_id).first() if member_id.isdigit() else None
        if target is None:
            raise MemberNotFound(field='member')
        return target
    if member is None:
        raise MemberNotFound(field='member')
    return member


def settings_payload():
    base_fee = get_base_fee()
    return {
        'base_fee': base_fee,
        'discount_percent': int(get_discount_percent()),
        'family_fee': discounted_fee(base_fee),
    }


class BillingSettingsView(APIView):
    """
    Club-wide base fee.
    """
    permission_classes = [IsAuthenticated, IsClubAdmin]

    @extend_schema(summary="Get billing settings")
    def get(self, request):
        return Response(settings_payload())

    @extend_schema(summary="Update the base monthly fee", request=BillingSettingsSerializer)
    def patch(self, request):
        serializer = BillingSettingsSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        set_base_fee(serializer.validated_data['base_fee'])
        return Response(settings_payload())


class GenerateDuesView(APIView):
    permission_classes = [IsAuthenticated, IsClubAdmin]

    @extend_schema(summary="Generate the monthly dues of a period", request=GenerateDuesSerializer)
    def post(self, request):
        serializer = GenerateDuesSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        created = generate_monthly_dues(**serializer.validated_data)
        return Response({'created': created, **serializer.validated_data},
                        status=status.HTTP_201_CREATED)


class UnpaidDuesView(APIView):
    """
    Unpaid dues of a member, or of the whole family group for family plans.
    """
    permission_classes = [IsAuthenticated]

    @extend_schema(
        summary="List unpaid dues",
        parameters=[OpenApiParameter(name='member', description='Member id (administrators only)',
                                     required=False, type=int)]
    )
    def get(self, request):
        member = target_member(request)
        dues = unpaid_dues(member)
        return Response({
            'member_id': member.pk,
            'total': sum(d['amount'] for d in dues),
            'dues': dues,
        })


class DebtsView(APIView):
    """
    Every charge of a member (dues, practices and court reservations).
    """
    permission_classes = [IsAuthenticated]

    @extend_schema(
        summary="List charges and their payment status",
        parameters=[
            OpenApiParameter(name='member', description='Member id (administrators only)',
                             required=False, type=int),
            OpenApiParameter(name='status', description='PAGADO or PENDIENTE', required=False),
        ]
    )
    def get(self, request):
        member = target_member(request)
        charges = outstanding_charges(member)
        status_filter = request.query_params.get('status')
        if status_filter:
            charges = [c for c in charges if c['status'] == status_filter.upper()]
        return Response({
            'member_id': member.pk,
            'pending_total': sum(c['amount'] for c in charges if c['status'] == Payment.STATUS_PENDING),
            'charges': charges,
        })


class PaymentViewSet(mixins.ListModelMixin,
                     mixins.RetrieveModelMixin,
                     viewsets.GenericViewSet):
    """
    Payment history and card payments.
    """
    serializer_class = PaymentSerializer
    permission_classes = [IsAuthenticated]
    pagination_class = StandardResultsPagination

    def get_queryset(self):
        member = get_member(self.request)
        queryset = Payment.objects.select_related('member')
        if member is None:
            return queryset.none()
        if member.is_club_admin:
            member_id = self.request.query_params.get('member')
            if member_id:
                queryset = queryset.filter(member_id=member_id)
            return queryset
        return queryset.filter(member=member)

    @extend_schema(summary="List payments")
    def list(self, request, *args, **kwargs):
        queryset = self.get_queryset()
        status_filter = request.query_params.get('status')
        if status_filter:
            queryset = queryset.filter(status=status_filter.upper())
        page = self.paginate_queryset(queryset)
        if page is not None:
            return self.get_paginated_response(PaymentSerializer(page, many=True).data)
        return Response(PaymentSerializer(queryset, many=True).data)

    @extend_schema(summary="Get a payment")
    def retrieve(self, request, *args, **kwargs):
        return super().retrieve(request, *args, **kwargs)

    @extend_schema(
        summary="Pay a charge by card",
        description="Test cards: 4242 is approved; 0002 and 0000 are declined (402).",
        request=PaymentCreateSerializer,
        responses={201: PaymentSerializer},
    )
    def create(self, request, *args, **kwargs):
        member = get_member(request)
        if member is None:
            raise MemberNotFound(field='member')
        serializer = PaymentCreateSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        payment = process_payment(member, **serializer.validated_data)
        return Response(PaymentSerializer(payment).data, status=status.HTTP_201_CREATED)
