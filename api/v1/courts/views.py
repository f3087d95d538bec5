"""
Court and reservation views for the Club Manager API.
"""
from rest_framework import mixins, status, viewsets
from rest_framework.decorators import action
from rest_framework.permissions import IsAuthenticated
from rest_framework.response import Response
from drf_spectacular.utils import extend_schema, OpenApiParameter

from apps.accounts.exceptions import MemberNotFound
from apps.accounts.models import Member
from apps.courts.models import Court, CourtReservation
from apps.courts.services import (
    available_slots,
    cancel_reservation,
    create_court,
    reserve_court,
    update_court,
)
from api.pagination import StandardResultsPagination
from api.permissions import IsClubAdminOrReadOnly, IsSelfOrClubAdmin, get_member

from .serializers import (
    CourtSerializer,
    CourtWriteSerializer,
    ReservationCreateSerializer,
    ReservationSerializer,
    SlotQuerySerializer,
    SlotSerializer,
)


class CourtViewSet(mixins.ListModelMixin,
                   mixins.RetrieveModelMixin,
                   mixins.DestroyModelMixin,
                   viewsets.GenericViewSet):
    """
    Courts are readable by every member and managed by administrators.
    """
    serializer_class = CourtSerializer
    permission_classes = [IsAuthenticated, IsClubAdminOrReadOnly]
    queryset = Court.objects.select_related('practice')
    lookup_value_regex = r'\d+'
    http_method_names = ['get', 'post', 'patch', 'delete', 'head', 'options']

    @extend_schema(
        summary="List courts",
        parameters=[OpenApiParameter(name='court_type', description='FUTBOL_5, FUTBOL or BASQUET',
                                     required=False)]
    )
    def list(self, request, *args, **kwargs):
        queryset = self.get_queryset()
        court_type = request.query_params.get('court_type')
        if court_type:
            queryset = queryset.filter(court_type=court_type.upper())
        return Response(CourtSerializer(queryset, many=True).data)

    @extend_schema(summary="Create a court", request=CourtWriteSerializer,
                   responses={201: CourtSerializer})
    def create(self, request, *args, **kwargs):
        serializer = CourtWriteSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        court = create_court(serializer.validated_data)
        return Response(CourtSerializer(court).data, status=status.HTTP_201_CREATED)

    @extend_schema(summary="Update a court", request=CourtWriteSerializer)
    def partial_update(self, request, *args, **kwargs):
        court = self.get_object()
        serializer = CourtWriteSerializer(data=request.data, partial=True)
        serializer.is_valid(raise_exception=True)
        court = update_court(court, serializer.validated_data)
        return Response(CourtSerializer(court).data)

    @extend_schema(summary="Delete a court")
    def destroy(self, request, *args, **kwargs):
        return super().destroy(request, *args, **kwargs)

    @extend_schema(
        summary="List the slots of a court on a date",
        parameters=[OpenApiParameter(name='date', description='YYYY-MM-DD', required=True)],
        responses={200: SlotSerializer(many=True)},
    )
    @action(detail=True, methods=['get'])
    def slots(self, request, pk=None):
        court = self.get_object()
        query = SlotQuerySerializer(data=request.query_params)
        query.is_valid(raise_exception=True)
        slots = available_slots(court, query.validated_data['date'])
        return Response(SlotSerializer(slots, many=True).data)


class ReservationViewSet(mixins.ListModelMixin,
                         mixins.RetrieveModelMixin,
                         viewsets.GenericViewSet):
    """
    Court reservations. Socios see and book their own slots; administrators
    see every reservation and may book on behalf of a socio.
    """
    serializer_class = ReservationSerializer
    permission_classes = [IsAuthenticated, IsSelfOrClubAdmin]
    pagination_class = StandardResultsPagination
    lookup_value_regex = r'\d+'

    def get_queryset(self):
        member = get_member(self.request)
        queryset = CourtReservation.objects.select_related('court', 'member')
        if member is None:
            return queryset.none()
        if member.is_club_admin:
            court_id = self.request.query_params.get('court')
            if court_id:
                queryset = queryset.filter(court_id=court_id)
            return queryset
        return queryset.filter(member=member)

    @extend_schema(summary="List reservations")
    def list(self, request, *args, **kwargs):
        return super().list(request, *args, **kwargs)

    @extend_schema(summary="Get a reservation")
    def retrieve(self, request, *args, **kwargs):
        return super().retrieve(request, *args, **kwargs)

    @extend_schema(summary="Reserve a court slot", request=ReservationCreateSerializer,
                   responses={201: ReservationSerializer})
    def create(self, request, *args, **kwargs):
        serializer = ReservationCreateSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        data = serializer.validated_data

        member = get_member(request)
        if 'member_id' in data and member.is_club_admin:
            member = Member.objects.filter(pk=data['member_id']).first()
            if member is None:
                raise MemberNotFound(field='member_id')

        reservation = reserve_court(member, data['court'], data['date'], data['start_time'])
        return Response(ReservationSerializer(reservation).data, status=status.HTTP_201_CREATED)

    @extend_schema(summary="Cancel a reservation")
    def destroy(self, request, *args, **kwargs):
        cancel_reservation(self.get_object())
        return Response(status=status.HTTP_204_NO_CONTENT)
