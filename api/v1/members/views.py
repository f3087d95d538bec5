"""
Member, family plan and staff views for the Club Manager API.
"""
from django.db.models import Q
from rest_framework import mixins, status, viewsets
from rest_framework.decorators import action
from rest_framework.permissions import IsAuthenticated
from rest_framework.response import Response
from drf_spectacular.utils import extend_schema, OpenApiParameter

from apps.accounts.exceptions import InvalidMemberData, MemberNotFound
from apps.accounts.models import EmailLog, Member, MemberRemoval
from apps.accounts.services import (
    convert_family_to_individual,
    convert_individual_to_family,
    create_family_group,
    find_member,
    register_admin,
    register_coach,
    register_member,
    remove_member,
    update_member,
)
from apps.billing.services import compute_monthly_fee, family_plan_summary
from api.pagination import LargeResultsPagination, StandardResultsPagination
from api.permissions import IsClubAdmin, IsSelfOrClubAdmin, IsSuperAdmin, get_member

from .serializers import (
    CoachCreateSerializer,
    CoachSerializer,
    ConvertToFamilySerializer,
    EmailLogSerializer,
    FamilyGroupCreateSerializer,
    FamilyGroupResultSerializer,
    MemberRemovalSerializer,
    MemberSerializer,
    MemberUpdateSerializer,
    PersonSerializer,
    RemovalRequestSerializer,
    serialize_changes,
)


def removal_response(result):
    return Response({
        'removed': serialize_changes(result.removed),
        'cascaded': serialize_changes(result.cascaded),
    }, status=status.HTTP_200_OK)


class StaffViewSetMixin:
    """
    Shared plumbing for the member, coach and admin viewsets: typed
    lookups, partial updates and removal through the family plan engine.
    """
    lookup_value_regex = r'\d+'
    http_method_names = ['get', 'post', 'patch', 'delete', 'head', 'options']

    def get_object(self):
        queryset = self.filter_queryset(self.get_queryset())
        try:
            obj = queryset.get(pk=self.kwargs['pk'])
        except Member.DoesNotExist:
            raise MemberNotFound(field='id')
        self.check_object_permissions(self.request, obj)
        return obj

    def partial_update(self, request, *args, **kwargs):
        member = self.get_object()
        serializer = MemberUpdateSerializer(data=request.data, partial=True)
        serializer.is_valid(raise_exception=True)
        member = update_member(member, serializer.validated_data)
        return Response(self.response_serializer_class(member).data)

    def destroy(self, request, *args, **kwargs):
        member = self.get_object()
        if member.pk == getattr(get_member(request), 'pk', None):
            raise InvalidMemberData('You cannot remove your own account.', field='id')
        serializer = RemovalRequestSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        result = remove_member(
            member,
            performed_by=get_member(request),
            reason=serializer.validated_data['reason'],
        )
        return removal_response(result)


class MemberViewSet(StaffViewSetMixin,
                    mixins.ListModelMixin,
                    mixins.RetrieveModelMixin,
                    viewsets.GenericViewSet):
    """
    ViewSet for socios.

    Administrators register, update and remove members and manage family
    plans. Members may read their own record, plan and fee.
    """
    serializer_class = MemberSerializer
    response_serializer_class = MemberSerializer
    pagination_class = LargeResultsPagination

    def get_queryset(self):
        return Member.objects.filter(role=Member.ROLE_SOCIO).select_related('head')

    def get_permissions(self):
        if self.action in ('retrieve', 'plan', 'fee'):
            return [IsAuthenticated(), IsSelfOrClubAdmin()]
        return [IsAuthenticated(), IsClubAdmin()]

    @extend_schema(
        summary="List members",
        parameters=[
            OpenApiParameter(name='membership_type', description='INDIVIDUAL or FAMILIAR', required=False),
            OpenApiParameter(name='family_group', description='Family group identifier', required=False),
            OpenApiParameter(name='search', description='Match name or DNI', required=False),
        ]
    )
    def list(self, request, *args, **kwargs):
        queryset = self.get_queryset()

        membership_type = request.query_params.get('membership_type')
        if membership_type:
            queryset = queryset.filter(membership_type=membership_type.upper())

        family_group = request.query_params.get('family_group')
        if family_group:
            queryset = queryset.filter(family_group=family_group)

        search = request.query_params.get('search')
        if search:
            queryset = queryset.filter(Q(name__icontains=search) | Q(dni__startswith=search))

        page = self.paginate_queryset(queryset)
        if page is not None:
            return self.get_paginated_response(MemberSerializer(page, many=True).data)
        return Response(MemberSerializer(queryset, many=True).data)

    @extend_schema(summary="Get a member")
    def retrieve(self, request, *args, **kwargs):
        return super().retrieve(request, *args, **kwargs)

    @extend_schema(summary="Register an individual member", request=PersonSerializer,
                   responses={201: MemberSerializer})
    def create(self, request, *args, **kwargs):
        serializer = PersonSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        member = register_member(serializer.validated_data)
        return Response(MemberSerializer(member).data, status=status.HTTP_201_CREATED)

    @extend_schema(summary="Update a member's contact data", request=MemberUpdateSerializer)
    def partial_update(self, request, *args, **kwargs):
        return super().partial_update(request, *args, **kwargs)

    @extend_schema(
        summary="Remove a member",
        description="Removing a head of household removes the whole family group. "
                    "Removing another family member dissolves the group when fewer than 3 remain.",
        request=RemovalRequestSerializer,
    )
    def destroy(self, request, *args, **kwargs):
        return super().destroy(request, *args, **kwargs)

    @extend_schema(summary="Create a family plan", request=FamilyGroupCreateSerializer,
                   responses={201: FamilyGroupResultSerializer})
    @action(detail=False, methods=['post'])
    def family(self, request):
        serializer = FamilyGroupCreateSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        data = serializer.validated_data

        head = data.get('head')
        if 'head_id' in data:
            head = self.get_queryset().filter(pk=data['head_id']).first()
            if head is None:
                raise MemberNotFound(field='head_id')

        result = create_family_group(head, data['members'], performed_by=get_member(request))
        return Response(
            FamilyGroupResultSerializer(result).data,
            status=status.HTTP_201_CREATED
        )

    @extend_schema(summary="Turn an individual member into a family head",
                   request=ConvertToFamilySerializer,
                   responses={200: FamilyGroupResultSerializer})
    @action(detail=True, methods=['post'], url_path='convert-to-family')
    def convert_to_family(self, request, pk=None):
        member = self.get_object()
        serializer = ConvertToFamilySerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        result = convert_individual_to_family(
            member, serializer.validated_data['members'], performed_by=get_member(request)
        )
        return Response(FamilyGroupResultSerializer(result).data)

    @extend_schema(
        summary="Move a family member to an individual plan",
        description="When fewer than 3 members would remain, the rest of the group is "
                    "dissolved too and listed under 'cascaded'.",
        request=None,
    )
    @action(detail=True, methods=['post'], url_path='convert-to-individual')
    def convert_to_individual(self, request, pk=None):
        member = self.get_object()
        result = convert_family_to_individual(member, performed_by=get_member(request))
        return Response({
            'member': MemberSerializer(result.member).data,
            'cascaded': serialize_changes(result.cascaded),
        })

    @extend_schema(
        summary="Check whether a DNI or email is registered",
        parameters=[
            OpenApiParameter(name='dni', required=False),
            OpenApiParameter(name='email', required=False),
        ]
    )
    @action(detail=False, methods=['get'])
    def lookup(self, request):
        dni = request.query_params.get('dni')
        email = request.query_params.get('email')
        if not dni and not email:
            raise InvalidMemberData('Send a dni or an email to look up.', field='dni')
        member = find_member(dni=dni, email=email)
        return Response({
            'exists': member is not None,
            'member': MemberSerializer(member).data if member else None,
        })

    @extend_schema(summary="Get a member's plan")
    @action(detail=True, methods=['get'])
    def plan(self, request, pk=None):
        return Response(family_plan_summary(self.get_object()))

    @extend_schema(summary="Get a member's monthly fee")
    @action(detail=True, methods=['get'])
    def fee(self, request, pk=None):
        member = self.get_object()
        return Response({
            'member_id': member.pk,
            'membership_type': member.membership_type,
            'monthly_fee': compute_monthly_fee(member),
        })


class MemberRemovalViewSet(viewsets.ReadOnlyModelViewSet):
    """
    Audit log of removed members.
    """
    serializer_class = MemberRemovalSerializer
    permission_classes = [IsAuthenticated, IsClubAdmin]
    pagination_class = StandardResultsPagination
    queryset = MemberRemoval.objects.select_related('performed_by')

    @extend_schema(summary="List member removals")
    def list(self, request, *args, **kwargs):
        return super().list(request, *args, **kwargs)


class EmailLogViewSet(viewsets.ReadOnlyModelViewSet):
    """
    Every notification email the club tried to send, newest first.
    """
    serializer_class = EmailLogSerializer
    permission_classes = [IsAuthenticated, IsClubAdmin]
    pagination_class = StandardResultsPagination

    def get_queryset(self):
        queryset = EmailLog.objects.all()
        email_type = self.request.query_params.get('type')
        if email_type:
            queryset = queryset.filter(email_type=email_type.upper())
        status_filter = self.request.query_params.get('status')
        if status_filter:
            queryset = queryset.filter(status=status_filter.upper())
        return queryset

    @extend_schema(
        summary="List sent and failed emails",
        parameters=[
            OpenApiParameter(name='type', description='MEMBER_REMOVED, DEPENDENT_REMOVED, '
                             'PLAN_CHANGED or PAYMENT_RECEIPT', required=False),
            OpenApiParameter(name='status', description='SENT or FAILED', required=False),
        ]
    )
    def list(self, request, *args, **kwargs):
        return super().list(request, *args, **kwargs)


class CoachViewSet(StaffViewSetMixin,
                   mixins.ListModelMixin,
                   mixins.RetrieveModelMixin,
                   viewsets.GenericViewSet):
    """
    ViewSet for coaches (entrenadores), managed by administrators.
    """
    serializer_class = CoachSerializer
    response_serializer_class = CoachSerializer
    permission_classes = [IsAuthenticated, IsClubAdmin]
    pagination_class = StandardResultsPagination

    def get_queryset(self):
        return Member.objects.filter(role=Member.ROLE_COACH).prefetch_related('coached_practices')

    @extend_schema(summary="List coaches")
    def list(self, request, *args, **kwargs):
        return super().list(request, *args, **kwargs)

    @extend_schema(summary="Get a coach")
    def retrieve(self, request, *args, **kwargs):
        return super().retrieve(request, *args, **kwargs)

    @extend_schema(summary="Register a coach", request=CoachCreateSerializer,
                   responses={201: CoachSerializer})
    def create(self, request, *args, **kwargs):
        serializer = CoachCreateSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        data = dict(serializer.validated_data)
        practices = data.pop('practices', [])
        coach = register_coach(data, practices=practices)
        return Response(CoachSerializer(coach).data, status=status.HTTP_201_CREATED)

    @extend_schema(summary="Update a coach's contact data", request=MemberUpdateSerializer)
    def partial_update(self, request, *args, **kwargs):
        return super().partial_update(request, *args, **kwargs)

    @extend_schema(summary="Remove a coach", request=RemovalRequestSerializer)
    def destroy(self, request, *args, **kwargs):
        return super().destroy(request, *args, **kwargs)


class AdminViewSet(StaffViewSetMixin,
                   mixins.ListModelMixin,
                   mixins.RetrieveModelMixin,
                   viewsets.GenericViewSet):
    """
    ViewSet for administrators. Only the super administrator may use it.
    """
    serializer_class = MemberSerializer
    response_serializer_class = MemberSerializer
    permission_classes = [IsAuthenticated, IsSuperAdmin]
    pagination_class = StandardResultsPagination

    def get_queryset(self):
        return Member.objects.filter(role__in=[Member.ROLE_ADMIN, Member.ROLE_SUPER_ADMIN])

    @extend_schema(summary="List administrators")
    def list(self, request, *args, **kwargs):
        return super().list(request, *args, **kwargs)

    @extend_schema(summary="Get an administrator")
    def retrieve(self, request, *args, **kwargs):
        return super().retrieve(request, *args, **kwargs)

    @extend_schema(summary="Register an administrator", request=PersonSerializer,
                   responses={201: MemberSerializer})
    def create(self, request, *args, **kwargs):
        serializer = PersonSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        admin_member = register_admin(serializer.validated_data)
        return Response(MemberSerializer(admin_member).data, status=status.HTTP_201_CREATED)

    @extend_schema(summary="Update an administrator's contact data", request=MemberUpdateSerializer)
    def partial_update(self, request, *args, **kwargs):
        return super().partial_update(request, *args, **kwargs)

    @extend_schema(summary="Remove an administrator", request=RemovalRequestSerializer)
    def destroy(self, request, *args, **kwargs):
        return super().destroy(request, *args, **kwargs)
