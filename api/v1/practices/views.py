"""
Practice views for the Club Manager API.

Administrators manage practices, coaches manage the practices they lead
(schedules and attendance), and socios enroll themselves.
"""
from rest_framework import status, viewsets
from rest_framework.decorators import action
from rest_framework.exceptions import PermissionDenied
from rest_framework.permissions import IsAuthenticated
from rest_framework.response import Response
from drf_spectacular.utils import extend_schema, OpenApiParameter

from apps.accounts.exceptions import MemberNotFound
from apps.accounts.models import Member
from apps.practices.models import Enrollment, Practice
from apps.practices import services
from api.permissions import IsClubAdmin, IsCoachOrClubAdmin, get_member

from .serializers import (
    AttendanceQuerySerializer,
    AttendanceRecordSerializer,
    EnrollmentSerializer,
    EnrollRequestSerializer,
    PracticeSerializer,
    PracticeWriteSerializer,
    ReportQuerySerializer,
)

COACH_ACTIONS = ('partial_update', 'attendance', 'attendance_report', 'enrollments')


class PracticeViewSet(viewsets.ModelViewSet):
    serializer_class = PracticeSerializer
    queryset = Practice.objects.prefetch_related('schedules', 'coaches')
    lookup_value_regex = r'\d+'
    http_method_names = ['get', 'post', 'patch', 'delete', 'head', 'options']

    def get_permissions(self):
        if self.action in ('create', 'destroy'):
            return [IsAuthenticated(), IsClubAdmin()]
        if self.action in COACH_ACTIONS:
            return [IsAuthenticated(), IsCoachOrClubAdmin()]
        return [IsAuthenticated()]

    def check_leads(self, practice):
        """Coaches may only manage the practices they lead."""
        member = get_member(self.request)
        if member.is_club_admin:
            return
        if not practice.coaches.filter(pk=member.pk).exists():
            raise PermissionDenied('You do not lead this practice.')

    def enrolling_member(self, request):
        member = get_member(request)
        serializer = EnrollRequestSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        member_id = serializer.validated_data.get('member_id')
        if member_id is not None and member_id != member.pk:
            if not member.is_club_admin:
                raise PermissionDenied('You can only manage your own enrollments.')
            member = Member.objects.filter(pk=member_id).first()
            if member is None:
                raise MemberNotFound(field='member_id')
        return member

    @extend_schema(summary="List practices")
    def list(self, request, *args, **kwargs):
        return super().list(request, *args, **kwargs)

    @extend_schema(summary="Get a practice")
    def retrieve(self, request, *args, **kwargs):
        return super().retrieve(request, *args, **kwargs)

    @extend_schema(summary="Create a practice", request=PracticeWriteSerializer,
                   responses={201: PracticeSerializer})
    def create(self, request, *args, **kwargs):
        serializer = PracticeWriteSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        data = dict(serializer.validated_data)
        schedules = data.pop('schedules', [])
        coaches = data.pop('coaches', [])
        practice = services.create_practice(data, schedules, coaches=coaches)
        return Response(PracticeSerializer(practice).data, status=status.HTTP_201_CREATED)

    @extend_schema(
        summary="Update a practice",
        description="Sending schedules replaces every current schedule. "
                    "Only administrators may change coaches.",
        request=PracticeWriteSerializer,
    )
    def partial_update(self, request, *args, **kwargs):
        practice = self.get_object()
        self.check_leads(practice)
        serializer = PracticeWriteSerializer(data=request.data, partial=True)
        serializer.is_valid(raise_exception=True)
        data = dict(serializer.validated_data)
        schedules = data.pop('schedules', None)
        coaches = data.pop('coaches', None)
        if coaches is not None and not get_member(request).is_club_admin:
            raise PermissionDenied('Only administrators can assign coaches.')
        practice = services.update_practice(practice, data, schedules=schedules, coaches=coaches)
        return Response(PracticeSerializer(practice).data)

    @extend_schema(summary="Delete a practice")
    def destroy(self, request, *args, **kwargs):
        return super().destroy(request, *args, **kwargs)

    @extend_schema(summary="Enroll in a practice", request=EnrollRequestSerializer,
                   responses={201: EnrollmentSerializer})
    @action(detail=True, methods=['post'])
    def enroll(self, request, pk=None):
        practice = self.get_object()
        enrollment = services.enroll(self.enrolling_member(request), practice)
        return Response(EnrollmentSerializer(enrollment).data, status=status.HTTP_201_CREATED)

    @extend_schema(summary="Leave a practice", request=EnrollRequestSerializer,
                   responses={200: EnrollmentSerializer})
    @action(detail=True, methods=['post'])
    def unenroll(self, request, pk=None):
        practice = self.get_object()
        enrollment = services.unenroll(self.enrolling_member(request), practice)
        return Response(EnrollmentSerializer(enrollment).data)

    @extend_schema(summary="List active enrollments of a practice",
                   responses={200: EnrollmentSerializer(many=True)})
    @action(detail=True, methods=['get'])
    def enrollments(self, request, pk=None):
        practice = self.get_object()
        self.check_leads(practice)
        enrollments = practice.enrollments.filter(active=True).select_related('member', 'practice')
        return Response(EnrollmentSerializer(enrollments, many=True).data)

    @extend_schema(summary="List the practices the caller is enrolled in",
                   responses={200: EnrollmentSerializer(many=True)})
    @action(detail=False, methods=['get'])
    def mine(self, request):
        enrollments = Enrollment.objects.filter(
            member=get_member(request), active=True
        ).select_related('member', 'practice')
        return Response(EnrollmentSerializer(enrollments, many=True).data)

    @extend_schema(
        summary="Get or record the attendance of one class",
        parameters=[OpenApiParameter(name='date', description='YYYY-MM-DD (GET only)', required=False)],
        request=AttendanceRecordSerializer,
    )
    @action(detail=True, methods=['get', 'post'])
    def attendance(self, request, pk=None):
        practice = self.get_object()
        self.check_leads(practice)

        if request.method == 'GET':
            query = AttendanceQuerySerializer(data=request.query_params)
            query.is_valid(raise_exception=True)
            on_date = query.validated_data['date']
            return Response({
                'practice_id': practice.pk,
                'date': on_date,
                'entries': services.attendance_for_date(practice, on_date),
            })

        serializer = AttendanceRecordSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        on_date = serializer.validated_data['date']
        records = services.record_attendance(
            practice,
            on_date,
            serializer.validated_data['entries'],
            recorded_by=get_member(request),
        )
        return Response({
            'practice_id': practice.pk,
            'date': on_date,
            'recorded': len(records),
            'entries': services.attendance_for_date(practice, on_date),
        })

    @extend_schema(
        summary="Attendance report of a practice",
        parameters=[
            OpenApiParameter(name='start', description='YYYY-MM-DD', required=False),
            OpenApiParameter(name='end', description='YYYY-MM-DD', required=False),
        ]
    )
    @action(detail=True, methods=['get'], url_path='attendance-report')
    def attendance_report(self, request, pk=None):
        practice = self.get_object()
        self.check_leads(practice)
        query = ReportQuerySerializer(data=request.query_params)
        query.is_valid(raise_exception=True)
        return Response(services.attendance_report(practice, **query.validated_data))
