"""
Organization-scoped dashboard analytics.

Every figure is computed over a queryset narrowed by ``resolve_scope`` /
``apply_scope``: superadmins see the whole deployment (or one
organization when asked), admins and doctors their own organization.
JSON intake sections are summarised in Python rather than with
database-specific JSON operators.
"""
from __future__ import annotations

from collections import Counter
from datetime import datetime, timedelta
from typing import Any, Optional

from django.db.models import Count, Q
from django.db.models.functions import TruncDate, TruncMonth
from django.utils import timezone

from clinic.models import Appointment, Notification, Prescription, SelfCheckIn, User
from clinic.permissions import ADMIN_ROLES, STAFF_ROLES, has_role
from clinic.services.scoping import apply_scope, resolve_scope

PERIODS = {'7d': 7, '30d': 30, '90d': 90, '1y': 365}


def _since(period: str) -> Optional[datetime]:
    days = PERIODS.get(period)
    return timezone.now() - timedelta(days=days) if days else None


def _scoped(principal, model, organization_id: Optional[int], *, roles=STAFF_ROLES):
    has_role(principal, roles)
    scope = resolve_scope(principal, organization_id)
    return apply_scope(model.objects.all(), scope, owner_field=None)


def _distribution(qs, field: str) -> list[dict[str, Any]]:
    rows = qs.values(field).annotate(count=Count('id')).order_by('-count', field)
    return [{'value': r[field], 'count': r['count']} for r in rows]


def _trend(qs, trunc, limit: int) -> list[dict[str, Any]]:
    rows = (qs.annotate(bucket=trunc('created_at')).values('bucket')
            .annotate(count=Count('id')).order_by('bucket'))
    return [{'period': r['bucket'].isoformat(), 'count': r['count']} for r in rows][-limit:]


def _growth(current: int, previous: int) -> int:
    return round((current - previous) / previous * 100) if previous else 0


def _month_bounds(now: datetime):
    start = now.replace(day=1, hour=0, minute=0, second=0, microsecond=0)
    last_start = (start - timedelta(days=1)).replace(day=1)
    return start, last_start


def overview(principal, *, organization_id: Optional[int] = None) -> dict[str, Any]:
    """Totals, this month's counts and growth against last month."""
    start, last_start = _month_bounds(timezone.localtime())
    users = _scoped(principal, User, organization_id)
    sources = {
        'appointments': _scoped(principal, Appointment, organization_id),
        'prescriptions': _scoped(principal, Prescription, organization_id),
        'checkIns': _scoped(principal, SelfCheckIn, organization_id),
    }
    totals = {'users': users.count()}
    monthly, growth = {}, {}
    for key, qs in sources.items():
        totals[key] = qs.count()
        monthly[key] = qs.filter(created_at__gte=start).count()
        previous = qs.filter(created_at__gte=last_start, created_at__lt=start).count()
        growth[key] = _growth(monthly[key], previous)
    return {'overview': totals, 'monthlyStats': monthly, 'growth': growth}


def appointment_analytics(principal, *, organization_id: Optional[int] = None, period: str = '30d') -> dict[str, Any]:
    qs = _scoped(principal, Appointment, organization_id)
    since = _since(period)
    if since:
        qs = qs.filter(created_at__gte=since)
    top = (qs.values('doctor_id', 'doctor__first_name', 'doctor__last_name', 'doctor__username')
           .annotate(count=Count('id')).order_by('-count', 'doctor_id')[:10])
    completion = qs.aggregate(
        total=Count('id'),
        completed=Count('id', filter=Q(status__in=('completed', 'confirmed'))),
        cancelled=Count('id', filter=Q(status__in=('cancelled', 'rejected'))),
    )
    return {
        'period': period,
        'statusDistribution': _distribution(qs, 'status'),
        'dailyTrends': _trend(qs, TruncDate, 30),
        'topDoctors': [{
            'doctorId': r['doctor_id'],
            'doctorName': f"{r['doctor__first_name']} {r['doctor__last_name']}".strip() or r['doctor__username'],
            'count': r['count'],
        } for r in top],
        'completionStats': completion,
    }


def prescription_analytics(principal, *, organization_id: Optional[int] = None,
                           period: str = '30d') -> dict[str, Any]:
    qs = _scoped(principal, Prescription, organization_id)
    since = _since(period)
    if since:
        qs = qs.filter(created_at__gte=since)
    now = timezone.now()
    medications = Counter()
    for meds in qs.values_list('medications', flat=True):
        for med in meds or []:
            if isinstance(med, dict) and med.get('name'):
                medications[med['name']] += 1
    return {
        'period': period,
        'statusDistribution': _distribution(qs, 'status'),
        'monthlyTrends': _trend(qs, TruncMonth, 12),
        'topMedications': [{'name': name, 'count': n} for name, n in medications.most_common(10)],
        'expiryAnalysis': qs.aggregate(
            total=Count('id'),
            expiringSoon=Count('id', filter=Q(valid_until__gte=now, valid_until__lte=now + timedelta(days=7))),
            expired=Count('id', filter=Q(valid_until__lt=now)),
        ),
    }


def _mean(values: list) -> Optional[float]:
    numbers = [v for v in values if isinstance(v, (int, float)) and not isinstance(v, bool)]
    return round(sum(numbers) / len(numbers), 1) if numbers else None


def checkin_analytics(principal, *, organization_id: Optional[int] = None, period: str = '30d') -> dict[str, Any]:
    qs = _scoped(principal, SelfCheckIn, organization_id)
    since = _since(period)
    if since:
        qs = qs.filter(created_at__gte=since)
    completion = qs.aggregate(
        total=Count('id'),
        completed=Count('id', filter=Q(status='completed')),
        flagged=Count('id', filter=Q(flagged_for_review=True)),
    )
    covid = Counter()
    mental: dict[str, list] = {'moodRating': [], 'anxietyLevel': [], 'sleepQuality': [], 'stressLevel': []}
    concerns = 0
    for screening, mind in qs.values_list('covid_screening', 'mental_health'):
        screening = screening or {}
        for key in ('hasSymptoms', 'hasBeenExposed', 'isVaccinated'):
            covid[key] += screening.get(key) is True
        mind = mind or {}
        for key, bucket in mental.items():
            bucket.append(mind.get(key))
        concerns += mind.get('hasMentalHealthConcerns') is True
    return {
        'period': period,
        'riskDistribution': _distribution(qs, 'risk_level'),
        'completionAnalysis': completion,
        'covidScreening': {'total': completion['total'], **{k: covid[k] for k in
                                                            ('hasSymptoms', 'hasBeenExposed', 'isVaccinated')}},
        'mentalHealthTrends': {
            **{f"avg{key[0].upper()}{key[1:]}": _mean(values) for key, values in mental.items()},
            'hasConcerns': concerns,
        },
    }


def user_analytics(principal, *, organization_id: Optional[int] = None) -> dict[str, Any]:
    qs = _scoped(principal, User, organization_id, roles=ADMIN_ROLES)
    rows = (qs.annotate(bucket=TruncMonth('date_joined')).values('bucket')
            .annotate(count=Count('id')).order_by('bucket'))
    return {
        'roleDistribution': _distribution(qs, 'role'),
        'registrationTrends': [{'period': r['bucket'].isoformat(), 'count': r['count']} for r in rows][-12:],
        'activityStats': qs.aggregate(
            total=Count('id'),
            active=Count('id', filter=Q(is_active=True)),
            inactive=Count('id', filter=Q(is_active=False)),
        ),
    }


def notification_analytics(principal, *, organization_id: Optional[int] = None,
                           period: str = '30d') -> dict[str, Any]:
    qs = _scoped(principal, Notification, organization_id, roles=ADMIN_ROLES)
    since = _since(period)
    if since:
        qs = qs.filter(created_at__gte=since)
    by_type = (qs.values('type')
               .annotate(count=Count('id'), unread=Count('id', filter=Q(is_read=False)))
               .order_by('-count', 'type'))
    return {
        'period': period,
        'typeDistribution': [{'value': r['type'], 'count': r['count'], 'unread': r['unread']} for r in by_type],
        'priorityDistribution': _distribution(qs, 'priority'),
        'readStats': qs.aggregate(
            total=Count('id'),
            read=Count('id', filter=Q(is_read=True)),
            unread=Count('id', filter=Q(is_read=False)),
        ),
        'dailyTrends': _trend(qs, TruncDate, 30),
    }
