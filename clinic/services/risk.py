"""
Self-check-in risk assessment.

Pure functions over the intake sections as submitted by the client
(camelCase keys, nested ``{"value": ...}`` vitals).  Nothing here touches
the database or the notification layer; ``clinic.services.checkins``
decides when to call ``assess`` and what to do with the outcome.

Scoring is additive:

- COVID: symptoms +3, exposure +2, positive test +4
- emergency: symptoms +5, needs immediate attention +10
- mental health: concerns +2, anxiety above 7 +1, mood below 4 +1
- vitals: temperature above 100.4F +2, heart rate outside 60-100 +1,
  oxygen saturation below 95 +3

``>=10`` critical, ``>=6`` high, ``>=3`` medium, otherwise low.
"""
from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Mapping, Optional

LOW, MEDIUM, HIGH, CRITICAL = 'low', 'medium', 'high', 'critical'
FLAG_LEVELS = frozenset({HIGH, CRITICAL})

# sections whose change triggers a rescore
SCORED_SECTIONS = ('covid_screening', 'emergency_info', 'mental_health', 'vital_signs')
# sections whose change triggers a completion recount
CHECKLIST_SECTIONS = ('basic_info', 'covid_screening', 'mental_health', 'lifestyle', 'emergency_info')

FEVER_F = 100.4
HEART_RATE_RANGE = (60, 100)
LOW_OXYGEN = 95
LOW_SLEEP_HOURS = 6


@dataclass(frozen=True)
class Intake:
    basic_info: Mapping[str, Any] = field(default_factory=dict)
    vital_signs: Mapping[str, Any] = field(default_factory=dict)
    covid_screening: Mapping[str, Any] = field(default_factory=dict)
    mental_health: Mapping[str, Any] = field(default_factory=dict)
    lifestyle: Mapping[str, Any] = field(default_factory=dict)
    emergency_info: Mapping[str, Any] = field(default_factory=dict)

    @classmethod
    def from_record(cls, obj) -> 'Intake':
        return cls(**{name: getattr(obj, name, None) or {} for name in cls.__dataclass_fields__})


@dataclass(frozen=True)
class Assessment:
    risk_score: int
    risk_level: str
    recommendations: list[str]
    flagged_for_review: bool
    completion_percentage: int


def _vital(vitals: Mapping[str, Any], name: str) -> Optional[float]:
    entry = vitals.get(name)
    if isinstance(entry, Mapping):
        entry = entry.get('value')
    if isinstance(entry, bool) or entry is None:
        return None
    try:
        return float(entry)
    except (TypeError, ValueError):
        return None


def _number(section: Mapping[str, Any], key: str) -> Optional[float]:
    value = section.get(key)
    if isinstance(value, bool) or value is None:
        return None
    try:
        return float(value)
    except (TypeError, ValueError):
        return None


def score_intake(intake: Intake) -> int:
    covid = intake.covid_screening
    emergency = intake.emergency_info
    mental = intake.mental_health
    vitals = intake.vital_signs

    score = 0
    if covid.get('hasSymptoms'):
        score += 3
    if covid.get('hasBeenExposed'):
        score += 2
    if covid.get('hasTestedPositive'):
        score += 4

    # both emergency factors stack, no cap
    if emergency.get('hasEmergencySymptoms'):
        score += 5
    if emergency.get('needsImmediateAttention'):
        score += 10

    if mental.get('hasMentalHealthConcerns'):
        score += 2
    anxiety = _number(mental, 'anxietyLevel')
    if anxiety is not None and anxiety > 7:
        score += 1
    mood = _number(mental, 'moodRating')
    if mood is not None and mood < 4:
        score += 1

    temperature = _vital(vitals, 'temperature')
    if temperature is not None and temperature > FEVER_F:
        score += 2
    heart_rate = _vital(vitals, 'heartRate')
    if heart_rate is not None and not (HEART_RATE_RANGE[0] <= heart_rate <= HEART_RATE_RANGE[1]):
        score += 1
    oxygen = _vital(vitals, 'oxygenSaturation')
    if oxygen is not None and oxygen < LOW_OXYGEN:
        score += 3
    return score


def risk_level_for_score(score: int) -> str:
    if score >= 10:
        return CRITICAL
    if score >= 6:
        return HIGH
    if score >= 3:
        return MEDIUM
    return LOW


def generate_recommendations(intake: Intake) -> list[str]:
    covid = intake.covid_screening
    mental = intake.mental_health
    vitals = intake.vital_signs
    lifestyle = intake.lifestyle

    out: list[str] = []
    if covid.get('hasSymptoms') or covid.get('hasBeenExposed'):
        out += ['Consider COVID-19 testing', 'Monitor symptoms closely']
    if intake.emergency_info.get('hasEmergencySymptoms'):
        out += ['Seek immediate medical attention', 'Consider emergency room visit']
    anxiety = _number(mental, 'anxietyLevel')
    if mental.get('hasMentalHealthConcerns') or (anxiety is not None and anxiety > 7):
        out += ['Discuss mental health concerns with doctor', 'Consider mental health resources']
    temperature = _vital(vitals, 'temperature')
    if temperature is not None and temperature > FEVER_F:
        out.append('Monitor fever and consider fever-reducing medication')
    oxygen = _vital(vitals, 'oxygenSaturation')
    if oxygen is not None and oxygen < LOW_OXYGEN:
        out.append('Monitor oxygen levels closely')
    if lifestyle.get('exerciseFrequency') == 'none':
        out.append('Consider incorporating regular exercise')
    sleep = _number(lifestyle, 'sleepHours')
    if sleep is not None and sleep < LOW_SLEEP_HOURS:
        out.append('Improve sleep hygiene and duration')
    return out


def _completion_checklist(intake: Intake) -> list[bool]:
    basic = intake.basic_info
    covid = intake.covid_screening
    mental = intake.mental_health
    lifestyle = intake.lifestyle
    return [
        bool(basic.get('currentSymptoms')),
        bool(basic.get('currentMedications')),
        bool(basic.get('allergies')),
        covid.get('hasSymptoms') is not None,
        covid.get('hasBeenExposed') is not None,
        covid.get('isVaccinated') is not None,
        bool(mental.get('moodRating')),
        bool(mental.get('anxietyLevel')),
        bool(lifestyle.get('exerciseFrequency')),
        bool(lifestyle.get('sleepHours')),
        intake.emergency_info.get('hasEmergencySymptoms') is not None,
    ]


def completion_percentage(intake: Intake) -> int:
    items = _completion_checklist(intake)
    # half-up rounding; n/11 never lands on .5 anyway
    return int(sum(items) * 100 / len(items) + 0.5)


def assess(intake: Intake) -> Assessment:
    score = score_intake(intake)
    level = risk_level_for_score(score)
    return Assessment(
        risk_score=score,
        risk_level=level,
        recommendations=generate_recommendations(intake),
        flagged_for_review=level in FLAG_LEVELS,
        completion_percentage=completion_percentage(intake),
    )


def needs_rescore(changed: set[str]) -> bool:
    return any(name in changed for name in SCORED_SECTIONS)


def needs_recount(changed: set[str]) -> bool:
    return any(name in changed for name in CHECKLIST_SECTIONS)


# ---------------------------------------------------------------------
# Derived vitals shown on detail responses
# ---------------------------------------------------------------------
def bmi(vitals: Mapping[str, Any]) -> Optional[float]:
    """Body-mass index from pounds and inches, one decimal."""
    weight = _vital(vitals, 'weight')
    height = _vital(vitals, 'height')
    if not weight or not height:
        return None
    kg = weight * 0.453592
    metres = height * 0.0254
    return round(kg / (metres * metres), 1)


def blood_pressure_category(vitals: Mapping[str, Any]) -> Optional[str]:
    bp = vitals.get('bloodPressure')
    if not isinstance(bp, Mapping):
        return None
    systolic = _number(bp, 'systolic')
    diastolic = _number(bp, 'diastolic')
    if not systolic or not diastolic:
        return None
    if systolic < 120 and diastolic < 80:
        return 'normal'
    if systolic < 130 and diastolic < 80:
        return 'elevated'
    if systolic < 140 or diastolic < 90:
        return 'stage1_hypertension'
    if systolic < 180 or diastolic < 120:
        return 'stage2_hypertension'
    return 'hypertensive_crisis'
