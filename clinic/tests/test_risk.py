"""
Unit tests for the self-check-in risk engine.

No database: ``risk`` works on plain dictionaries.
"""
import pytest

from clinic.services import risk
from clinic.services.risk import Intake


def intake(**sections):
    return Intake(**sections)


@pytest.mark.parametrize('score, level', [
    (0, 'low'), (2, 'low'),
    (3, 'medium'), (5, 'medium'),
    (6, 'high'), (9, 'high'),
    (10, 'critical'), (25, 'critical'),
])
def test_level_boundaries(score, level):
    assert risk.risk_level_for_score(score) == level


def test_empty_intake_is_low_and_unflagged():
    result = risk.assess(Intake())
    assert result.risk_score == 0
    assert result.risk_level == 'low'
    assert result.flagged_for_review is False
    assert result.recommendations == []
    assert result.completion_percentage == 0


def test_covid_symptoms_and_fever():
    result = risk.assess(intake(
        covid_screening={'hasSymptoms': True, 'hasBeenExposed': True},
        vital_signs={'temperature': {'value': 101.2, 'unit': 'F'}},
    ))
    # 3 + 2 + 2
    assert result.risk_score == 7
    assert result.risk_level == 'high'
    assert result.flagged_for_review is True
    assert result.recommendations == [
        'Consider COVID-19 testing',
        'Monitor symptoms closely',
        'Monitor fever and consider fever-reducing medication',
    ]


def test_emergency_factors_stack():
    result = risk.assess(intake(
        emergency_info={'hasEmergencySymptoms': True, 'needsImmediateAttention': True},
    ))
    assert result.risk_score == 15
    assert result.risk_level == 'critical'
    assert result.flagged_for_review is True
    assert 'Seek immediate medical attention' in result.recommendations
    assert 'Consider emergency room visit' in result.recommendations


def test_exposure_with_immediate_attention_is_critical():
    result = risk.assess(intake(
        covid_screening={'hasSymptoms': True, 'hasBeenExposed': True},
        emergency_info={'needsImmediateAttention': True},
    ))
    # 3 + 2 + 10
    assert result.risk_score == 15
    assert result.risk_level == 'critical'
    assert result.flagged_for_review is True


def test_anxiety_low_mood_and_fever_is_medium():
    result = risk.assess(intake(
        mental_health={'anxietyLevel': 8, 'moodRating': 3},
        vital_signs={'temperature': {'value': 101.0, 'unit': 'F'}},
    ))
    # 1 + 1 + 2
    assert result.risk_score == 4
    assert result.risk_level == 'medium'
    assert result.flagged_for_review is False
    assert 'Monitor fever and consider fever-reducing medication' in result.recommendations


def test_mental_health_and_vitals_contributions():
    score = risk.score_intake(intake(
        mental_health={'hasMentalHealthConcerns': True, 'anxietyLevel': 8, 'moodRating': 3},
        vital_signs={'heartRate': {'value': 110}, 'oxygenSaturation': {'value': 93}},
    ))
    # 2 + 1 + 1 + 1 + 3
    assert score == 8


def test_thresholds_are_strict():
    score = risk.score_intake(intake(
        mental_health={'anxietyLevel': 7, 'moodRating': 4},
        vital_signs={'temperature': {'value': 100.4}, 'heartRate': {'value': 60}, 'oxygenSaturation': {'value': 95}},
    ))
    assert score == 0
    assert risk.score_intake(intake(vital_signs={'heartRate': {'value': 101}})) == 1
    assert risk.score_intake(intake(vital_signs={'heartRate': {'value': 59}})) == 1


def test_missing_or_garbage_vitals_do_not_score():
    vitals = {'temperature': {'value': None}, 'heartRate': 'fast', 'oxygenSaturation': {}}
    assert risk.score_intake(intake(vital_signs=vitals)) == 0


def test_bare_numbers_are_accepted_for_vitals():
    assert risk.score_intake(intake(vital_signs={'temperature': 102})) == 2


def test_assess_is_deterministic():
    data = intake(
        covid_screening={'hasTestedPositive': True},
        mental_health={'anxietyLevel': 9},
        lifestyle={'exerciseFrequency': 'none', 'sleepHours': 5},
    )
    assert risk.assess(data) == risk.assess(data)


def test_adding_a_factor_never_lowers_score():
    base = {'hasSymptoms': True}
    lower = risk.score_intake(intake(covid_screening=base))
    higher = risk.score_intake(intake(covid_screening={**base, 'hasBeenExposed': True}))
    assert higher > lower


def test_lifestyle_recommendations_do_not_score():
    data = intake(lifestyle={'exerciseFrequency': 'none', 'sleepHours': 4})
    assert risk.score_intake(data) == 0
    assert risk.generate_recommendations(data) == [
        'Consider incorporating regular exercise',
        'Improve sleep hygiene and duration',
    ]


def test_anxiety_alone_recommends_mental_health_resources():
    recs = risk.generate_recommendations(intake(mental_health={'anxietyLevel': 9}))
    assert recs == ['Discuss mental health concerns with doctor', 'Consider mental health resources']


def test_completion_counts_answered_items():
    data = intake(
        basic_info={'currentSymptoms': [{'symptom': 'cough'}], 'allergies': []},
        covid_screening={'hasSymptoms': False, 'hasBeenExposed': False, 'isVaccinated': True},
        emergency_info={'hasEmergencySymptoms': False},
    )
    # 5 of 11 answered: explicit False still counts for yes/no questions
    assert risk.completion_percentage(data) == 45


def test_completion_full():
    data = intake(
        basic_info={'currentSymptoms': [1], 'currentMedications': [1], 'allergies': [1]},
        covid_screening={'hasSymptoms': False, 'hasBeenExposed': False, 'isVaccinated': False},
        mental_health={'moodRating': 7, 'anxietyLevel': 2},
        lifestyle={'exerciseFrequency': 'daily', 'sleepHours': 8},
        emergency_info={'hasEmergencySymptoms': False},
    )
    assert risk.completion_percentage(data) == 100


def test_rescore_and_recount_triggers():
    assert risk.needs_rescore({'vital_signs'})
    assert not risk.needs_rescore({'basic_info', 'lifestyle', 'additional_info'})
    assert risk.needs_recount({'lifestyle'})
    assert not risk.needs_recount({'additional_info', 'vital_signs'})


def test_bmi_from_pounds_and_inches():
    assert risk.bmi({'weight': {'value': 150}, 'height': {'value': 65}}) == 25.0
    assert risk.bmi({'weight': {'value': 150}}) is None


@pytest.mark.parametrize('systolic, diastolic, category', [
    (115, 75, 'normal'),
    (125, 75, 'elevated'),
    (135, 85, 'stage1_hypertension'),
    (150, 95, 'stage2_hypertension'),
    (185, 125, 'hypertensive_crisis'),
])
def test_blood_pressure_category(systolic, diastolic, category):
    vitals = {'bloodPressure': {'systolic': systolic, 'diastolic': diastolic}}
    assert risk.blood_pressure_category(vitals) == category


def test_blood_pressure_category_missing():
    assert risk.blood_pressure_category({}) is None
