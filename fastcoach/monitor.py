"""Rule-based health risk assessment during a fast.

Every rule yields findings with a level; the assessment keeps the highest
level seen, so a later rule can never lower what an earlier one raised.
"""

from dataclasses import dataclass, field
from enum import IntEnum
from typing import Any, Iterable, Iterator

from .logbook import record_log
from .logs import log_event
from .models import TERMINAL_STATUSES
from .sessions import (
    SessionService, hours_since, optional_number, optional_object, optional_text, string_list,
)


class RiskLevel(IntEnum):
    LOW = 0
    MEDIUM = 1
    HIGH = 2
    CRITICAL = 3

    @property
    def label(self) -> str:
        return self.name.lower()


CRITICAL_SYMPTOMS = (
    "chest pain",
    "difficulty breathing",
    "severe dizziness",
    "fainting",
    "severe nausea",
    "vomiting",
    "confusion",
)
MODERATE_SYMPTOMS = ("dizziness", "headache", "fatigue", "nausea", "irritability")


@dataclass
class HealthData:
    session_id: str | None = None
    heart_rate: float | None = None
    systolic: float | None = None
    diastolic: float | None = None
    oxygen_saturation: float | None = None
    body_temperature: float | None = None
    symptoms: list[str] = field(default_factory=list)
    glucose_level: float | None = None
    hydration_level: float | None = None
    energy_level: float | None = None
    mood_level: float | None = None
    pain_level: float | None = None

    @classmethod
    def from_json(cls, data: dict[str, Any]) -> "HealthData":
        vitals = optional_object(data.get("vitalSigns"), "vitalSigns")
        bp = optional_object(vitals.get("bloodPressure"), "bloodPressure")
        return cls(
            session_id=optional_text(data.get("sessionId"), "sessionId"),
            heart_rate=optional_number(vitals.get("heartRate"), "heartRate"),
            systolic=optional_number(bp.get("systolic"), "systolic"),
            diastolic=optional_number(bp.get("diastolic"), "diastolic"),
            oxygen_saturation=optional_number(vitals.get("oxygenSaturation"), "oxygenSaturation"),
            body_temperature=optional_number(vitals.get("bodyTemperature"), "bodyTemperature"),
            symptoms=string_list(data.get("symptoms"), "symptoms"),
            glucose_level=optional_number(data.get("glucoseLevel"), "glucoseLevel"),
            hydration_level=optional_number(data.get("hydrationLevel"), "hydrationLevel"),
            energy_level=optional_number(data.get("energyLevel"), "energyLevel"),
            mood_level=optional_number(data.get("moodLevel"), "moodLevel"),
            pain_level=optional_number(data.get("painLevel"), "painLevel"),
        )


@dataclass
class Finding:
    level: RiskLevel
    factor: str
    recommendations: list[str] = field(default_factory=list)
    interventions: list[str] = field(default_factory=list)


@dataclass
class RiskAssessment:
    level: RiskLevel = RiskLevel.LOW
    factors: list[str] = field(default_factory=list)
    recommendations: list[str] = field(default_factory=list)
    interventions: list[str] = field(default_factory=list)

    @property
    def escalation_required(self) -> bool:
        return self.level >= RiskLevel.HIGH

    def merge(self, finding: Finding) -> None:
        self.level = max(self.level, finding.level)
        self.factors.append(finding.factor)
        self.recommendations.extend(finding.recommendations)
        self.interventions.extend(finding.interventions)

    def to_dict(self) -> dict[str, Any]:
        return {
            "level": self.level.label,
            "factors": list(self.factors),
            "recommendations": list(self.recommendations),
            "interventions": list(self.interventions),
            "escalationRequired": self.escalation_required,
        }


# ---- Rules ----

def _glucose_rule(data: HealthData, hours: float) -> Iterator[Finding]:
    g = data.glucose_level
    if g is None:
        return
    if g < 60:
        yield Finding(
            RiskLevel.CRITICAL,
            "Severe hypoglycemia (glucose < 60 mg/dL)",
            interventions=[
                "Break fast immediately",
                "Consume 15-20g fast-acting carbohydrates",
                "Contact healthcare provider",
            ],
        )
    elif g < 70:
        yield Finding(
            RiskLevel.HIGH,
            "Hypoglycemia (glucose < 70 mg/dL)",
            recommendations=[
                "Monitor closely and consider breaking fast",
                "Have glucose tablets readily available",
            ],
        )
    elif g < 80:
        yield Finding(
            RiskLevel.MEDIUM,
            "Low glucose (glucose < 80 mg/dL)",
            recommendations=["Monitor glucose levels more frequently"],
        )


def _heart_rate_rule(data: HealthData, hours: float) -> Iterator[Finding]:
    hr = data.heart_rate
    if hr is None or 50 <= hr <= 120:
        return
    severe = hr < 40 or hr > 140
    yield Finding(
        RiskLevel.CRITICAL if severe else RiskLevel.HIGH,
        f"Abnormal heart rate: {hr:g} bpm",
        recommendations=["Monitor heart rate closely"],
        interventions=["Seek immediate medical attention"] if severe else [],
    )


def _blood_pressure_rule(data: HealthData, hours: float) -> Iterator[Finding]:
    sys_bp, dia_bp = data.systolic, data.diastolic
    if sys_bp is None and dia_bp is None:
        return
    if (sys_bp is not None and sys_bp < 90) or (dia_bp is not None and dia_bp < 60):
        yield Finding(
            RiskLevel.MEDIUM,
            "Hypotension detected",
            recommendations=["Increase fluid and electrolyte intake"],
        )
    if (sys_bp is not None and sys_bp > 180) or (dia_bp is not None and dia_bp > 110):
        yield Finding(
            RiskLevel.CRITICAL,
            "Severe hypertension detected",
            interventions=["Break fast and seek medical attention"],
        )


def _oxygen_rule(data: HealthData, hours: float) -> Iterator[Finding]:
    if data.oxygen_saturation is not None and data.oxygen_saturation < 95:
        yield Finding(
            RiskLevel.CRITICAL,
            "Low oxygen saturation",
            interventions=["Seek immediate medical attention"],
        )


def _temperature_rule(data: HealthData, hours: float) -> Iterator[Finding]:
    t = data.body_temperature
    if t is not None and (t < 96 or t > 100.4):
        yield Finding(
            RiskLevel.MEDIUM,
            "Abnormal body temperature",
            recommendations=["Monitor temperature and hydration"],
        )


def _reported(symptoms: Iterable[str], keywords: Iterable[str]) -> bool:
    lowered = [s.lower() for s in symptoms]
    return any(k in s for s in lowered for k in keywords)


def _symptom_rule(data: HealthData, hours: float) -> Iterator[Finding]:
    if not data.symptoms:
        return
    if _reported(data.symptoms, CRITICAL_SYMPTOMS):
        yield Finding(
            RiskLevel.CRITICAL,
            "Critical symptoms reported",
            interventions=["Break fast immediately", "Seek medical attention"],
        )
    elif _reported(data.symptoms, MODERATE_SYMPTOMS):
        yield Finding(
            RiskLevel.MEDIUM,
            "Moderate symptoms reported",
            recommendations=["Monitor symptoms closely", "Consider shortening fast"],
        )


def _energy_mood_rule(data: HealthData, hours: float) -> Iterator[Finding]:
    if data.energy_level is not None and data.energy_level <= 2:
        yield Finding(
            RiskLevel.MEDIUM,
            "Very low energy levels",
            recommendations=["Consider breaking fast if energy doesn't improve"],
        )
    if data.mood_level is not None and data.mood_level <= 2:
        # noted, but mood alone does not raise the level
        yield Finding(
            RiskLevel.LOW,
            "Very low mood levels",
            recommendations=["Focus on mental well-being and consider support"],
        )


def _duration_rule(data: HealthData, hours: float) -> Iterator[Finding]:
    if hours > 24:
        yield Finding(
            RiskLevel.MEDIUM,
            "Extended fasting duration (>24 hours)",
            recommendations=[
                "Enhanced monitoring required for extended fasting",
                "Consider medical supervision",
            ],
        )
    if hours > 48:
        yield Finding(
            RiskLevel.HIGH,
            "Very extended fasting duration (>48 hours)",
            interventions=["Medical supervision strongly recommended"],
        )


def _hydration_rule(data: HealthData, hours: float) -> Iterator[Finding]:
    if data.hydration_level is not None and data.hydration_level <= 3:
        yield Finding(
            RiskLevel.MEDIUM,
            "Poor hydration levels",
            recommendations=["Increase water and electrolyte intake immediately"],
        )


RULES = [
    _glucose_rule,
    _heart_rate_rule,
    _blood_pressure_rule,
    _oxygen_rule,
    _temperature_rule,
    _symptom_rule,
    _energy_mood_rule,
    _duration_rule,
    _hydration_rule,
]


def assess_health_risk(data: HealthData, hours_into_fast: float) -> RiskAssessment:
    assessment = RiskAssessment()
    for rule in RULES:
        for finding in rule(data, hours_into_fast):
            assessment.merge(finding)
    return assessment


def generate_health_recommendations(data: HealthData, assessment: RiskAssessment, hours_into_fast: float) -> list[str]:
    recs: list[str] = []

    if hours_into_fast < 6:
        recs += ["Stay hydrated with water and electrolytes", "Light movement can help with any discomfort"]
    elif hours_into_fast < 16:
        recs += ["You're in the fat-burning zone - stay strong!", "Monitor for any unusual symptoms"]
    elif hours_into_fast < 24:
        recs += ["Autophagy processes are likely active", "Enhanced monitoring is important at this stage"]
    else:
        recs += ["Extended fasting requires careful monitoring", "Consider medical supervision for safety"]

    if data.glucose_level is not None and 80 < data.glucose_level < 120:
        recs.append("Your glucose levels look good for fasting")
    if data.energy_level is not None and data.energy_level >= 6:
        recs.append("Great energy levels - your body is adapting well")
    if data.hydration_level is not None and data.hydration_level >= 7:
        recs.append("Excellent hydration - keep it up!")

    summary = {
        RiskLevel.LOW: "All indicators look good - continue your fast safely",
        RiskLevel.MEDIUM: "Some areas need attention - monitor closely",
        RiskLevel.HIGH: "Several risk factors present - consider professional guidance",
    }.get(assessment.level)
    if summary:
        recs.append(summary)

    return recs


class HealthMonitor:
    """Request-scoped: assesses a reading for one of the caller's sessions."""

    def __init__(self, db_session, user_id: str) -> None:
        self.db_session = db_session
        self.user_id = user_id
        self.sessions = SessionService(db_session, user_id)

    def process(self, data: HealthData) -> dict[str, Any]:
        session = self.sessions.get(data.session_id)
        hours = hours_since(session.start_time)

        assessment = assess_health_risk(data, hours)

        record_log(
            self.db_session,
            session_id=session.id,
            user_id=self.user_id,
            log_type="health_monitoring",
            value={
                "reading": _reading_dict(data),
                "risk_assessment": assessment.to_dict(),
                "time_into_fast": hours,
            },
        )

        emergency_break = assessment.level == RiskLevel.CRITICAL
        if emergency_break and session.status not in TERMINAL_STATUSES:
            self.sessions.mark_broken(session, "Auto-terminated due to critical health risk")
            log_event(
                level="WARNING",
                msg="critical_risk_auto_break",
                session_id=session.id,
                factors=assessment.factors,
            )
            record_log(
                self.db_session,
                session_id=session.id,
                user_id=self.user_id,
                log_type="emergency",
                value={
                    "action": "auto_break_fast",
                    "reason": "critical_health_risk",
                    "risk_factors": assessment.factors,
                },
            )

        return {
            "riskAssessment": assessment.to_dict(),
            "recommendations": generate_health_recommendations(data, assessment, hours),
            "interventions": list(assessment.interventions),
            "emergencyBreak": emergency_break,
        }


def _reading_dict(data: HealthData) -> dict[str, Any]:
    return {k: v for k, v in data.__dict__.items() if v not in (None, [])}
